from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent
DATA_DIR = REPO_ROOT / "data"
STATEMENTS_DIR = DATA_DIR / "statements"
DEFAULT_ARCHIVE_DIR = DATA_DIR / "StatementArchive"


def resolve_statement_pdf(path: Path, statements_dir: Path = STATEMENTS_DIR) -> Path:
    """``path`` as given if it exists, otherwise the same name under ``statements_dir``."""
    path = Path(path)
    if path.exists() or path.is_absolute():
        return path
    return statements_dir / path
