#!/usr/bin/env python3
"""Generate archive artifacts for a single Robinhood Derivatives statement.

Parses the statement, then files a copy of the PDF, the trades CSV and the
parsed statement JSON under ``<archive>/<year>/`` using a ``YYYY-MM`` name
taken from the statement date.

Example
-------
    python scripts/build_statement_archive.py data/statements/2024-07.pdf
    python scripts/build_statement_archive.py 2024-07.pdf   # looked up in data/statements/
"""
from __future__ import annotations

import argparse
import asyncio
import shutil
from pathlib import Path

import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

from project_paths import DEFAULT_ARCHIVE_DIR, resolve_statement_pdf
from statement_parser import create_default_registry, load_document_from_path, write_csv, write_json
from statement_parser.page_extractor import statement_name_prefix


async def build_archive(statement_pdf: Path, archive_dir: Path = DEFAULT_ARCHIVE_DIR) -> Path:
    statement_pdf = Path(statement_pdf)
    archive_dir = Path(archive_dir)

    document = await load_document_from_path(statement_pdf)
    result, validation = await create_default_registry().parse_and_validate(document)
    statement = result.statement

    prefix = statement_name_prefix(statement)
    if prefix is None:
        raise RuntimeError("Could not determine archive name: statement date not found")
    year_dir = archive_dir / prefix[:4]
    year_dir.mkdir(parents=True, exist_ok=True)

    pdf_out = year_dir / f"{prefix}-statement.pdf"
    shutil.copyfile(statement_pdf, pdf_out)
    write_csv(statement.trades, year_dir / "csv" / f"{prefix}.csv")
    write_json(statement, year_dir / "json" / f"{prefix}.json", validation)
    return pdf_out


def main() -> None:
    ap = argparse.ArgumentParser(description="Archive parsed artifacts of a Robinhood Derivatives statement")
    ap.add_argument("pdf", type=Path, help="Statement PDF path (bare names are looked up in data/statements)")
    ap.add_argument("--archive-dir", type=Path, default=DEFAULT_ARCHIVE_DIR, help="Archive output directory")
    args = ap.parse_args()

    pdf_out = asyncio.run(build_archive(resolve_statement_pdf(args.pdf), args.archive_dir))
    print(f"Archive updated: {pdf_out}")


if __name__ == "__main__":
    main()
