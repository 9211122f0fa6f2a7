import tempfile
import unittest
from pathlib import Path

from project_paths import STATEMENTS_DIR, resolve_statement_pdf


class TestResolveStatementPdf(unittest.TestCase):
    def test_existing_path_is_kept(self):
        with tempfile.TemporaryDirectory() as tmp:
            pdf = Path(tmp) / "2024-07.pdf"
            pdf.write_bytes(b"%PDF-1.4\n")
            self.assertEqual(resolve_statement_pdf(pdf), pdf)

    def test_bare_name_is_looked_up_in_statements_dir(self):
        self.assertEqual(resolve_statement_pdf(Path("no-such-2024-07.pdf")), STATEMENTS_DIR / "no-such-2024-07.pdf")

    def test_custom_statements_dir(self):
        with tempfile.TemporaryDirectory() as tmp:
            self.assertEqual(
                resolve_statement_pdf(Path("no-such-2024-07.pdf"), Path(tmp)), Path(tmp) / "no-such-2024-07.pdf"
            )


if __name__ == "__main__":
    unittest.main()
