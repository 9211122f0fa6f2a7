from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Tuple

import pdfplumber
import pypdfium2 as pdfium

from .geometry import is_data_row
from .models import ParsedStatement, SectionType
from .sections import detect_section_type


def _header_types(lines: List[str]) -> List[Tuple[int, SectionType]]:
    found = []
    for idx, line in enumerate(lines):
        section_type = detect_section_type(line)
        if section_type is not SectionType.UNKNOWN:
            found.append((idx, section_type))
    return found


def find_section_page_range(pdf_path: Path, section: SectionType) -> Tuple[int, int]:
    """Locate the first and last page of one statement section.

    The section starts on the first page carrying its heading and runs
    until a page opens with a different section heading. A page whose data
    rows come before that heading still belongs to the section.

    Raises
    ------
    ValueError
        If the section heading does not appear in the PDF.
    """
    start_page = None
    end_page = None

    logging.getLogger("pdfminer").setLevel(logging.ERROR)
    with pdfplumber.open(pdf_path) as pdf:
        for i, page in enumerate(pdf.pages, start=1):
            lines = [ln.strip() for ln in (page.extract_text() or "").splitlines() if ln.strip()]
            headers = _header_types(lines)

            if start_page is None:
                own = [idx for idx, t in headers if t is section]
                if not own:
                    continue
                start_page = end_page = i
                # another heading after ours closes the section on this page
                if any(idx > own[0] and t is not section for idx, t in headers):
                    break
                continue

            if not headers:
                end_page = i
                continue
            first_idx, first_type = headers[0]
            if first_type is section:
                end_page = i
                if any(t is not section for _, t in headers):
                    break
                continue
            if any(is_data_row(ln) for ln in lines[:first_idx]):
                end_page = i
            break

    if start_page is None or end_page is None:
        raise ValueError(f"{section.value} pages not found")
    return start_page, end_page


def extract_section_pdf(pdf_path: Path, section: SectionType, out_path: Path) -> Tuple[int, int]:
    """Copy one section's pages into a separate PDF.

    Returns the 1-indexed (start_page, end_page) tuple.
    """
    start, end = find_section_page_range(pdf_path, section)

    src = pdfium.PdfDocument(str(pdf_path))
    out_pdf = pdfium.PdfDocument.new()
    out_pdf.import_pages(src, pages=range(start - 1, end))
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_pdf.save(str(out_path))
    return start, end


def statement_name_prefix(statement: ParsedStatement) -> Optional[str]:
    """Sortable ``YYYY-MM`` prefix from the statement date, or the period for multi-month statements."""
    summary = statement.account_summary
    end = summary.statement_date or summary.period_end
    if not end:
        return None
    start = summary.period_start
    if not start or start[:7] == end[:7]:
        return end[:7]
    if start[:4] == end[:4]:
        return f"{start[:7]}-{end[5:7]}"
    return f"{start[:7]}-{end[:7]}"


def default_pdf_name(statement: ParsedStatement, section: SectionType) -> Optional[Path]:
    prefix = statement_name_prefix(statement)
    return None if prefix is None else Path(f"{prefix}-{section.value}.pdf")
