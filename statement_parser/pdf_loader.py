"""Turn PDF bytes into an ``ExtractedDocument`` of positioned text fragments."""

from __future__ import annotations

import asyncio
import io
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import pdfplumber

from .geometry import sort_fragments
from .models import DocumentMetadata, ExtractedDocument, ExtractedPage, TextFragment

log = logging.getLogger(__name__)

# pdfminer PDF dates look like "D:20240710093000-04'00'"
_pdf_date = re.compile(r"^D?:?(\d{4})(\d{2})?(\d{2})?(\d{2})?(\d{2})?(\d{2})?")


class LoadCancelled(Exception):
    """Raised when the caller's cancel event is set before every page is read."""


def _pdf_datetime(raw) -> Optional[datetime]:
    if isinstance(raw, bytes):
        raw = raw.decode("latin-1", errors="ignore")
    if not isinstance(raw, str):
        return None
    m = _pdf_date.match(raw.strip())
    if not m:
        return None
    parts = [int(p) if p else d for p, d in zip(m.groups(), (0, 1, 1, 0, 0, 0))]
    try:
        return datetime(*parts)
    except ValueError:
        return None


def _metadata(info: dict) -> DocumentMetadata:
    return DocumentMetadata(
        title=info.get("Title") or None,
        author=info.get("Author") or None,
        creation_date=_pdf_datetime(info.get("CreationDate")),
    )


def _page_fragments(page, page_number: int) -> ExtractedPage:
    """Words of one pdfplumber page, flipped to a bottom-left origin."""
    words = page.extract_words(
        keep_blank_chars=True,
        x_tolerance=3,
        y_tolerance=3,
        extra_attrs=["fontname", "size"],
    )
    height = float(page.height)
    fragments: List[TextFragment] = []
    for w in words:
        text = w["text"]
        if not text.strip():
            continue
        fragments.append(
            TextFragment(
                text=text,
                x=float(w["x0"]),
                y=height - float(w["bottom"]),
                width=float(w["x1"]) - float(w["x0"]),
                height=float(w["bottom"]) - float(w["top"]),
                page_number=page_number,
                font_name=w.get("fontname"),
                font_size=w.get("size"),
            )
        )
    return ExtractedPage(
        page_number=page_number,
        width=float(page.width),
        height=height,
        fragments=sort_fragments(fragments),
    )


async def load_document(
    data: bytes,
    password: Optional[str] = None,
    max_pages: Optional[int] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> ExtractedDocument:
    """Extract positioned text from every page of a PDF.

    Pages are read one at a time off the event loop. ``max_pages`` stops
    after that many pages; setting ``cancel_event`` stops before the next
    page and raises ``LoadCancelled``.
    """
    logging.getLogger("pdfminer").setLevel(logging.ERROR)
    pages: List[ExtractedPage] = []
    with pdfplumber.open(io.BytesIO(data), password=password or "") as pdf:
        total = len(pdf.pages)
        limit = total if max_pages is None else min(total, max_pages)
        for i, page in enumerate(pdf.pages[:limit], start=1):
            if cancel_event is not None and cancel_event.is_set():
                raise LoadCancelled(f"Load cancelled after {len(pages)} of {limit} pages")
            pages.append(await asyncio.to_thread(_page_fragments, page, i))
        metadata = _metadata(pdf.metadata or {})

    if limit < total:
        log.info("Read %d of %d pages (page budget)", limit, total)
    log.debug("Loaded %d pages, %d fragments", len(pages), sum(len(p.fragments) for p in pages))
    return ExtractedDocument(pages=pages, metadata=metadata)


async def load_document_from_path(path: Path, **kwargs) -> ExtractedDocument:
    data = await asyncio.to_thread(Path(path).read_bytes)
    return await load_document(data, **kwargs)
