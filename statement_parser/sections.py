"""Locate the logical sections of a statement in the flattened fragment stream."""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Pattern

from .models import DetectedSection, ExtractedDocument, SectionType, TextFragment


# Checked in this order; the first pattern that matches a fragment wins.
SECTION_PATTERNS: Dict[SectionType, Pattern[str]] = {
    SectionType.HEADER: re.compile(r"^Robinhood\s+Derivatives", re.IGNORECASE),
    SectionType.TRADES: re.compile(r"Monthly\s+Trade\s+Confirmations?", re.IGNORECASE),
    SectionType.ACTIVITY: re.compile(r"Account\s+Activity", re.IGNORECASE),
    SectionType.PURCHASE_SALE: re.compile(r"Purchase\s+and\s+Sale", re.IGNORECASE),
    SectionType.JOURNAL: re.compile(r"Journal\s+Entries", re.IGNORECASE),
    SectionType.OPEN_POSITIONS: re.compile(r"Open\s+Positions?", re.IGNORECASE),
    SectionType.ACCOUNT_SUMMARY: re.compile(r"Account\s+Summary", re.IGNORECASE),
    SectionType.TAX_WITHHOLDING: re.compile(r"Tax\s+Withholding", re.IGNORECASE),
}


def detect_section_type(text: str) -> SectionType:
    for section_type, pattern in SECTION_PATTERNS.items():
        if pattern.search(text):
            return section_type
    return SectionType.UNKNOWN


def is_section_header(text: str) -> bool:
    return detect_section_type(text) is not SectionType.UNKNOWN


def detect_sections_in_items(items: List[TextFragment]) -> List[DetectedSection]:
    """Partition ``items`` into sections, one per header fragment.

    Fragments before the first header belong to no section. Each section runs
    from its header up to (not including) the next header, the last one to
    the end of the stream.
    """
    sections: List[DetectedSection] = []
    current: Optional[DetectedSection] = None

    for i, item in enumerate(items):
        section_type = detect_section_type(item.text)
        if section_type is SectionType.UNKNOWN:
            continue

        if current is not None:
            current.end_index = i
            current.end_page = items[i - 1].page_number
            current.items = items[current.start_index:i]
            sections.append(current)

        current = DetectedSection(
            type=section_type,
            header_text=item.text,
            start_index=i,
            end_index=i,
            start_page=item.page_number,
            end_page=item.page_number,
        )

    if current is not None:
        current.end_index = len(items)
        current.end_page = items[-1].page_number
        current.items = items[current.start_index:]
        sections.append(current)

    return sections


def detect_sections(document: ExtractedDocument) -> List[DetectedSection]:
    return detect_sections_in_items(document.flatten())


def get_section(document: ExtractedDocument, section_type: SectionType) -> Optional[DetectedSection]:
    """First section of the given type, or None."""
    for section in detect_sections(document):
        if section.type is section_type:
            return section
    return None
