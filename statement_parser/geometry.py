"""Geometry helpers: rebuild rows and columns from positioned text fragments.

PDF text comes out as disconnected runs with coordinates, not as rows. The
functions here regroup runs into lines by their vertical position, merge a
line back into text, and derive table columns from a header row.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional, Pattern, Sequence, Tuple, Union

from .models import ColumnLayout, ColumnPosition, ExtractedDocument, TextFragment
from .sections import is_section_header

LINE_TOLERANCE = 5.0   # |dy| within this is the same line
GAP_THRESHOLD = 10.0   # horizontal gap that separates two words
COLUMN_GAP = 5.0       # space left between a column and the next one

PatternLike = Union[str, Pattern[str]]

_starts_with_date = re.compile(r"^\d{1,2}/\d{1,2}/\d{4}")
_two_decimals = re.compile(r"\d+\.\d{2}")
_page_footer = re.compile(r"page\s+\d+|continued", re.IGNORECASE)


def _compile(pattern: PatternLike) -> Pattern[str]:
    if isinstance(pattern, str):
        return re.compile(pattern, re.IGNORECASE)
    return pattern


# ---------- document access ----------
def flatten_document(document: ExtractedDocument) -> List[TextFragment]:
    return document.flatten()


def get_page_items(document: ExtractedDocument, page_number: int) -> List[TextFragment]:
    for page in document.pages:
        if page.page_number == page_number:
            return list(page.fragments)
    return []


def get_full_text(document: ExtractedDocument) -> str:
    return " ".join(f.text for f in document.flatten())


def find_text_items(document: ExtractedDocument, pattern: PatternLike) -> List[TextFragment]:
    regex = _compile(pattern)
    return [f for f in document.flatten() if regex.search(f.text)]


def get_items_in_y_range(items: Iterable[TextFragment], min_y: float, max_y: float) -> List[TextFragment]:
    return [f for f in items if min_y <= f.y <= max_y]


# ---------- anchors ----------
def find_text_anchor(
    items: Sequence[TextFragment], pattern: PatternLike
) -> Optional[Tuple[TextFragment, int]]:
    """First fragment whose text matches ``pattern`` with its index, or None."""
    regex = _compile(pattern)
    for i, item in enumerate(items):
        if regex.search(item.text):
            return item, i
    return None


def find_all_text_anchors(
    items: Sequence[TextFragment], pattern: PatternLike
) -> List[Tuple[TextFragment, int]]:
    regex = _compile(pattern)
    return [(item, i) for i, item in enumerate(items) if regex.search(item.text)]


# ---------- lines ----------
def group_into_lines(items: Iterable[TextFragment], tolerance: float = LINE_TOLERANCE) -> List[List[TextFragment]]:
    """Bucket fragments into lines, top to bottom; each line left to right.

    Fragments are taken in descending ``y`` order and join the current line
    while they stay within ``tolerance`` of the line's first fragment.
    """
    ordered = sorted(items, key=lambda f: -f.y)
    if not ordered:
        return []

    lines: List[List[TextFragment]] = []
    current: List[TextFragment] = [ordered[0]]
    current_y = ordered[0].y
    for item in ordered[1:]:
        if abs(item.y - current_y) <= tolerance:
            current.append(item)
        else:
            lines.append(sorted(current, key=lambda f: f.x))
            current = [item]
            current_y = item.y
    lines.append(sorted(current, key=lambda f: f.x))
    return lines


def sort_fragments(items: Iterable[TextFragment], tolerance: float = LINE_TOLERANCE) -> List[TextFragment]:
    """Reading order for one page: top to bottom, then left to right."""
    return [f for line in group_into_lines(items, tolerance) for f in line]


def lines_by_page(items: Iterable[TextFragment], tolerance: float = LINE_TOLERANCE) -> List[List[TextFragment]]:
    """Group into lines page by page so a line never mixes two pages."""
    pages: Dict[int, List[TextFragment]] = {}
    for item in items:
        pages.setdefault(item.page_number, []).append(item)
    lines: List[List[TextFragment]] = []
    for page_number in sorted(pages):
        lines.extend(group_into_lines(pages[page_number], tolerance))
    return lines


def merge_line_text(items: Iterable[TextFragment], gap_threshold: float = GAP_THRESHOLD) -> str:
    """Join a line's fragments, adding a space only across real gaps.

    Runs closer than ``gap_threshold`` are treated as pieces of one token,
    which undoes kerning splits like ``"Comm" "ission"``.
    """
    ordered = sorted(items, key=lambda f: f.x)
    if not ordered:
        return ""

    parts = [ordered[0].text]
    last_right = ordered[0].right
    for item in ordered[1:]:
        if item.x - last_right > gap_threshold:
            parts.append(" ")
        parts.append(item.text)
        last_right = item.right
    return "".join(parts)


# ---------- columns ----------
def detect_column_positions(
    header_row: Sequence[TextFragment], page_width: float, column_names: Sequence[str]
) -> ColumnLayout:
    """Derive column boundaries from the fragments of a table's header row.

    Each name claims the left-most unused header fragment that contains it
    (case-insensitive). A column ends ``COLUMN_GAP`` before the next
    column starts; the last one runs to the page edge. Names without a
    header fragment are left out.
    """
    ordered = sorted(header_row, key=lambda f: f.x)
    used: set = set()
    anchors: List[Tuple[str, float]] = []
    for name in column_names:
        needle = name.lower()
        for idx, item in enumerate(ordered):
            if idx not in used and needle in item.text.lower():
                used.add(idx)
                anchors.append((name, item.x))
                break

    anchors.sort(key=lambda a: a[1])
    columns: List[ColumnPosition] = []
    for i, (name, left) in enumerate(anchors):
        right = anchors[i + 1][1] - COLUMN_GAP if i + 1 < len(anchors) else page_width
        columns.append(
            ColumnPosition(
                name=name,
                left_absolute=left,
                right_absolute=right,
                left_percent=left / page_width if page_width else 0.0,
                right_percent=right / page_width if page_width else 0.0,
            )
        )
    return ColumnLayout(page_width=page_width, columns=columns)


def get_column_for_item(item: TextFragment, layout: ColumnLayout) -> Optional[str]:
    """Column containing the fragment's centre, else the nearest column by centre."""
    center = item.center_x
    for column in layout.columns:
        if column.left_absolute <= center <= column.right_absolute:
            return column.name

    closest: Optional[ColumnPosition] = None
    best = float("inf")
    for column in layout.columns:
        distance = abs(center - column.center)
        if distance < best:
            best = distance
            closest = column
    return closest.name if closest is not None else None


def assign_columns(line: Sequence[TextFragment], layout: ColumnLayout) -> Dict[str, str]:
    """Map column name to the merged text of the line's fragments in that column."""
    cells: Dict[str, List[TextFragment]] = {}
    for item in line:
        name = get_column_for_item(item, layout)
        if name is not None:
            cells.setdefault(name, []).append(item)
    return {name: merge_line_text(frags, gap_threshold=0) for name, frags in cells.items()}


def is_header_line(line_text: str, expected_headers: Sequence[str]) -> bool:
    """True when the line carries at least half of the expected header names."""
    lowered = line_text.lower()
    found = sum(1 for h in expected_headers if h.lower() in lowered)
    return found > 0 and found >= len(expected_headers) * 0.5


def find_header_row(
    items: Iterable[TextFragment], expected_headers: Sequence[str]
) -> Optional[List[TextFragment]]:
    for line in lines_by_page(items):
        if is_header_line(merge_line_text(line), expected_headers):
            return line
    return None


# ---------- row classification ----------
def is_data_row(line_text: str) -> bool:
    looks_like_data = bool(_starts_with_date.match(line_text) or _two_decimals.search(line_text))
    return looks_like_data and not is_section_header(line_text) and not _page_footer.search(line_text)


def is_table_continuation(line_text: str, expected_headers: Sequence[str]) -> bool:
    """True when a line repeats the table header, as it does after a page break."""
    lowered = line_text.lower()
    return sum(1 for h in expected_headers if h.lower() in lowered) >= 2


def document_texts(document: ExtractedDocument) -> List[str]:
    """Fragment texts followed by merged line texts.

    Anchors that the text source split over several runs on one line are
    still found in the merged lines.
    """
    items = document.flatten()
    texts = [f.text for f in items]
    texts.extend(merge_line_text(line) for line in lines_by_page(items))
    return texts
