"""Detect which structural revision of the statement layout produced a PDF.

Detection runs in a fixed order and stops at the first method that yields an
answer: gatekeeper, statement date, document structure, a marker heuristic,
and finally a plain fallback to the earliest known version. It never raises;
missing signals only lower the confidence.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Pattern, Sequence, Tuple

from .geometry import document_texts
from .models import ExtractedDocument
from .sections import detect_sections_in_items
from .values import extract_statement_date

log = logging.getLogger(__name__)

METHOD_DATE = "date"
METHOD_STRUCTURE = "structure"
METHOD_HEURISTIC = "heuristic"
METHOD_FALLBACK = "fallback"

DATE_CONFIDENCE = 0.95
STRUCTURE_WEIGHT = 0.8
HEURISTIC_CONFIDENCE = 0.6
FALLBACK_CONFIDENCE = 0.5
MIN_STRUCTURE_SCORE = 50

_brand = re.compile(r"Robinhood", re.IGNORECASE)
_domain = re.compile(r"Derivatives|Event\s+Contracts?|Prediction\s+Markets?", re.IGNORECASE)
_statement = re.compile(r"Statement|Account\s+Activity|Trade\s+Confirmations?", re.IGNORECASE)


@dataclass(frozen=True)
class VersionProfile:
    label: str
    effective_from: date
    section_count: Tuple[int, int]
    required_patterns: Tuple[Pattern[str], ...]
    optional_patterns: Tuple[Pattern[str], ...] = ()
    distinguishing_patterns: Tuple[Pattern[str], ...] = ()
    # Phrases that on their own identify this version.
    marker_patterns: Tuple[Pattern[str], ...] = ()
    description: str = ""


@dataclass
class VersionDetectionResult:
    version: str
    confidence: float
    method: str
    statement_date: Optional[str] = None
    notes: Optional[str] = None


def _rx(pattern: str) -> Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


_TRADES = _rx(r"Monthly\s+Trade\s+Confirmations?")
_ACTIVITY = _rx(r"Account\s+Activity")
_PURCHASE_SALE = _rx(r"Purchase\s+and\s+Sale")
_JOURNAL = _rx(r"Journal\s+Entries")
_OPEN_POSITIONS = _rx(r"Open\s+Positions?")
_TAX_WITHHOLDING = _rx(r"Tax\s+Withholding")
_BRAND_LINE = _rx(r"Robinhood\s+Derivatives")

V1_0 = VersionProfile(
    label="v1.0",
    effective_from=date(2024, 1, 1),
    section_count=(6, 10),
    required_patterns=(_TRADES, _ACTIVITY, _PURCHASE_SALE),
    optional_patterns=(_JOURNAL, _OPEN_POSITIONS),
    distinguishing_patterns=(_BRAND_LINE,),
    description="Initial Robinhood Derivatives format",
)

V1_1 = VersionProfile(
    label="v1.1",
    effective_from=date(2024, 6, 1),
    section_count=(7, 12),
    required_patterns=(_TRADES, _ACTIVITY, _PURCHASE_SALE),
    optional_patterns=(_JOURNAL, _OPEN_POSITIONS, _TAX_WITHHOLDING),
    distinguishing_patterns=(_BRAND_LINE, _TAX_WITHHOLDING),
    marker_patterns=(_TAX_WITHHOLDING,),
    description="Adds the Tax Withholding section",
)

KNOWN_VERSIONS: Tuple[VersionProfile, ...] = (V1_0, V1_1)


# ---------- version table ----------
def _by_date(versions: Sequence[VersionProfile], newest_first: bool = False) -> List[VersionProfile]:
    return sorted(versions, key=lambda v: v.effective_from, reverse=newest_first)


def get_supported_versions(versions: Sequence[VersionProfile] = KNOWN_VERSIONS) -> List[str]:
    return [v.label for v in _by_date(versions)]


def get_version_effective_date(label: str, versions: Sequence[VersionProfile] = KNOWN_VERSIONS) -> Optional[str]:
    for v in versions:
        if v.label == label:
            return v.effective_from.isoformat()
    return None


def is_version_supported(label: str, versions: Sequence[VersionProfile] = KNOWN_VERSIONS) -> bool:
    return label in get_supported_versions(versions)


def earliest_version(versions: Sequence[VersionProfile] = KNOWN_VERSIONS) -> str:
    return _by_date(versions)[0].label


def version_window(label: str, versions: Sequence[VersionProfile] = KNOWN_VERSIONS) -> Tuple[date, Optional[date]]:
    """``[start, end)`` during which statements use ``label``; end None is open."""
    ordered = _by_date(versions)
    for i, v in enumerate(ordered):
        if v.label == label:
            end = ordered[i + 1].effective_from if i + 1 < len(ordered) else None
            return v.effective_from, end
    raise KeyError(label)


def get_version_by_date(statement_date: str, versions: Sequence[VersionProfile] = KNOWN_VERSIONS) -> Optional[str]:
    """Latest version effective on ``statement_date`` (``YYYY-MM-DD``).

    Dates before every known version map to the earliest one; an unreadable
    date gives None.
    """
    try:
        when = date.fromisoformat(statement_date)
    except (TypeError, ValueError):
        return None
    for v in _by_date(versions, newest_first=True):
        if v.effective_from <= when:
            return v.label
    return earliest_version(versions)


# ---------- document signals ----------
def is_robinhood_statement(document: ExtractedDocument) -> bool:
    """Cheap gatekeeper: brand token plus a domain or statement indicator."""
    full_text = " ".join(f.text for f in document.flatten())
    if not _brand.search(full_text):
        return False
    return bool(_domain.search(full_text) or _statement.search(full_text))


def score_structure(document: ExtractedDocument, profile: VersionProfile) -> float:
    items = document.flatten()
    full_text = " ".join(f.text for f in items)
    section_count = len(detect_sections_in_items(items))

    score = 0.0
    low, high = profile.section_count
    if low <= section_count <= high:
        score += 20
    if profile.required_patterns:
        found = sum(1 for p in profile.required_patterns if p.search(full_text))
        score += found / len(profile.required_patterns) * 40
    if profile.distinguishing_patterns:
        found = sum(1 for p in profile.distinguishing_patterns if p.search(full_text))
        score += found / len(profile.distinguishing_patterns) * 40
    return score


def detect_version_by_structure(
    document: ExtractedDocument, versions: Sequence[VersionProfile] = KNOWN_VERSIONS
) -> Optional[Tuple[str, float]]:
    """``(label, score)`` of the best structural match scoring at least 50.

    Versions are scored newest first and a later candidate must score
    strictly higher, so a tie goes to the newer layout rather than the
    oldest one.
    """
    best: Optional[Tuple[str, float]] = None
    for profile in _by_date(versions, newest_first=True):
        score = score_structure(document, profile)
        log.debug("structure score %s: %.1f", profile.label, score)
        if best is None or score > best[1]:
            best = (profile.label, score)
    if best is not None and best[1] >= MIN_STRUCTURE_SCORE:
        return best
    return None


def detect_version(
    document: ExtractedDocument, versions: Sequence[VersionProfile] = KNOWN_VERSIONS
) -> VersionDetectionResult:
    earliest = earliest_version(versions)

    if not is_robinhood_statement(document):
        return VersionDetectionResult(
            version=earliest,
            confidence=0.0,
            method=METHOD_FALLBACK,
            notes="Document does not appear to be a Robinhood Derivatives statement",
        )

    statement_date = extract_statement_date(document_texts(document))
    if statement_date:
        label = get_version_by_date(statement_date, versions)
        if label:
            return VersionDetectionResult(
                version=label,
                confidence=DATE_CONFIDENCE,
                method=METHOD_DATE,
                statement_date=statement_date,
                notes=f"Detected from statement date: {statement_date}",
            )

    structural = detect_version_by_structure(document, versions)
    if structural:
        label, score = structural
        return VersionDetectionResult(
            version=label,
            confidence=score / 100 * STRUCTURE_WEIGHT,
            method=METHOD_STRUCTURE,
            statement_date=statement_date,
            notes=f"Detected from document structure (score {score:.0f})",
        )

    full_text = " ".join(f.text for f in document.flatten())
    for profile in _by_date(versions, newest_first=True):
        for marker in profile.marker_patterns:
            if marker.search(full_text):
                return VersionDetectionResult(
                    version=profile.label,
                    confidence=HEURISTIC_CONFIDENCE,
                    method=METHOD_HEURISTIC,
                    statement_date=statement_date,
                    notes=f"Found {profile.label} marker: {marker.pattern}",
                )

    return VersionDetectionResult(
        version=earliest,
        confidence=FALLBACK_CONFIDENCE,
        method=METHOD_FALLBACK,
        statement_date=statement_date,
        notes="Using default version due to insufficient detection signals",
    )
