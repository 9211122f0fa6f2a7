"""
Parser registry: holds the statement parsers and picks one per document.

A registry is an ordinary object built by the caller (``create_default_registry``
gives one with the built-in layouts). Every parser is bound to the statement
versions whose effective window overlaps its own, so selection starts from
the version the detector reports and only falls back to trying every parser
when none of the bound ones accepts the document.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from .models import ExtractedDocument, ParsedStatement, StatementParser, ValidationResult
from .parser import build_parsers
from .versions import (
    KNOWN_VERSIONS,
    VersionDetectionResult,
    VersionProfile,
    detect_version,
    get_supported_versions,
    is_robinhood_statement,
    version_window,
)

log = logging.getLogger(__name__)

DEFAULT_PRIORITY = 0


class ErrorCode(str, Enum):
    NO_PARSER_AVAILABLE = "NO_PARSER_AVAILABLE"
    PARSER_NOT_FOUND = "PARSER_NOT_FOUND"
    PARSE_FAILED = "PARSE_FAILED"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    NOT_ROBINHOOD_STATEMENT = "NOT_ROBINHOOD_STATEMENT"


class ParserRegistryError(Exception):
    def __init__(self, message: str, code: ErrorCode):
        super().__init__(message)
        self.code = code

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.args[0]}"


@dataclass
class ParserRegistration:
    parser: StatementParser
    priority: int = DEFAULT_PRIORITY
    enabled: bool = True


@dataclass
class ParseResult:
    statement: ParsedStatement
    version_info: VersionDetectionResult
    parser_version: str
    parse_time_ms: float


def _windows_overlap(
    start_a: date, end_a: Optional[date], start_b: date, end_b: Optional[date]
) -> bool:
    """Half-open ``[start, end)`` windows; an end of None runs forever."""
    return (end_b is None or start_a < end_b) and (end_a is None or start_b < end_a)


class ParserRegistry:
    def __init__(self, versions: Sequence[VersionProfile] = KNOWN_VERSIONS):
        self.versions = tuple(versions)
        self._parsers: Dict[str, ParserRegistration] = {}
        self._version_index: Dict[str, List[str]] = {}

    def __len__(self) -> int:
        return len(self._parsers)

    # ---------- management ----------
    def register(self, parser: StatementParser, priority: int = DEFAULT_PRIORITY) -> None:
        if parser.version in self._parsers:
            log.warning("Overwriting existing parser: %s", parser.version)
        self._parsers[parser.version] = ParserRegistration(parser, priority)
        self._rebuild_index()
        log.info("Registered parser: %s (priority: %d)", parser.version, priority)

    def unregister(self, version: str) -> bool:
        if self._parsers.pop(version, None) is None:
            return False
        self._rebuild_index()
        log.info("Unregistered parser: %s", version)
        return True

    def set_enabled(self, version: str, enabled: bool) -> None:
        registration = self._parsers.get(version)
        if registration is None:
            return
        registration.enabled = enabled
        self._rebuild_index()

    def _rebuild_index(self) -> None:
        index: Dict[str, List[str]] = {}
        for profile in self.versions:
            start, end = version_window(profile.label, self.versions)
            index[profile.label] = [
                version
                for version, reg in self._parsers.items()
                if reg.enabled
                and _windows_overlap(start, end, reg.parser.effective_from, reg.parser.effective_to)
            ]
        self._version_index = index

    def parsers_for_version(self, statement_version: str) -> List[StatementParser]:
        """Enabled parsers bound to ``statement_version``, highest priority first."""
        regs = [self._parsers[v] for v in self._version_index.get(statement_version, ()) if v in self._parsers]
        regs = [r for r in regs if r.enabled]
        regs.sort(key=lambda r: r.priority, reverse=True)
        return [r.parser for r in regs]

    # ---------- lookup ----------
    def get_parser(self, version: str) -> Optional[StatementParser]:
        registration = self._parsers.get(version)
        if registration is None or not registration.enabled:
            return None
        return registration.parser

    def get_all_parsers(self) -> List[StatementParser]:
        regs = sorted(
            (r for r in self._parsers.values() if r.enabled), key=lambda r: r.priority, reverse=True
        )
        return [r.parser for r in regs]

    def get_compatible_parsers(self, document: ExtractedDocument) -> List[StatementParser]:
        return [p for p in self.get_all_parsers() if p.can_parse(document)]

    def find_best_parser(
        self, document: ExtractedDocument
    ) -> Optional[Tuple[StatementParser, VersionDetectionResult]]:
        version_info = detect_version(document, self.versions)
        for parser in self.parsers_for_version(version_info.version):
            if parser.can_parse(document):
                return parser, version_info

        compatible = self.get_compatible_parsers(document)
        if compatible:
            log.debug("No %s parser accepted the document; using %s", version_info.version, compatible[0].version)
            return compatible[0], version_info
        return None

    # ---------- parsing ----------
    async def _run(
        self,
        parser: StatementParser,
        document: ExtractedDocument,
        version_info: VersionDetectionResult,
        started: float,
        timeout: Optional[float],
    ) -> ParseResult:
        try:
            if timeout is None:
                statement = await parser.parse(document)
            else:
                statement = await asyncio.wait_for(parser.parse(document), timeout)
        except asyncio.TimeoutError as exc:
            raise ParserRegistryError(
                f"Parse failed: {parser.version} timed out after {timeout}s", ErrorCode.PARSE_FAILED
            ) from exc
        except Exception as exc:
            raise ParserRegistryError(f"Parse failed: {exc}", ErrorCode.PARSE_FAILED) from exc

        return ParseResult(
            statement=statement,
            version_info=version_info,
            parser_version=parser.version,
            parse_time_ms=(time.perf_counter() - started) * 1000,
        )

    async def parse(self, document: ExtractedDocument, timeout: Optional[float] = None) -> ParseResult:
        started = time.perf_counter()
        if not is_robinhood_statement(document):
            raise ParserRegistryError(
                "Document does not appear to be a Robinhood Derivatives statement",
                ErrorCode.NOT_ROBINHOOD_STATEMENT,
            )

        best = self.find_best_parser(document)
        if best is None:
            raise ParserRegistryError("No compatible parser found for this document", ErrorCode.NO_PARSER_AVAILABLE)

        parser, version_info = best
        log.info(
            "Parsing with %s (detected %s via %s, confidence %.2f)",
            parser.version, version_info.version, version_info.method, version_info.confidence,
        )
        return await self._run(parser, document, version_info, started, timeout)

    async def parse_with_version(
        self, document: ExtractedDocument, parser_version: str, timeout: Optional[float] = None
    ) -> ParseResult:
        started = time.perf_counter()
        parser = self.get_parser(parser_version)
        if parser is None:
            raise ParserRegistryError(f"Parser not found: {parser_version}", ErrorCode.PARSER_NOT_FOUND)
        version_info = detect_version(document, self.versions)
        return await self._run(parser, document, version_info, started, timeout)

    async def parse_and_validate(
        self, document: ExtractedDocument, timeout: Optional[float] = None
    ) -> Tuple[ParseResult, ValidationResult]:
        result = await self.parse(document, timeout=timeout)
        parser = self.get_parser(result.parser_version)
        if parser is None:
            raise ParserRegistryError(
                f"Parser not found for validation: {result.parser_version}", ErrorCode.PARSER_NOT_FOUND
            )

        try:
            validation = parser.validate(result.statement)
        except Exception as exc:
            raise ParserRegistryError(f"Validation failed: {exc}", ErrorCode.VALIDATION_FAILED) from exc

        if not validation.success:
            result.statement.warnings.extend(f"Validation error: {e}" for e in validation.errors)
        return result, validation

    # ---------- stats ----------
    def get_stats(self) -> dict:
        regs = list(self._parsers.values())
        return {
            "total_parsers": len(regs),
            "enabled_parsers": sum(1 for r in regs if r.enabled),
            "supported_versions": get_supported_versions(self.versions),
            "parsers": [
                {
                    "version": version,
                    "priority": reg.priority,
                    "enabled": reg.enabled,
                    "statement_versions": [
                        label for label, bound in self._version_index.items() if version in bound
                    ],
                }
                for version, reg in self._parsers.items()
            ],
        }


def create_default_registry(keep_raw_sections: bool = False) -> ParserRegistry:
    registry = ParserRegistry()
    for parser in build_parsers(keep_raw_sections):
        registry.register(parser)
    return registry
