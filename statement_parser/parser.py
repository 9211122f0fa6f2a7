"""
Versioned parsers for Robinhood Derivatives monthly statements.

One ``DerivativesStatementParser`` class covers every known layout; what
differs between layout revisions (column sets, effective window, optional
sections) lives in a ``StatementLayout`` value, and each parser instance is
bound to exactly one of them.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, Iterator, List, Optional, Pattern, Sequence, Tuple

from .geometry import (
    assign_columns,
    detect_column_positions,
    document_texts,
    is_data_row,
    is_header_line,
    is_table_continuation,
    lines_by_page,
    merge_line_text,
)
from .models import (
    AccountSummary,
    ClosedPositionRow,
    ColumnLayout,
    DetectedSection,
    ExtractedDocument,
    JournalEntry,
    OpenPositionRow,
    ParsedStatement,
    ParseStatus,
    SectionParseResult,
    SectionType,
    TradeRow,
    ValidationResult,
)
from .reconcile import reconcile_pnl
from .sections import detect_sections
from .symbols import categorize_symbol
from .values import (
    clean_text,
    extract_account_number,
    extract_statement_date,
    extract_statement_period,
    parse_currency,
    parse_date,
    parse_integer,
    parse_price,
)
from .versions import earliest_version, is_robinhood_statement

log = logging.getLogger(__name__)


# ------------------------------
# Layouts
# ------------------------------
TRADE_COLUMNS = ("Date", "Subtype", "Symbol", "Price", "Qty", "Commission")
CLOSED_COLUMNS = ("Symbol", "Open Date", "Close Date", "Qty", "Open Price", "Close Price", "Gross P&L")
JOURNAL_COLUMNS = ("Date", "Type", "Description", "Amount")
OPEN_COLUMNS = ("Symbol", "Side", "Qty", "Cost Basis", "Price", "Market Value", "Unrealized P&L")


@dataclass(frozen=True)
class StatementLayout:
    version: str                       # parser id, e.g. "robinhood-v1.0"
    statement_version: str             # layout label the version detector reports
    description: str
    effective_from: date
    effective_to: Optional[date]       # exclusive; None while still current
    trade_columns: Tuple[str, ...] = TRADE_COLUMNS
    closed_columns: Tuple[str, ...] = CLOSED_COLUMNS
    journal_columns: Tuple[str, ...] = JOURNAL_COLUMNS
    open_columns: Tuple[str, ...] = OPEN_COLUMNS
    has_tax_withholding: bool = False


V1_0_LAYOUT = StatementLayout(
    version="robinhood-v1.0",
    statement_version="v1.0",
    description="Robinhood Derivatives statements, January to May 2024",
    effective_from=date(2024, 1, 1),
    effective_to=date(2024, 6, 1),
)

# v1.1 splits exchange and regulatory fees out of the commission column.
V1_1_LAYOUT = StatementLayout(
    version="robinhood-v1.1",
    statement_version="v1.1",
    description="Robinhood Derivatives statements with Tax Withholding, June 2024 onwards",
    effective_from=date(2024, 6, 1),
    effective_to=None,
    trade_columns=TRADE_COLUMNS + ("Fees",),
    has_tax_withholding=True,
)

KNOWN_LAYOUTS: Tuple[StatementLayout, ...] = (V1_0_LAYOUT, V1_1_LAYOUT)


@dataclass
class TableRow:
    cells: Dict[str, str]
    text: str
    page_number: int


# ------------------------------
# Parser
# ------------------------------
class DerivativesStatementParser:
    # "YES" / "NO" contract side anywhere in the subtype cell
    _side_token = re.compile(r"\b(YES|NO)\b", re.IGNORECASE)
    _buy_token = re.compile(r"\bBUY\b", re.IGNORECASE)
    _sell_token = re.compile(r"\bSELL\b", re.IGNORECASE)

    # Account summary labels, each followed by an amount on the same line
    _money = r"(\(?-?\$?-?[\d,]+\.\d{2}\)?)"
    _net_liquidity = re.compile(r"Net\s+Liquidity\s*:?\s*" + _money, re.IGNORECASE)
    _ending_cash = re.compile(r"Ending\s+(?:Cash(?:\s+Balance)?|Balance)\s*:?\s*" + _money, re.IGNORECASE)
    _total_fees = re.compile(
        r"Total\s+(?:Fees|Commissions?)(?:\s+and\s+(?:Fees|Commissions?))?\s*:?\s*" + _money, re.IGNORECASE
    )
    _tax_withheld = re.compile(r"Total\s+(?:Tax(?:es)?\s+)?Withheld\s*:?\s*" + _money, re.IGNORECASE)

    # Journal entry kinds, first match wins
    _journal_kinds: Sequence[Tuple[str, Pattern[str]]] = (
        ("WITHDRAWAL", re.compile(r"withdraw", re.IGNORECASE)),
        ("DEPOSIT", re.compile(r"deposit|transfer\s+in|ach\s+credit", re.IGNORECASE)),
        ("INTEREST", re.compile(r"interest", re.IGNORECASE)),
        ("FEE", re.compile(r"\bfees?\b", re.IGNORECASE)),
        ("ADJUSTMENT", re.compile(r"adjust|correction", re.IGNORECASE)),
    )

    def __init__(self, layout: StatementLayout, keep_raw_sections: bool = False):
        self.layout = layout
        self.keep_raw_sections = keep_raw_sections

    def __repr__(self) -> str:
        return f"DerivativesStatementParser({self.version!r})"

    # ---------- identity ----------
    @property
    def version(self) -> str:
        return self.layout.version

    @property
    def description(self) -> str:
        return self.layout.description

    @property
    def effective_from(self) -> date:
        return self.layout.effective_from

    @property
    def effective_to(self) -> Optional[date]:
        return self.layout.effective_to

    def covers(self, when: date) -> bool:
        if when < self.effective_from:
            return False
        return self.effective_to is None or when < self.effective_to

    # ---------- helpers ----------
    @classmethod
    def _side(cls, text: str) -> Optional[str]:
        m = cls._side_token.search(text or "")
        if m:
            return m.group(1).upper()
        if cls._buy_token.search(text or ""):
            return "YES"
        if cls._sell_token.search(text or ""):
            return "NO"
        return None

    @classmethod
    def _journal_type(cls, *texts: str) -> str:
        for text in texts:
            for kind, pattern in cls._journal_kinds:
                if text and pattern.search(text):
                    return kind
        return "OTHER"

    @staticmethod
    def _money_or_zero(value: Optional[str]) -> Decimal:
        amount = parse_currency(value) if value else None
        return amount if amount is not None else Decimal("0.00")

    @staticmethod
    def _section_items(sections: Iterable[DetectedSection], section_type: SectionType):
        return [item for s in sections if s.type is section_type for item in s.items]

    @staticmethod
    def _table_rows(
        items, columns: Sequence[str], document: ExtractedDocument
    ) -> Iterator[TableRow]:
        """Data rows of one table, split into cells by the header row's columns.

        The column layout comes from the first header row and is reused for
        the rest of the table, including pages where the header repeats.
        """
        layout: Optional[ColumnLayout] = None
        for line in lines_by_page(items):
            text = merge_line_text(line)
            if layout is None:
                if is_header_line(text, columns):
                    page_width = document.page_width(line[0].page_number)
                    layout = detect_column_positions(line, page_width, columns)
                continue
            if is_table_continuation(text, columns) or not is_data_row(text):
                continue
            cells = {name: clean_text(value) for name, value in assign_columns(line, layout).items()}
            yield TableRow(cells=cells, text=text, page_number=line[0].page_number)

    @staticmethod
    def _skip(warnings: List[str], label: str, row: TableRow, reason: str) -> None:
        warnings.append(f"{label} (page {row.page_number}): {reason}: {row.text}")

    # ---------- sections ----------
    def _parse_trades(self, items, document: ExtractedDocument, warnings: List[str]) -> List[TradeRow]:
        trades: List[TradeRow] = []
        for row in self._table_rows(items, self.layout.trade_columns, document):
            c = row.cells
            trade_date = parse_date(c.get("Date", ""))
            side = self._side(c.get("Subtype", ""))
            symbol = c.get("Symbol", "")
            price = parse_price(c.get("Price", ""))
            quantity = parse_integer(c.get("Qty", ""))
            if not (trade_date and side and symbol) or price is None or quantity is None:
                self._skip(warnings, "Trades", row, "unreadable trade row")
                continue
            commission = self._money_or_zero(c.get("Commission"))
            if "Fees" in c:
                commission += self._money_or_zero(c.get("Fees"))
            trades.append(
                TradeRow(
                    date=trade_date,
                    side=side,
                    symbol=symbol,
                    price=price,
                    quantity=quantity,
                    commission=commission,
                    category=categorize_symbol(symbol),
                    raw_text=row.text,
                )
            )
        return trades

    def _parse_closed(self, items, document: ExtractedDocument, warnings: List[str]) -> List[ClosedPositionRow]:
        closed: List[ClosedPositionRow] = []
        for row in self._table_rows(items, self.layout.closed_columns, document):
            c = row.cells
            symbol = c.get("Symbol", "")
            quantity = parse_integer(c.get("Qty", ""))
            gross = parse_currency(c.get("Gross P&L", ""))
            if not symbol or quantity is None or gross is None:
                self._skip(warnings, "Purchase and Sale", row, "unreadable closed position")
                continue
            closed.append(
                ClosedPositionRow(
                    symbol=symbol,
                    entry_date=parse_date(c.get("Open Date", "")),
                    exit_date=parse_date(c.get("Close Date", "")),
                    quantity=quantity,
                    gross_pnl=gross,
                    entry_price=parse_price(c.get("Open Price", "")),
                    exit_price=parse_price(c.get("Close Price", "")),
                )
            )
        return closed

    def _parse_journal(self, items, document: ExtractedDocument, warnings: List[str]) -> List[JournalEntry]:
        entries: List[JournalEntry] = []
        for row in self._table_rows(items, self.layout.journal_columns, document):
            c = row.cells
            entry_date = parse_date(c.get("Date", ""))
            amount = parse_currency(c.get("Amount", ""))
            if not entry_date or amount is None:
                self._skip(warnings, "Journal", row, "unreadable journal entry")
                continue
            description = c.get("Description", "")
            kind = self._journal_type(c.get("Type", ""), description)
            if kind == "WITHDRAWAL":
                amount = -abs(amount)
            entries.append(JournalEntry(date=entry_date, type=kind, amount=amount, description=description))
        return entries

    def _parse_open_positions(
        self, items, document: ExtractedDocument, warnings: List[str]
    ) -> List[OpenPositionRow]:
        positions: List[OpenPositionRow] = []
        for row in self._table_rows(items, self.layout.open_columns, document):
            c = row.cells
            symbol = c.get("Symbol", "")
            quantity = parse_integer(c.get("Qty", ""))
            market_value = parse_currency(c.get("Market Value", ""))
            if not symbol or quantity is None or market_value is None:
                self._skip(warnings, "Open Positions", row, "unreadable open position")
                continue
            price = parse_price(c.get("Price", ""))
            positions.append(
                OpenPositionRow(
                    symbol=symbol,
                    side=self._side(c.get("Side", "")) or "YES",
                    quantity=quantity,
                    cost_basis=self._money_or_zero(c.get("Cost Basis")),
                    current_price=price if price is not None else Decimal("0.00"),
                    market_value=market_value,
                    unrealized_pnl=self._money_or_zero(c.get("Unrealized P&L")),
                )
            )
        return positions

    def _parse_account_summary(
        self, document: ExtractedDocument, sections: List[DetectedSection]
    ) -> AccountSummary:
        texts = document_texts(document)
        summary_items = self._section_items(sections, SectionType.ACCOUNT_SUMMARY)
        summary_lines = [merge_line_text(line) for line in lines_by_page(summary_items)]
        all_lines = summary_lines + [merge_line_text(line) for line in lines_by_page(document.flatten())]

        def labelled(pattern) -> Optional[Decimal]:
            for text in all_lines:
                m = pattern.search(text)
                if m:
                    return parse_currency(m.group(1))
            return None

        period_start, period_end = extract_statement_period(texts)
        summary = AccountSummary(
            account_number=extract_account_number(texts) or "",
            statement_date=period_end,
            period_start=period_start,
            period_end=period_end,
        )
        for attr, pattern in (
            ("net_liquidity", self._net_liquidity),
            ("ending_cash", self._ending_cash),
            ("total_fees", self._total_fees),
        ):
            amount = labelled(pattern)
            if amount is not None:
                setattr(summary, attr, amount)
        if self.layout.has_tax_withholding:
            summary.tax_withheld = labelled(self._tax_withheld)
        return summary

    # ---------- public API ----------
    def can_parse(self, document: ExtractedDocument) -> bool:
        """True for Robinhood statements with known sections dated inside this layout's window.

        A statement without a readable date is accepted; picking among
        layouts is then left to the registry's version detection. Statements
        older than every known layout are read with the earliest one.
        """
        if not is_robinhood_statement(document):
            return False
        if not detect_sections(document):
            return False
        statement_date = extract_statement_date(document_texts(document))
        if not statement_date:
            return True
        when = date.fromisoformat(statement_date)
        if self.covers(when):
            return True
        return when < self.effective_from and self.layout.statement_version == earliest_version()

    async def parse(self, document: ExtractedDocument) -> ParsedStatement:
        sections = detect_sections(document)
        log.debug("%s: %d sections detected", self.version, len(sections))
        warnings: List[str] = []

        summary = self._parse_account_summary(document, sections)
        await asyncio.sleep(0)
        trades = self._parse_trades(self._section_items(sections, SectionType.TRADES), document, warnings)
        await asyncio.sleep(0)
        closed = self._parse_closed(self._section_items(sections, SectionType.PURCHASE_SALE), document, warnings)
        await asyncio.sleep(0)
        journal = self._parse_journal(self._section_items(sections, SectionType.JOURNAL), document, warnings)
        await asyncio.sleep(0)
        positions = self._parse_open_positions(
            self._section_items(sections, SectionType.OPEN_POSITIONS), document, warnings
        )

        log.debug(
            "%s: %d trades, %d closed, %d journal, %d open positions (%d warnings)",
            self.version, len(trades), len(closed), len(journal), len(positions), len(warnings),
        )
        return ParsedStatement(
            parser_version=self.version,
            account_summary=summary,
            trades=trades,
            closed_positions=closed,
            journal_entries=journal,
            open_positions=positions,
            warnings=warnings,
            raw_sections=sections if self.keep_raw_sections else None,
        )

    def validate(self, statement: ParsedStatement) -> ValidationResult:
        errors: List[str] = []
        warnings: List[str] = list(statement.warnings)
        results: List[SectionParseResult] = []

        def table_result(section: SectionType, label: str, rows: Sequence) -> SectionParseResult:
            skipped = sum(1 for w in statement.warnings if w.startswith(label + " "))
            if not rows and not skipped:
                return SectionParseResult(section, ParseStatus.SKIPPED, f"No {label.lower()} rows", row_count=0)
            status = ParseStatus.PARTIAL if skipped else ParseStatus.SUCCESS
            message = f"{skipped} row(s) skipped" if skipped else None
            return SectionParseResult(section, status, message, row_count=len(rows), expected_count=len(rows) + skipped)

        summary = statement.account_summary
        if not summary.statement_date:
            errors.append("Statement date not found")
            results.append(SectionParseResult(SectionType.ACCOUNT_SUMMARY, ParseStatus.FAILED, "Statement date not found"))
        elif not summary.account_number:
            warnings.append("Account number not found")
            results.append(SectionParseResult(SectionType.ACCOUNT_SUMMARY, ParseStatus.PARTIAL, "Account number not found"))
        else:
            results.append(SectionParseResult(SectionType.ACCOUNT_SUMMARY, ParseStatus.SUCCESS))

        results.append(table_result(SectionType.TRADES, "Trades", statement.trades))
        results.append(table_result(SectionType.PURCHASE_SALE, "Purchase and Sale", statement.closed_positions))
        results.append(table_result(SectionType.JOURNAL, "Journal", statement.journal_entries))
        results.append(table_result(SectionType.OPEN_POSITIONS, "Open Positions", statement.open_positions))
        if self.layout.has_tax_withholding:
            status = ParseStatus.SKIPPED if summary.tax_withheld is None else ParseStatus.SUCCESS
            results.append(SectionParseResult(SectionType.TAX_WITHHOLDING, status))

        for trade in statement.trades:
            if trade.quantity <= 0:
                warnings.append(f"Non-positive quantity for {trade.symbol} on {trade.date}")
            if not (Decimal("0") <= trade.price <= Decimal("1")):
                warnings.append(f"Price {trade.price} outside 0-1 for {trade.symbol} on {trade.date}")
            if trade.commission < 0:
                warnings.append(f"Negative commission for {trade.symbol} on {trade.date}")

        pnl = reconcile_pnl(statement.trades, statement.closed_positions)
        for check in pnl:
            if not check.is_valid:
                errors.append(
                    f"P&L mismatch for {check.symbol}: calculated {check.calculated_pnl}, "
                    f"reported {check.reported_pnl}"
                )

        return ValidationResult(
            success=not errors,
            sections=results,
            pnl_validation=pnl,
            errors=errors,
            warnings=warnings,
        )


def build_parsers(keep_raw_sections: bool = False) -> List[DerivativesStatementParser]:
    return [DerivativesStatementParser(layout, keep_raw_sections) for layout in KNOWN_LAYOUTS]
