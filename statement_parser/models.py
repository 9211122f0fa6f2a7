from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Protocol


# ------------------------------
# Positioned text
# ------------------------------
@dataclass(frozen=True)
class TextFragment:
    """One positioned run of text as emitted by the text source.

    ``y`` is the bottom edge of the run in PDF user space (origin at the
    bottom-left of the page), so a larger ``y`` sits higher on the page.
    """

    text: str
    x: float
    y: float
    width: float
    height: float
    page_number: int             # 1-indexed
    font_name: Optional[str] = None
    font_size: Optional[float] = None

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def right(self) -> float:
        return self.x + self.width


@dataclass
class ExtractedPage:
    page_number: int
    width: float
    height: float
    fragments: List[TextFragment] = field(default_factory=list)


@dataclass
class DocumentMetadata:
    title: Optional[str] = None
    author: Optional[str] = None
    creation_date: Optional[datetime] = None


@dataclass
class ExtractedDocument:
    pages: List[ExtractedPage] = field(default_factory=list)
    metadata: Optional[DocumentMetadata] = None

    def __post_init__(self) -> None:
        self.pages = sorted(self.pages, key=lambda p: p.page_number)

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def flatten(self) -> List[TextFragment]:
        """All fragments, page by page, in the order the text source sorted them."""
        return [f for page in self.pages for f in page.fragments]

    def page_width(self, page_number: int, default: float = 612.0) -> float:
        for page in self.pages:
            if page.page_number == page_number:
                return page.width
        return default


# ------------------------------
# Sections and columns
# ------------------------------
class SectionType(str, Enum):
    HEADER = "header"
    TRADES = "trades"
    ACTIVITY = "activity"
    PURCHASE_SALE = "purchase_sale"
    JOURNAL = "journal"
    OPEN_POSITIONS = "open_positions"
    ACCOUNT_SUMMARY = "account_summary"
    TAX_WITHHOLDING = "tax_withholding"
    UNKNOWN = "unknown"


@dataclass
class DetectedSection:
    type: SectionType
    header_text: str
    start_index: int             # index of the header fragment in the flattened stream
    end_index: int               # exclusive
    start_page: int
    end_page: int
    items: List[TextFragment] = field(default_factory=list)


@dataclass
class ColumnPosition:
    name: str
    left_absolute: float
    right_absolute: float
    left_percent: float
    right_percent: float

    @property
    def center(self) -> float:
        return (self.left_absolute + self.right_absolute) / 2


@dataclass
class ColumnLayout:
    page_width: float
    columns: List[ColumnPosition] = field(default_factory=list)

    def names(self) -> List[str]:
        return [c.name for c in self.columns]


# ------------------------------
# Symbols
# ------------------------------
class MarketCategory(str, Enum):
    NFL = "NFL"
    NBA = "NBA"
    MLB = "MLB"
    NHL = "NHL"
    SOCCER = "Soccer"
    TENNIS = "Tennis"
    GOLF = "Golf"
    ECONOMICS = "Economics"
    POLITICS = "Politics"
    WEATHER = "Weather"
    ENTERTAINMENT = "Entertainment"
    CRYPTO = "Crypto"
    OTHER = "Other"


@dataclass
class ParsedSymbol:
    raw: str
    category: MarketCategory
    exchange: Optional[str] = None       # e.g. "KX"
    event_type: Optional[str] = None     # e.g. "NFLGAME"
    event_date: Optional[str] = None     # compact token, e.g. "25SEP04"
    participants: Optional[List[str]] = None


# ------------------------------
# Statement rows
# ------------------------------
@dataclass
class TradeRow:
    date: str                    # YYYY-MM-DD
    side: str                    # "YES" (bought to open) or "NO" (sold to close)
    symbol: str
    price: Decimal               # per contract, 0-1 for binary contracts
    quantity: int
    commission: Decimal
    category: MarketCategory = MarketCategory.OTHER
    raw_text: Optional[str] = None


@dataclass
class ClosedPositionRow:
    symbol: str
    entry_date: Optional[str]
    exit_date: Optional[str]
    quantity: int
    gross_pnl: Decimal           # statement figure, source of truth
    entry_price: Optional[Decimal] = None
    exit_price: Optional[Decimal] = None


@dataclass
class JournalEntry:
    date: str
    type: str                    # DEPOSIT / WITHDRAWAL / INTEREST / FEE / ADJUSTMENT / OTHER
    amount: Decimal              # negative for withdrawals
    description: str


@dataclass
class OpenPositionRow:
    symbol: str
    side: str
    quantity: int
    cost_basis: Decimal
    current_price: Decimal
    market_value: Decimal
    unrealized_pnl: Decimal


@dataclass
class AccountSummary:
    account_number: str = ""
    statement_date: Optional[str] = None
    period_start: Optional[str] = None
    period_end: Optional[str] = None
    net_liquidity: Decimal = Decimal("0.00")
    ending_cash: Decimal = Decimal("0.00")
    total_fees: Decimal = Decimal("0.00")
    tax_withheld: Optional[Decimal] = None   # v1.1 statements only


@dataclass
class ParsedStatement:
    parser_version: str
    account_summary: AccountSummary
    trades: List[TradeRow] = field(default_factory=list)
    closed_positions: List[ClosedPositionRow] = field(default_factory=list)
    journal_entries: List[JournalEntry] = field(default_factory=list)
    open_positions: List[OpenPositionRow] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    raw_sections: Optional[List[DetectedSection]] = None


# ------------------------------
# Validation
# ------------------------------
class ParseStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class SectionParseResult:
    section: SectionType
    status: ParseStatus
    message: Optional[str] = None
    row_count: Optional[int] = None
    expected_count: Optional[int] = None


@dataclass
class PnLValidation:
    symbol: str
    calculated_pnl: Decimal
    reported_pnl: Decimal
    discrepancy: Decimal
    is_valid: bool


@dataclass
class ValidationResult:
    success: bool
    sections: List[SectionParseResult] = field(default_factory=list)
    pnl_validation: Optional[List[PnLValidation]] = None
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


# ------------------------------
# Parser capability
# ------------------------------
class StatementParser(Protocol):
    version: str
    description: str
    effective_from: date
    effective_to: Optional[date]

    def can_parse(self, document: ExtractedDocument) -> bool:
        ...

    async def parse(self, document: ExtractedDocument) -> ParsedStatement:
        ...

    def validate(self, statement: ParsedStatement) -> ValidationResult:
        ...
