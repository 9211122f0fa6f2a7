from .models import (
    AccountSummary,
    ClosedPositionRow,
    DetectedSection,
    ExtractedDocument,
    ExtractedPage,
    JournalEntry,
    MarketCategory,
    OpenPositionRow,
    ParsedStatement,
    SectionType,
    TextFragment,
    TradeRow,
    ValidationResult,
)
from .parser import DerivativesStatementParser, StatementLayout, V1_0_LAYOUT, V1_1_LAYOUT
from .registry import (
    ErrorCode,
    ParseResult,
    ParserRegistry,
    ParserRegistryError,
    create_default_registry,
)
from .versions import VersionDetectionResult, detect_version
from .pdf_loader import LoadCancelled, load_document, load_document_from_path
from .outputs import write_csv, write_json, write_sections
from .stats import sanity, category_rollups, month_rollups
