from __future__ import annotations

import re
from typing import List, Pattern, Tuple

from .models import MarketCategory, ParsedSymbol


# Event-contract tickers look like ``KXNFLGAME-25SEP04DALPHI-PHI``: an
# exchange prefix, a topic token, then dash separated event details.
CATEGORY_PATTERNS: List[Tuple[MarketCategory, Pattern[str]]] = [
    (MarketCategory.NFL, re.compile(r"^KX.*NFL", re.IGNORECASE)),
    (MarketCategory.NBA, re.compile(r"^KX.*NBA", re.IGNORECASE)),
    (MarketCategory.MLB, re.compile(r"^KX.*MLB", re.IGNORECASE)),
    (MarketCategory.NHL, re.compile(r"^KX.*NHL", re.IGNORECASE)),
    (MarketCategory.SOCCER, re.compile(r"^KX.*(SOCCER|MLS|UEFA|FIFA|EPL)", re.IGNORECASE)),
    (MarketCategory.TENNIS, re.compile(r"^KX.*(TENNIS|USOPEN|WIMBLEDON)", re.IGNORECASE)),
    (MarketCategory.GOLF, re.compile(r"^KX.*(GOLF|PGA|MASTERS)", re.IGNORECASE)),
    (MarketCategory.ECONOMICS, re.compile(r"^KX.*(FED|CPI|GDP|FOMC|JOBS|INFLATION|RATE)", re.IGNORECASE)),
    (MarketCategory.POLITICS, re.compile(r"^KX.*(ELECTION|PRESIDENT|CONGRESS|SENATE|VOTE)", re.IGNORECASE)),
    (MarketCategory.WEATHER, re.compile(r"^KX.*(WEATHER|TEMP|HURRICANE)", re.IGNORECASE)),
    (MarketCategory.ENTERTAINMENT, re.compile(r"^KX.*(OSCAR|EMMY|GRAMMY|MOVIE|TV)", re.IGNORECASE)),
    (MarketCategory.CRYPTO, re.compile(r"^KX.*(BTC|ETH|CRYPTO|BITCOIN)", re.IGNORECASE)),
]

# Exchange codes we know; anything else falls back to the leading two letters.
KNOWN_EXCHANGES = ("KX",)

_exchange_prefix = re.compile(r"^(" + "|".join(KNOWN_EXCHANGES) + r"|[A-Z]{2})(?=[A-Z0-9])")
_event_date = re.compile(r"(\d{2}[A-Z]{3}\d{2})")


def categorize_symbol(symbol: str) -> MarketCategory:
    for category, pattern in CATEGORY_PATTERNS:
        if pattern.search(symbol):
            return category
    return MarketCategory.OTHER


def parse_symbol(symbol: str) -> ParsedSymbol:
    """Best-effort split of a ticker into exchange, event type, date and participants.

    Parts that do not have the expected shape are left as None; this never
    raises.
    """
    parsed = ParsedSymbol(raw=symbol, category=categorize_symbol(symbol))
    parts = symbol.split("-")

    m = _exchange_prefix.match(parts[0])
    if m:
        parsed.exchange = m.group(1)
        parsed.event_type = parts[0][len(parsed.exchange):] or None

    if len(parts) >= 2:
        m = _event_date.search(parts[1])
        if m:
            parsed.event_date = m.group(1)

    if len(parts) >= 3:
        participants = [p for p in parts[2:] if p]
        if participants:
            parsed.participants = participants

    return parsed
