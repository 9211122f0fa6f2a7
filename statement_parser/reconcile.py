"""FIFO lot matching and realized P&L reconciliation.

``YES`` trades open lots and ``NO`` trades close the oldest open lots of the
same symbol first. A close larger than the lot in front of it consumes that
lot and carries on into the next one. The calculated gross P&L is then checked
against the statement's Purchase and Sale figures.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Deque, Dict, List, Sequence, Tuple

from .models import ClosedPositionRow, PnLValidation, TradeRow

PNL_TOLERANCE = Decimal("0.01")
CENTS = Decimal("0.01")

CLOSE_SIDE = "NO"


@dataclass
class Lot:
    date: str
    quantity: int
    price: Decimal


@dataclass
class MatchedLot:
    symbol: str
    entry_date: str
    exit_date: str
    quantity: int
    entry_price: Decimal
    exit_price: Decimal

    @property
    def pnl(self) -> Decimal:
        return (self.exit_price - self.entry_price) * self.quantity


@dataclass
class SymbolLedger:
    symbol: str
    matches: List[MatchedLot] = field(default_factory=list)
    open_lots: List[Lot] = field(default_factory=list)
    unmatched_close_quantity: int = 0

    @property
    def realized_pnl(self) -> Decimal:
        return sum((m.pnl for m in self.matches), Decimal("0"))

    @property
    def open_quantity(self) -> int:
        return sum(lot.quantity for lot in self.open_lots)


def _consume(
    lots: Deque[Lot], symbol: str, quantity: int, exit_date: str, exit_price: Decimal
) -> Tuple[List[MatchedLot], int]:
    """Close ``quantity`` against ``lots`` oldest first; returns matches and leftover."""
    matches: List[MatchedLot] = []
    remaining = quantity
    while remaining > 0 and lots:
        lot = lots[0]
        take = min(lot.quantity, remaining)
        matches.append(MatchedLot(symbol, lot.date, exit_date, take, lot.price, exit_price))
        lot.quantity -= take
        remaining -= take
        if lot.quantity == 0:
            lots.popleft()
    return matches, remaining


def match_fifo(trades: Sequence[TradeRow]) -> Dict[str, SymbolLedger]:
    """Per-symbol FIFO ledgers built from trades in statement order.

    Trades on the same date keep their statement order. Zero-quantity rows
    are skipped.
    """
    ordered = sorted(enumerate(trades), key=lambda it: (it[1].date, it[0]))
    books: Dict[str, Deque[Lot]] = {}
    ledgers: Dict[str, SymbolLedger] = {}

    for _, trade in ordered:
        if trade.quantity <= 0:
            continue
        ledger = ledgers.setdefault(trade.symbol, SymbolLedger(trade.symbol))
        lots = books.setdefault(trade.symbol, deque())
        if trade.side == CLOSE_SIDE:
            matches, leftover = _consume(lots, trade.symbol, trade.quantity, trade.date, trade.price)
            ledger.matches.extend(matches)
            ledger.unmatched_close_quantity += leftover
        else:
            lots.append(Lot(trade.date, trade.quantity, trade.price))

    for symbol, ledger in ledgers.items():
        ledger.open_lots = list(books.get(symbol, ()))
    return ledgers


def settle_remaining(ledger: SymbolLedger, closed: Sequence[ClosedPositionRow]) -> None:
    """Settle open lots that the statement reports as closed without a closing trade.

    Contracts that expire are closed by settlement rather than a ``NO`` trade,
    so any reported closed quantity not yet matched is taken from the open
    lots at the reported exit price.
    """
    reported_qty = sum(c.quantity for c in closed)
    unsettled = reported_qty - sum(m.quantity for m in ledger.matches)
    if unsettled <= 0 or not ledger.open_lots:
        return
    exit_row = next((c for c in reversed(closed) if c.exit_price is not None), None)
    if exit_row is None:
        return
    lots: Deque[Lot] = deque(ledger.open_lots)
    matches, _ = _consume(lots, ledger.symbol, unsettled, exit_row.exit_date or "", exit_row.exit_price)
    ledger.matches.extend(matches)
    ledger.open_lots = list(lots)


def reconcile_pnl(
    trades: Sequence[TradeRow],
    closed_positions: Sequence[ClosedPositionRow],
    tolerance: Decimal = PNL_TOLERANCE,
) -> List[PnLValidation]:
    """Compare FIFO-calculated gross P&L with the statement, one entry per closed symbol."""
    ledgers = match_fifo(trades)
    reported: Dict[str, List[ClosedPositionRow]] = {}
    for row in closed_positions:
        reported.setdefault(row.symbol, []).append(row)

    results: List[PnLValidation] = []
    for symbol, rows in reported.items():
        ledger = ledgers.get(symbol, SymbolLedger(symbol))
        settle_remaining(ledger, rows)
        calculated = ledger.realized_pnl.quantize(CENTS)
        reported_pnl = sum((r.gross_pnl for r in rows), Decimal("0")).quantize(CENTS)
        discrepancy = reported_pnl - calculated
        results.append(
            PnLValidation(
                symbol=symbol,
                calculated_pnl=calculated,
                reported_pnl=reported_pnl,
                discrepancy=discrepancy,
                is_valid=abs(discrepancy) <= tolerance,
            )
        )
    return results
