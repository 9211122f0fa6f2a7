from __future__ import annotations

from decimal import Decimal
from typing import Dict, List

from .models import ParsedStatement, TradeRow


def sanity(statement: ParsedStatement) -> Dict[str, object]:
    """Row counts per section, trades by side, and total commissions."""
    by_side: Dict[str, int] = {"YES": 0, "NO": 0}
    commissions = Decimal("0.00")
    for t in statement.trades:
        by_side[t.side] = by_side.get(t.side, 0) + 1
        commissions += t.commission
    return {
        "trades": len(statement.trades),
        "by_side": by_side,
        "closed_positions": len(statement.closed_positions),
        "journal_entries": len(statement.journal_entries),
        "open_positions": len(statement.open_positions),
        "total_commission": commissions,
        "realized_pnl": sum((c.gross_pnl for c in statement.closed_positions), Decimal("0.00")),
        "warnings": len(statement.warnings),
    }


def _notional(t: TradeRow) -> Decimal:
    return t.price * t.quantity


def category_rollups(trades: List[TradeRow]) -> Dict[str, Dict[str, Decimal]]:
    """Returns {category: {"contracts": Decimal, "notional": Decimal, "commission": Decimal}}."""
    out: Dict[str, Dict[str, Decimal]] = {}
    for t in trades:
        key = t.category.value
        if key not in out:
            out[key] = {"contracts": Decimal("0"), "notional": Decimal("0.00"), "commission": Decimal("0.00")}
        out[key]["contracts"] += t.quantity
        out[key]["notional"] += _notional(t)
        out[key]["commission"] += t.commission
    return out


def month_rollups(trades: List[TradeRow]) -> Dict[str, Dict[str, Decimal]]:
    """Returns {"YYYY-MM": {"bought": Decimal, "sold": Decimal, "commission": Decimal}}
    with notional split by side."""
    out: Dict[str, Dict[str, Decimal]] = {}
    for t in trades:
        key = t.date[:7]
        if key not in out:
            out[key] = {"bought": Decimal("0.00"), "sold": Decimal("0.00"), "commission": Decimal("0.00")}
        if t.side == "YES":
            out[key]["bought"] += _notional(t)
        elif t.side == "NO":
            out[key]["sold"] += _notional(t)
        out[key]["commission"] += t.commission
    return out
