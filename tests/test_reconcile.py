import unittest
from decimal import Decimal

from statement_parser.models import ClosedPositionRow, TradeRow
from statement_parser.reconcile import match_fifo, reconcile_pnl


def trade(date, side, qty, price, symbol="KXNFLGAME-24SEP08DALCLE-DAL"):
    return TradeRow(date=date, side=side, symbol=symbol, price=Decimal(price), quantity=qty, commission=Decimal("0"))


def closed(qty, pnl, exit_price=None, symbol="KXNFLGAME-24SEP08DALCLE-DAL"):
    return ClosedPositionRow(
        symbol=symbol,
        entry_date=None,
        exit_date="2024-07-31",
        quantity=qty,
        gross_pnl=Decimal(pnl),
        exit_price=Decimal(exit_price) if exit_price is not None else None,
    )


class TestFifo(unittest.TestCase):
    def test_oldest_lot_closes_first(self):
        ledgers = match_fifo([
            trade("2024-07-01", "YES", 5, "0.40"),
            trade("2024-07-02", "YES", 5, "0.50"),
            trade("2024-07-03", "NO", 7, "0.60"),
        ])
        ledger = ledgers["KXNFLGAME-24SEP08DALCLE-DAL"]
        self.assertEqual([(m.quantity, m.entry_price) for m in ledger.matches],
                         [(5, Decimal("0.40")), (2, Decimal("0.50"))])
        self.assertEqual(ledger.realized_pnl, Decimal("1.20"))
        self.assertEqual(ledger.open_quantity, 3)

    def test_statement_order_breaks_date_ties(self):
        ledgers = match_fifo([
            trade("2024-07-01", "YES", 1, "0.10"),
            trade("2024-07-01", "YES", 1, "0.90"),
            trade("2024-07-01", "NO", 1, "0.50"),
        ])
        match = ledgers["KXNFLGAME-24SEP08DALCLE-DAL"].matches[0]
        self.assertEqual(match.entry_price, Decimal("0.10"))

    def test_zero_quantity_and_excess_close(self):
        ledgers = match_fifo([
            trade("2024-07-01", "YES", 0, "0.40"),
            trade("2024-07-01", "YES", 2, "0.40"),
            trade("2024-07-02", "NO", 5, "0.60"),
        ])
        ledger = ledgers["KXNFLGAME-24SEP08DALCLE-DAL"]
        self.assertEqual(sum(m.quantity for m in ledger.matches), 2)
        self.assertEqual(ledger.unmatched_close_quantity, 3)


class TestReconcile(unittest.TestCase):
    def test_matches_reported_pnl(self):
        trades = [trade("2024-07-10", "YES", 10, "0.45"), trade("2024-07-11", "NO", 4, "0.60")]
        (result,) = reconcile_pnl(trades, [closed(4, "0.60")])
        self.assertTrue(result.is_valid)
        self.assertEqual(result.calculated_pnl, Decimal("0.60"))
        self.assertEqual(result.discrepancy, Decimal("0.00"))

    def test_mismatch_beyond_tolerance(self):
        trades = [trade("2024-07-10", "YES", 10, "0.45"), trade("2024-07-11", "NO", 4, "0.60")]
        (result,) = reconcile_pnl(trades, [closed(4, "0.75")])
        self.assertFalse(result.is_valid)
        self.assertEqual(result.discrepancy, Decimal("0.15"))

    def test_within_tolerance(self):
        trades = [trade("2024-07-10", "YES", 10, "0.45"), trade("2024-07-11", "NO", 4, "0.60")]
        (result,) = reconcile_pnl(trades, [closed(4, "0.61")])
        self.assertTrue(result.is_valid)

    def test_settlement_without_closing_trade(self):
        # contract expired at 1.00; no NO trade on the statement
        trades = [trade("2024-07-10", "YES", 10, "0.45")]
        (result,) = reconcile_pnl(trades, [closed(10, "5.50", exit_price="1.00")])
        self.assertEqual(result.calculated_pnl, Decimal("5.50"))
        self.assertTrue(result.is_valid)

    def test_only_reported_symbols_are_checked(self):
        trades = [trade("2024-07-10", "YES", 1, "0.45", symbol="OTHER")]
        self.assertEqual(reconcile_pnl(trades, []), [])


if __name__ == "__main__":
    unittest.main()
