import unittest
from decimal import Decimal

from statement_parser import category_rollups, month_rollups, sanity
from statement_parser.models import AccountSummary, ClosedPositionRow, MarketCategory, ParsedStatement, TradeRow


class TestStatementStats(unittest.TestCase):
    def setUp(self):
        self.trades = [
            TradeRow("2024-06-28", "YES", "KXNFLGAME-A", Decimal("0.40"), 10, Decimal("0.10"), MarketCategory.NFL),
            TradeRow("2024-07-01", "NO", "KXNFLGAME-A", Decimal("0.60"), 5, Decimal("0.05"), MarketCategory.NFL),
            TradeRow("2024-07-02", "YES", "KXCPI-B", Decimal("0.20"), 3, Decimal("0.00"), MarketCategory.ECONOMICS),
        ]
        self.statement = ParsedStatement(
            parser_version="robinhood-v1.1",
            account_summary=AccountSummary(),
            trades=self.trades,
            closed_positions=[ClosedPositionRow("KXNFLGAME-A", None, None, 5, Decimal("1.00"))],
            warnings=["Trades (page 1): unreadable trade row: ..."],
        )

    def test_sanity(self):
        stats = sanity(self.statement)
        self.assertEqual(stats["trades"], 3)
        self.assertEqual(stats["by_side"], {"YES": 2, "NO": 1})
        self.assertEqual(stats["total_commission"], Decimal("0.15"))
        self.assertEqual(stats["realized_pnl"], Decimal("1.00"))
        self.assertEqual(stats["closed_positions"], 1)
        self.assertEqual(stats["warnings"], 1)

    def test_category_rollups(self):
        roll = category_rollups(self.trades)
        self.assertEqual(set(roll), {"NFL", "Economics"})
        self.assertEqual(roll["NFL"]["contracts"], 15)
        self.assertEqual(roll["NFL"]["notional"], Decimal("7.00"))
        self.assertEqual(roll["Economics"]["commission"], Decimal("0.00"))

    def test_month_rollups(self):
        roll = month_rollups(self.trades)
        self.assertEqual(sorted(roll), ["2024-06", "2024-07"])
        self.assertEqual(roll["2024-06"]["bought"], Decimal("4.00"))
        self.assertEqual(roll["2024-07"]["sold"], Decimal("3.00"))
        self.assertEqual(roll["2024-07"]["bought"], Decimal("0.60"))
        self.assertEqual(roll["2024-07"]["commission"], Decimal("0.05"))


if __name__ == "__main__":
    unittest.main()
