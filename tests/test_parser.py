import unittest
from datetime import date
from decimal import Decimal

from statement_parser.models import MarketCategory, ParseStatus, SectionType
from statement_parser.parser import V1_0_LAYOUT, V1_1_LAYOUT, DerivativesStatementParser

from statement_fixtures import TRADE_HEADER, document, frag, full_statement, row, sample_statement


class TestCanParse(unittest.TestCase):
    def setUp(self):
        self.v10 = DerivativesStatementParser(V1_0_LAYOUT)
        self.v11 = DerivativesStatementParser(V1_1_LAYOUT)

    def test_effective_windows(self):
        self.assertEqual(self.v10.effective_to, date(2024, 6, 1))
        self.assertIsNone(self.v11.effective_to)
        self.assertTrue(self.v10.covers(date(2024, 5, 31)))
        self.assertFalse(self.v10.covers(date(2024, 6, 1)))
        self.assertTrue(self.v11.covers(date(2030, 1, 1)))

    def test_statement_date_selects_layout(self):
        doc = sample_statement()
        self.assertFalse(self.v10.can_parse(doc))
        self.assertTrue(self.v11.can_parse(doc))

    def test_statement_older_than_every_layout_uses_earliest(self):
        doc = sample_statement("Statement Period: Dec 15, 2023")
        self.assertFalse(self.v10.covers(date(2023, 12, 15)))
        self.assertTrue(self.v10.can_parse(doc))
        self.assertFalse(self.v11.can_parse(doc))

    def test_undated_statement_is_accepted(self):
        doc = document([frag("Robinhood Derivatives", 50, 750), frag("Monthly Trade Confirmations", 50, 700)])
        self.assertTrue(self.v10.can_parse(doc))
        self.assertTrue(self.v11.can_parse(doc))

    def test_rejects_other_documents(self):
        self.assertFalse(self.v11.can_parse(document([frag("Monthly Trade Confirmations", 50, 700)])))
        no_sections = document([frag("Robinhood statement", 50, 750)])
        self.assertFalse(self.v11.can_parse(no_sections))


class TestParse(unittest.IsolatedAsyncioTestCase):
    async def test_three_trade_rows(self):
        parser = DerivativesStatementParser(V1_1_LAYOUT)
        statement = await parser.parse(sample_statement())

        self.assertEqual(statement.parser_version, "robinhood-v1.1")
        self.assertEqual(len(statement.trades), 3)
        first = statement.trades[0]
        self.assertEqual(first.date, "2024-07-10")
        self.assertEqual(first.side, "YES")
        self.assertEqual(first.symbol, "KXNFLGAME-24SEP08DALCLE-DAL")
        self.assertEqual(first.price, Decimal("0.45"))
        self.assertEqual(first.quantity, 10)
        self.assertIs(first.category, MarketCategory.NFL)
        self.assertEqual(statement.trades[1].side, "NO")
        self.assertIs(statement.trades[2].category, MarketCategory.ECONOMICS)
        self.assertEqual(statement.trades[2].commission, Decimal("0.10"))
        self.assertEqual(statement.warnings, [])
        self.assertIsNone(statement.raw_sections)

        summary = statement.account_summary
        self.assertEqual(summary.account_number, "RH12345678")
        self.assertEqual(summary.statement_date, "2024-07-10")

    async def test_full_statement(self):
        parser = DerivativesStatementParser(V1_1_LAYOUT, keep_raw_sections=True)
        statement = await parser.parse(full_statement())

        self.assertEqual(len(statement.trades), 3)
        self.assertEqual(statement.trades[2].date, "2024-07-12")

        (closed,) = statement.closed_positions
        self.assertEqual(closed.entry_date, "2024-07-10")
        self.assertEqual(closed.exit_date, "2024-07-11")
        self.assertEqual(closed.quantity, 4)
        self.assertEqual(closed.exit_price, Decimal("0.60"))
        self.assertEqual(closed.gross_pnl, Decimal("0.60"))

        deposit, withdrawal = statement.journal_entries
        self.assertEqual((deposit.type, deposit.amount), ("DEPOSIT", Decimal("500.00")))
        self.assertEqual((withdrawal.type, withdrawal.amount), ("WITHDRAWAL", Decimal("-100.00")))

        (position,) = statement.open_positions
        self.assertEqual(position.side, "YES")
        self.assertEqual(position.quantity, 6)
        self.assertEqual(position.market_value, Decimal("3.00"))

        summary = statement.account_summary
        self.assertEqual((summary.period_start, summary.period_end), ("2024-07-01", "2024-07-31"))
        self.assertEqual(summary.net_liquidity, Decimal("1234.56"))
        self.assertEqual(summary.ending_cash, Decimal("1000.00"))
        self.assertEqual(summary.total_fees, Decimal("0.10"))
        self.assertEqual(summary.tax_withheld, Decimal("0.00"))
        self.assertEqual(len(statement.raw_sections), 6)

    async def test_v10_ignores_tax_withheld(self):
        statement = await DerivativesStatementParser(V1_0_LAYOUT).parse(full_statement())
        self.assertIsNone(statement.account_summary.tax_withheld)

    async def test_unreadable_row_becomes_warning(self):
        fragments = [frag("Robinhood Derivatives", 50, 750), frag("Monthly Trade Confirmations", 50, 690)]
        fragments.extend(row(670, TRADE_HEADER))
        fragments.extend(row(655, [(50, "07/10/2024"), (120, "Buy YES"), (190, "KXNFLGAME"), (400, "n/a"),
                                   (460, "10"), (510, "0.00")]))
        statement = await DerivativesStatementParser(V1_1_LAYOUT).parse(document(fragments))
        self.assertEqual(statement.trades, [])
        self.assertEqual(len(statement.warnings), 1)
        self.assertTrue(statement.warnings[0].startswith("Trades (page 1)"))


class TestValidate(unittest.IsolatedAsyncioTestCase):
    async def test_full_statement_validates(self):
        parser = DerivativesStatementParser(V1_1_LAYOUT)
        validation = parser.validate(await parser.parse(full_statement()))

        self.assertTrue(validation.success, validation.errors)
        statuses = {r.section: r.status for r in validation.sections}
        self.assertEqual(statuses[SectionType.TRADES], ParseStatus.SUCCESS)
        self.assertEqual(statuses[SectionType.ACCOUNT_SUMMARY], ParseStatus.SUCCESS)
        self.assertEqual(statuses[SectionType.TAX_WITHHOLDING], ParseStatus.SUCCESS)
        (pnl,) = validation.pnl_validation
        self.assertTrue(pnl.is_valid)

    async def test_missing_date_and_pnl_mismatch(self):
        parser = DerivativesStatementParser(V1_1_LAYOUT)
        statement = await parser.parse(full_statement())
        statement.account_summary.statement_date = None
        statement.closed_positions[0].gross_pnl = Decimal("2.00")

        validation = parser.validate(statement)
        self.assertFalse(validation.success)
        self.assertIn("Statement date not found", validation.errors)
        self.assertTrue(any(e.startswith("P&L mismatch") for e in validation.errors))

    async def test_empty_sections_are_skipped(self):
        parser = DerivativesStatementParser(V1_0_LAYOUT)
        validation = parser.validate(await parser.parse(sample_statement("Statement Period: Mar 31, 2024")))
        statuses = {r.section: r.status for r in validation.sections}
        self.assertEqual(statuses[SectionType.TRADES], ParseStatus.SUCCESS)
        self.assertEqual(statuses[SectionType.JOURNAL], ParseStatus.SKIPPED)
        self.assertNotIn(SectionType.TAX_WITHHOLDING, statuses)
        self.assertTrue(validation.success)


if __name__ == "__main__":
    unittest.main()
