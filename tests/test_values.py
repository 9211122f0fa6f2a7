import unittest
from decimal import Decimal

from statement_parser.values import (
    clean_text,
    extract_account_number,
    extract_statement_date,
    extract_statement_period,
    is_empty_text,
    parse_currency,
    parse_date,
    parse_integer,
    parse_price,
)


class TestParseCurrency(unittest.TestCase):
    def test_dollars_and_commas(self):
        self.assertEqual(parse_currency("$1,234.56"), Decimal("1234.56"))

    def test_parentheses_are_negative(self):
        self.assertEqual(parse_currency("(12.34)"), Decimal("-12.34"))
        self.assertEqual(parse_currency("($12.34)"), Decimal("-12.34"))

    def test_leading_minus(self):
        self.assertEqual(parse_currency("-5.00"), Decimal("-5.00"))
        self.assertEqual(parse_currency("-$5.00"), Decimal("-5.00"))

    def test_not_a_number(self):
        self.assertIsNone(parse_currency("abc"))
        self.assertIsNone(parse_currency(""))
        self.assertIsNone(parse_currency("1.2.3"))


class TestParseDate(unittest.TestCase):
    def test_formats(self):
        self.assertEqual(parse_date("01/05/2024"), "2024-01-05")
        self.assertEqual(parse_date("2024-06-01"), "2024-06-01")
        self.assertEqual(parse_date("Jan 5, 2024"), "2024-01-05")
        self.assertEqual(parse_date("September 30, 2024"), "2024-09-30")

    def test_first_match_in_text(self):
        self.assertEqual(parse_date("Trade date 7/4/2024 settled"), "2024-07-04")

    def test_invalid(self):
        self.assertIsNone(parse_date(""))
        self.assertIsNone(parse_date("no date here"))
        self.assertIsNone(parse_date("02/30/2024"))


class TestNumbers(unittest.TestCase):
    def test_integer(self):
        self.assertEqual(parse_integer("1,000"), 1000)
        self.assertEqual(parse_integer("-3"), -3)
        self.assertIsNone(parse_integer("3.5"))
        self.assertIsNone(parse_integer("x"))

    def test_price(self):
        self.assertEqual(parse_price("0.45"), Decimal("0.45"))
        self.assertEqual(parse_price("$.50"), Decimal(".50"))
        self.assertIsNone(parse_price("n/a"))


class TestText(unittest.TestCase):
    def test_clean_text(self):
        self.assertEqual(clean_text("  Buy\u200b   YES \n"), "Buy YES")
        self.assertTrue(is_empty_text(" \u200b "))
        self.assertFalse(is_empty_text("x"))

    def test_account_number(self):
        texts = ["Robinhood Derivatives, LLC", "Account Summary", "Account Number: RH12345678"]
        self.assertEqual(extract_account_number(texts), "RH12345678")
        self.assertEqual(extract_account_number(["Something", "ABC1234567"]), "ABC1234567")
        self.assertIsNone(extract_account_number(["Account Activity"]))

    def test_statement_period_range(self):
        texts = ["Statement Period: 06/01/2024 - 06/30/2024"]
        self.assertEqual(extract_statement_period(texts), ("2024-06-01", "2024-06-30"))
        self.assertEqual(extract_statement_date(texts), "2024-06-30")

    def test_statement_period_single_date(self):
        self.assertEqual(extract_statement_date(["Statement Period: Jul 10, 2024"]), "2024-07-10")
        self.assertEqual(extract_statement_period(["nothing"]), (None, None))

    def test_range_with_words(self):
        texts = ["Jun 1, 2024 through Jun 30, 2024"]
        self.assertEqual(extract_statement_period(texts), ("2024-06-01", "2024-06-30"))


if __name__ == "__main__":
    unittest.main()
