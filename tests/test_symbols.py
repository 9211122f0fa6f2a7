import unittest

from statement_parser.models import MarketCategory
from statement_parser.symbols import categorize_symbol, parse_symbol


class TestCategorize(unittest.TestCase):
    def test_known_topics(self):
        self.assertIs(categorize_symbol("KXNFLGAME-24SEP08DALCLE-DAL"), MarketCategory.NFL)
        self.assertIs(categorize_symbol("KXNBAGAME-24OCT22NYKBOS-BOS"), MarketCategory.NBA)
        self.assertIs(categorize_symbol("KXFEDDECISION-24SEP-C25"), MarketCategory.ECONOMICS)
        self.assertIs(categorize_symbol("KXBTCD-24DEC31-T100000"), MarketCategory.CRYPTO)
        self.assertIs(categorize_symbol("KXPRESIDENT-24NOV05-DJT"), MarketCategory.POLITICS)

    def test_unknown_is_other(self):
        self.assertIs(categorize_symbol("AAPL"), MarketCategory.OTHER)
        self.assertIs(categorize_symbol(""), MarketCategory.OTHER)


class TestParseSymbol(unittest.TestCase):
    def test_full_ticker(self):
        parsed = parse_symbol("KXNFLGAME-24SEP08DALCLE-DAL")
        self.assertEqual(parsed.exchange, "KX")
        self.assertEqual(parsed.event_type, "NFLGAME")
        self.assertEqual(parsed.event_date, "24SEP08")
        self.assertEqual(parsed.participants, ["DAL"])
        self.assertIs(parsed.category, MarketCategory.NFL)

    def test_missing_parts_are_none(self):
        parsed = parse_symbol("KXHIGHNY")
        self.assertEqual(parsed.exchange, "KX")
        self.assertEqual(parsed.event_type, "HIGHNY")
        self.assertIsNone(parsed.event_date)
        self.assertIsNone(parsed.participants)

    def test_garbage_never_raises(self):
        parsed = parse_symbol("---")
        self.assertEqual(parsed.raw, "---")
        self.assertIsNone(parsed.exchange)
        self.assertIsNone(parsed.participants)


if __name__ == "__main__":
    unittest.main()
