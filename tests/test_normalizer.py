import math
import unittest

from market_bot.services import normalizer


def _ticker(symbol, last, change, volume, low="1", high="2"):
    return {
        "symbol": symbol,
        "lastPrice": str(last),
        "priceChangePercent": str(change),
        "quoteVolume": str(volume),
        "lowPrice": str(low),
        "highPrice": str(high),
    }


def _klines(first_close, count=7):
    return [[0, "0", "0", "0", str(first_close)]] + [[0, "0", "0", "0", "1"] for _ in range(count - 1)]


class TestToFloat(unittest.TestCase):
    def test_unknown_values_become_none(self):
        for raw in (None, "", "abc", "nan", "inf", True, {}):
            with self.subTest(raw=raw):
                self.assertIsNone(normalizer.to_float(raw))

    def test_zero_and_negative_are_kept(self):
        self.assertEqual(normalizer.to_float("0"), 0.0)
        self.assertEqual(normalizer.to_float("-3.5"), -3.5)


class TestExchangeNormalization(unittest.TestCase):
    def test_main_record_maps_binance_fields_and_7d_change(self):
        record = normalizer.normalize_exchange_main(
            _ticker("BTCUSDT", 55000, -1.25, 1e9, low="54000", high="56000"),
            _klines(50000),
        )

        self.assertEqual(record.price, 55000.0)
        self.assertEqual(record.low_24h, 54000.0)
        self.assertEqual(record.high_24h, 56000.0)
        self.assertEqual(record.change_24h_pct, -1.25)
        self.assertAlmostEqual(record.change_7d_pct, 10.0)

    def test_7d_change_unknown_with_fewer_than_seven_candles(self):
        record = normalizer.normalize_exchange_main(_ticker("BTCUSDT", 55000, 1, 1e9), _klines(50000, count=6))
        self.assertIsNone(record.change_7d_pct)

    def test_7d_change_unknown_when_first_close_is_zero(self):
        self.assertIsNone(normalizer.compute_change_7d(100.0, _klines(0)))

    def test_missing_ticker_gives_all_unknown_record(self):
        record = normalizer.normalize_exchange_main(None, None)
        self.assertIsNone(record.price)
        self.assertIsNone(record.change_24h_pct)

    def test_liquid_pairs_filter_quote_and_volume_sorted_desc(self):
        tickers = [
            _ticker("AAAUSDT", 1, 1, 2_000_000),
            _ticker("BBBUSDT", 1, 1, 500_000),
            _ticker("CCCBTC", 1, 1, 9_000_000),
            _ticker("DDDUSDT", 1, 1, 8_000_000),
            _ticker("USDT", 1, 1, 8_000_000),
        ]

        pairs = normalizer.select_liquid_pairs(tickers, quote="USDT", min_volume=1_000_000, limit=10)

        self.assertEqual([p["symbol"] for p in pairs], ["DDDUSDT", "AAAUSDT"])

    def test_alts_are_top_gainers_of_liquid_universe(self):
        tickers = [
            _ticker("BTCUSDT", 50000, 9.0, 50_000_000),
            _ticker("AAAUSDT", 1.5, 3.0, 40_000_000),
            _ticker("BBBUSDT", 2.5, 12.0, 30_000_000),
            _ticker("CCCUSDT", 0.1, -4.0, 20_000_000),
            _ticker("DDDUSDT", 4.0, 7.0, 10_000_000),
            _ticker("EEEUSDT", 9.0, 50.0, 5_000),
        ]

        alts = normalizer.normalize_exchange_alts(
            tickers,
            quote="USDT",
            min_volume=1_000_000,
            top_coins_limit=10,
            top_gainers_limit=2,
            exclude_symbols=["BTC"],
        )

        self.assertEqual(list(alts), ["BBB", "DDD"])
        self.assertEqual(alts["BBB"].price, 2.5)
        self.assertEqual(alts["BBB"].volume_24h_quote, 30_000_000.0)

    def test_top_coins_limit_applies_before_gain_ranking(self):
        tickers = [
            _ticker("AAAUSDT", 1, 1.0, 3_000_000),
            _ticker("BBBUSDT", 1, 2.0, 2_000_000),
            _ticker("CCCUSDT", 1, 30.0, 1_500_000),
        ]

        alts = normalizer.normalize_exchange_alts(
            tickers, quote="USDT", min_volume=1_000_000, top_coins_limit=2, top_gainers_limit=5
        )

        self.assertEqual(list(alts), ["BBB", "AAA"])


class TestAggregatorNormalization(unittest.TestCase):
    def test_simple_price_merged_with_markets_by_id(self):
        simple = {"bitcoin": {"usd": 50000, "usd_24h_change": 2.5}}
        markets = normalizer.index_markets_by_id(
            [
                {
                    "id": "bitcoin",
                    "current_price": 49999,
                    "low_24h": 48000,
                    "high_24h": 51000,
                    "price_change_percentage_7d_in_currency": -3.2,
                }
            ]
        )

        record = normalizer.normalize_aggregator_main("bitcoin", simple, markets)

        self.assertEqual(record.price, 50000.0)
        self.assertEqual(record.change_24h_pct, 2.5)
        self.assertEqual(record.low_24h, 48000.0)
        self.assertEqual(record.high_24h, 51000.0)
        self.assertEqual(record.change_7d_pct, -3.2)

    def test_missing_coin_is_all_unknown(self):
        record = normalizer.normalize_aggregator_main("ethereum", {}, {})
        self.assertIsNone(record.price)
        self.assertIsNone(record.low_24h)

    def test_aggregator_alts_exclude_main_ids_and_rank_by_gain(self):
        markets = [
            {"id": "bitcoin", "symbol": "btc", "current_price": 1, "price_change_percentage_24h": 20, "total_volume": 9e9},
            {"id": "solana", "symbol": "sol", "current_price": 150, "price_change_percentage_24h": 4, "total_volume": 3e9},
            {"id": "pepe", "symbol": "pepe", "current_price": 0.00001, "price_change_percentage_24h": 15, "total_volume": 5e8},
            {"id": "dust", "symbol": "dust", "current_price": 1, "price_change_percentage_24h": 90, "total_volume": 10},
            {"id": "nodata", "symbol": "nd", "current_price": None, "price_change_percentage_24h": 5, "total_volume": 5e8},
        ]

        alts = normalizer.normalize_aggregator_alts(
            markets,
            min_volume=1_000_000,
            top_coins_limit=100,
            top_gainers_limit=5,
            exclude_ids=["bitcoin"],
        )

        self.assertEqual(list(alts), ["PEPE", "SOL"])


class TestDominance(unittest.TestCase):
    def test_dominance_taken_from_global_market_cap_share(self):
        dominance, change, fallback = normalizer.resolve_dominance(
            {"market_cap_percentage": {"btc": 54.3}}, fallback=50.0
        )
        self.assertEqual(dominance, 54.3)
        self.assertEqual(change, 0.0)
        self.assertFalse(fallback)

    def test_fallback_on_missing_or_non_numeric(self):
        for payload in (None, {}, {"market_cap_percentage": {"btc": "n/a"}}, {"market_cap_percentage": {"btc": 140}}):
            with self.subTest(payload=payload):
                dominance, change, fallback = normalizer.resolve_dominance(payload, fallback=52.5)
                self.assertEqual(dominance, 52.5)
                self.assertEqual(change, 0.0)
                self.assertTrue(fallback)

    def test_dominance_change_derived_from_market_cap_changes(self):
        # btc +10%, total +0% -> previous dominance 50 / 1.1
        change = normalizer.dominance_change_24h(50.0, 0.0, 10.0)
        self.assertAlmostEqual(change, 50.0 - 50.0 / 1.1)

    def test_dominance_change_unknown_inputs_default_to_zero(self):
        self.assertEqual(normalizer.dominance_change_24h(50.0, None, 1.0), 0.0)
        self.assertEqual(normalizer.dominance_change_24h(50.0, 1.0, -100.0), 0.0)
        self.assertTrue(math.isfinite(normalizer.dominance_change_24h(50.0, 1e6, 1.0)))


if __name__ == "__main__":
    unittest.main()
