import unittest
from unittest.mock import MagicMock

import requests

from market_bot.integrations.binance_rest import BinanceRestClient
from market_bot.integrations.coingecko_rest import CoinGeckoRestClient


def _response(payload):
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


class TestCoinGeckoRestClient(unittest.TestCase):
    def test_simple_price_uses_coingecko_contract(self):
        session = MagicMock()
        session.get.return_value = _response({"bitcoin": {"usd": 50000, "usd_24h_change": 1.5}})
        client = CoinGeckoRestClient(session=session, base_url="https://example.test")

        payload = client.get_simple_price(["bitcoin", "ethereum"])

        self.assertEqual(payload["bitcoin"]["usd"], 50000)
        session.get.assert_called_once_with(
            "https://example.test/simple/price",
            headers={"accept": "application/json"},
            params={"ids": "bitcoin,ethereum", "vs_currencies": "usd", "include_24hr_change": "true"},
            timeout=10,
        )

    def test_markets_caps_page_size_and_passes_ids(self):
        session = MagicMock()
        session.get.return_value = _response([{"id": "bitcoin"}])
        client = CoinGeckoRestClient(session=session, base_url="https://example.test")

        client.get_markets(ids=["bitcoin"], per_page=1000)

        params = session.get.call_args.kwargs["params"]
        self.assertEqual(params["per_page"], 250)
        self.assertEqual(params["ids"], "bitcoin")
        self.assertEqual(params["price_change_percentage"], "24h,7d")

    def test_markets_without_ids_omits_ids_param(self):
        session = MagicMock()
        session.get.return_value = _response([])
        client = CoinGeckoRestClient(session=session, base_url="https://example.test")

        client.get_markets(order="volume_desc", per_page=100)

        params = session.get.call_args.kwargs["params"]
        self.assertNotIn("ids", params)
        self.assertEqual(params["order"], "volume_desc")

    def test_global_unwraps_data(self):
        session = MagicMock()
        session.get.return_value = _response({"data": {"market_cap_percentage": {"btc": 54.1}}})
        client = CoinGeckoRestClient(session=session, base_url="https://example.test")

        self.assertEqual(client.get_global(), {"market_cap_percentage": {"btc": 54.1}})

    def test_global_without_data_raises(self):
        session = MagicMock()
        session.get.return_value = _response({"status": {"error_code": 429}})
        client = CoinGeckoRestClient(session=session, base_url="https://example.test")

        with self.assertRaises(ValueError):
            client.get_global()

    def test_http_error_propagates(self):
        session = MagicMock()
        response = _response({})
        response.raise_for_status.side_effect = requests.HTTPError("429 Too Many Requests")
        session.get.return_value = response
        client = CoinGeckoRestClient(session=session, base_url="https://example.test")

        with self.assertRaises(requests.HTTPError):
            client.get_simple_price(["bitcoin"])


class TestBinanceRestClient(unittest.TestCase):
    def test_daily_klines_uses_binance_contract(self):
        session = MagicMock()
        session.get.return_value = _response([[0, "1", "2", "0.5", "1.5"]])
        client = BinanceRestClient(session=session, base_url="https://example.test")

        client.get_daily_klines("BTCUSDT")

        session.get.assert_called_once_with(
            "https://example.test/klines",
            params={"symbol": "BTCUSDT", "interval": "1d", "limit": 7},
            timeout=10,
        )

    def test_single_ticker_passes_symbol(self):
        session = MagicMock()
        session.get.return_value = _response({"symbol": "ETHUSDT", "lastPrice": "3000"})
        client = BinanceRestClient(session=session, base_url="https://example.test")

        ticker = client.get_24h_ticker("ETHUSDT")

        self.assertEqual(ticker["lastPrice"], "3000")
        self.assertEqual(session.get.call_args.kwargs["params"], {"symbol": "ETHUSDT"})

    def test_all_tickers_must_be_list(self):
        session = MagicMock()
        session.get.return_value = _response({"code": -1003, "msg": "banned"})
        client = BinanceRestClient(session=session, base_url="https://example.test")

        with self.assertRaises(ValueError):
            client.get_24h_tickers()


if __name__ == "__main__":
    unittest.main()
