from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Protocol

from market_bot.errors import MarketDataUnavailableError, ProviderError
from market_bot.schemas.market import MainAssetRecord, MarketSnapshot
from market_bot.services import normalizer


class MarketProvider(Protocol):
    name: str

    def fetch_snapshot(self) -> MarketSnapshot: ...


class DominanceSource:
    """BTC dominance from the aggregator's global endpoint with a constant fallback."""

    def __init__(self, *, global_client, fallback: float) -> None:
        self.global_client = global_client
        self.fallback = fallback
        self.fallbacks = 0

    def resolve(self, btc_mcap_change_pct: float | None = None) -> tuple[float, float, bool]:
        try:
            global_data = self.global_client.get_global()
        except Exception as exc:
            global_data = None
            print(f"[DOMINANCE][global_unavailable] error={exc} fallback={self.fallback}", flush=True)

        dominance, change, used_fallback = normalizer.resolve_dominance(
            global_data,
            fallback=self.fallback,
            btc_mcap_change_pct=btc_mcap_change_pct,
        )
        if used_fallback:
            self.fallbacks += 1
            if global_data is not None:
                print(f"[DOMINANCE][invalid_payload] fallback={self.fallback}", flush=True)
        return dominance, change, used_fallback


class CoinGeckoMarketProvider:
    name = "coingecko"

    def __init__(
        self,
        *,
        client,
        dominance: DominanceSource,
        main_symbols: dict[str, str],
        min_volume: float,
        top_coins_limit: int,
        top_gainers_limit: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.client = client
        self.dominance = dominance
        self.main_symbols = dict(main_symbols)
        self.min_volume = min_volume
        self.top_coins_limit = top_coins_limit
        self.top_gainers_limit = top_gainers_limit
        self.clock = clock

    def fetch_snapshot(self) -> MarketSnapshot:
        coin_ids = list(self.main_symbols)
        simple = self.client.get_simple_price(coin_ids)
        main_markets = normalizer.index_markets_by_id(self.client.get_markets(ids=coin_ids, per_page=len(coin_ids)))
        universe = self.client.get_markets(order="volume_desc", per_page=self.top_coins_limit)

        main_assets = {
            coin: normalizer.normalize_aggregator_main(coin, simple, main_markets) for coin in coin_ids
        }
        if all(rec.price is None for rec in main_assets.values()):
            raise ProviderError(self.name, "no main asset prices in payload")

        btc_row = main_markets.get("bitcoin") or {}
        dominance, dominance_change, used_fallback = self.dominance.resolve(
            normalizer.to_float(btc_row.get("market_cap_change_percentage_24h"))
        )

        return MarketSnapshot(
            as_of=int(self.clock()),
            source=self.name,
            main_assets=main_assets,
            main_symbols=self.main_symbols,
            alt_assets=normalizer.normalize_aggregator_alts(
                universe,
                min_volume=self.min_volume,
                top_coins_limit=self.top_coins_limit,
                top_gainers_limit=self.top_gainers_limit,
                exclude_ids=coin_ids,
            ),
            dominance_pct=dominance,
            dominance_change_pct=dominance_change,
            dominance_fallback=used_fallback,
        )


class BinanceMarketProvider:
    name = "binance"

    def __init__(
        self,
        *,
        client,
        dominance: DominanceSource,
        main_symbols: dict[str, str],
        quote: str,
        min_volume: float,
        top_coins_limit: int,
        top_gainers_limit: int,
        clock: Callable[[], float] = time.time,
        max_workers: int = 4,
    ) -> None:
        self.client = client
        self.dominance = dominance
        self.main_symbols = dict(main_symbols)
        self.quote = quote
        self.min_volume = min_volume
        self.top_coins_limit = top_coins_limit
        self.top_gainers_limit = top_gainers_limit
        self.clock = clock
        self.max_workers = max_workers

    def _fetch_main(self, coin_id: str) -> MainAssetRecord:
        pair = f"{self.main_symbols[coin_id]}{self.quote}"
        ticker = self.client.get_24h_ticker(pair)
        try:
            klines = self.client.get_daily_klines(pair, limit=7)
        except Exception as exc:
            print(f"[MARKET][klines_unavailable] provider={self.name} pair={pair} error={exc}", flush=True)
            klines = None
        return normalizer.normalize_exchange_main(ticker, klines)

    def fetch_snapshot(self) -> MarketSnapshot:
        coin_ids = list(self.main_symbols)
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            tickers_future = pool.submit(self.client.get_24h_tickers)
            main_futures = {coin: pool.submit(self._fetch_main, coin) for coin in coin_ids}

            main_assets: dict[str, MainAssetRecord] = {}
            for coin, future in main_futures.items():
                try:
                    main_assets[coin] = future.result()
                except Exception as exc:
                    print(f"[MARKET][main_asset_unavailable] provider={self.name} coin={coin} error={exc}", flush=True)
                    main_assets[coin] = MainAssetRecord()
            try:
                tickers = tickers_future.result()
            except Exception as exc:
                print(f"[MARKET][tickers_unavailable] provider={self.name} error={exc}", flush=True)
                tickers = []

        if all(rec.price is None for rec in main_assets.values()):
            raise ProviderError(self.name, "no main asset prices in payload")

        btc = main_assets.get("bitcoin")
        dominance, dominance_change, used_fallback = self.dominance.resolve(
            btc.change_24h_pct if btc is not None else None
        )

        return MarketSnapshot(
            as_of=int(self.clock()),
            source=self.name,
            main_assets=main_assets,
            main_symbols=self.main_symbols,
            alt_assets=normalizer.normalize_exchange_alts(
                tickers,
                quote=self.quote,
                min_volume=self.min_volume,
                top_coins_limit=self.top_coins_limit,
                top_gainers_limit=self.top_gainers_limit,
                exclude_symbols=self.main_symbols.values(),
            ),
            dominance_pct=dominance,
            dominance_change_pct=dominance_change,
            dominance_fallback=used_fallback,
        )


class MarketDataService:
    """Ordered provider chain: first successful snapshot wins."""

    def __init__(self, *, providers: list[MarketProvider]) -> None:
        self.providers = list(providers)
        self.attempts = 0
        self.successes = 0
        self.fallbacks = 0
        self.failures = 0
        self.last_source: str | None = None
        self.last_error: str | None = None

    @staticmethod
    def _describe(exc: Exception) -> str:
        if isinstance(exc, ProviderError):
            return exc.reason
        response = getattr(exc, "response", None)
        code = getattr(response, "status_code", None)
        text = str(exc) or exc.__class__.__name__
        if isinstance(code, int) and str(code) not in text:
            return f"HTTP {code}: {text}"
        return text

    def get_market_data(self) -> MarketSnapshot:
        errors: dict[str, str] = {}
        for index, provider in enumerate(self.providers):
            self.attempts += 1
            try:
                snapshot = provider.fetch_snapshot()
            except Exception as exc:
                errors[provider.name] = self._describe(exc)
                print(f"[MARKET][provider_failed] provider={provider.name} error={errors[provider.name]}", flush=True)
                continue

            self.successes += 1
            if index > 0:
                self.fallbacks += 1
            self.last_source = provider.name
            self.last_error = None
            print(
                f"[MARKET][snapshot] source={provider.name} main={len(snapshot.main_assets)} "
                f"alts={len(snapshot.alt_assets)} dominance={snapshot.dominance_pct:.2f} "
                f"dominance_fallback={int(snapshot.dominance_fallback)}",
                flush=True,
            )
            return snapshot

        self.failures += 1
        error = MarketDataUnavailableError(errors)
        self.last_error = str(error)
        raise error

    def metrics(self) -> dict[str, int | str | None]:
        return {
            "attempts": self.attempts,
            "successes": self.successes,
            "fallbacks": self.fallbacks,
            "failures": self.failures,
            "last_source": self.last_source,
            "last_error": self.last_error,
        }


def build_market_data_service(settings, *, coingecko_client, binance_client) -> MarketDataService:
    dominance = DominanceSource(global_client=coingecko_client, fallback=settings.BTC_DOMINANCE_FALLBACK)
    common = {
        "dominance": dominance,
        "main_symbols": settings.main_symbols(),
        "min_volume": settings.MIN_VOLUME_USD,
        "top_coins_limit": settings.TOP_COINS_LIMIT,
        "top_gainers_limit": settings.TOP_GAINERS_LIMIT,
    }
    factories = {
        "coingecko": lambda: CoinGeckoMarketProvider(client=coingecko_client, **common),
        "binance": lambda: BinanceMarketProvider(client=binance_client, quote=settings.QUOTE_CURRENCY, **common),
    }
    return MarketDataService(providers=[factories[name]() for name in settings.MARKET_PROVIDERS])
