"""Provider-native payloads -> MarketSnapshot building blocks.

Every function here is pure: no I/O, no clock, no config lookups. Missing or
malformed numeric fields become ``None`` rather than ``0`` so that callers can
tell "unknown" apart from a legitimate zero.
"""
from __future__ import annotations

import math
from typing import Any, Iterable

from market_bot.schemas.market import AltAssetRecord, MainAssetRecord


def to_float(value: Any) -> float | None:
    try:
        if value is None or value == "" or isinstance(value, bool):
            return None
        out = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(out):
        return None
    return out


def percent_change(current: float | None, previous: float | None) -> float | None:
    if current is None or previous is None or previous == 0:
        return None
    return (current - previous) / previous * 100


def compute_change_7d(last_price: float | None, klines: list | None) -> float | None:
    """7-day change from daily candles, measured against the first candle close."""
    if not klines or len(klines) < 7:
        return None
    first = klines[0]
    if not isinstance(first, (list, tuple)) or len(first) < 5:
        return None
    return percent_change(last_price, to_float(first[4]))


def rank_top_gainers(rows: Iterable[tuple[str, AltAssetRecord]], limit: int) -> dict[str, AltAssetRecord]:
    """Keep positive 24h movers, best first, truncated to ``limit``."""
    gainers = [(symbol, rec) for symbol, rec in rows if rec.change_24h_pct > 0]
    gainers.sort(key=lambda kv: kv[1].change_24h_pct, reverse=True)
    return dict(gainers[:limit])


# --- exchange (Binance) -----------------------------------------------------


def normalize_exchange_main(ticker: dict | None, klines: list | None) -> MainAssetRecord:
    if not isinstance(ticker, dict):
        return MainAssetRecord()
    price = to_float(ticker.get("lastPrice"))
    return MainAssetRecord(
        price=price,
        low_24h=to_float(ticker.get("lowPrice")),
        high_24h=to_float(ticker.get("highPrice")),
        change_24h_pct=to_float(ticker.get("priceChangePercent")),
        change_7d_pct=compute_change_7d(price, klines),
    )


def select_liquid_pairs(
    tickers: list[dict],
    *,
    quote: str,
    min_volume: float,
    limit: int,
) -> list[dict]:
    """Pairs quoted in ``quote`` above ``min_volume``, most liquid first."""
    rows: list[tuple[float, dict]] = []
    for ticker in tickers:
        if not isinstance(ticker, dict):
            continue
        symbol = str(ticker.get("symbol") or "")
        base = symbol[: -len(quote)] if symbol.endswith(quote) else ""
        if not base:
            continue
        volume = to_float(ticker.get("quoteVolume"))
        if volume is None or volume <= min_volume:
            continue
        rows.append((volume, ticker))
    rows.sort(key=lambda kv: kv[0], reverse=True)
    return [ticker for _, ticker in rows[:limit]]


def normalize_exchange_alts(
    tickers: list[dict],
    *,
    quote: str,
    min_volume: float,
    top_coins_limit: int,
    top_gainers_limit: int,
    exclude_symbols: Iterable[str] = (),
) -> dict[str, AltAssetRecord]:
    excluded = {s.upper() for s in exclude_symbols}
    rows: list[tuple[str, AltAssetRecord]] = []
    for ticker in select_liquid_pairs(tickers, quote=quote, min_volume=min_volume, limit=top_coins_limit):
        base = str(ticker["symbol"])[: -len(quote)]
        if base in excluded:
            continue
        price = to_float(ticker.get("lastPrice"))
        change = to_float(ticker.get("priceChangePercent"))
        if price is None or change is None:
            continue
        rows.append(
            (
                base,
                AltAssetRecord(
                    price=price,
                    change_24h_pct=change,
                    volume_24h_quote=to_float(ticker.get("quoteVolume")) or 0.0,
                ),
            )
        )
    return rank_top_gainers(rows, top_gainers_limit)


# --- aggregator (CoinGecko) -------------------------------------------------


def normalize_aggregator_main(
    coin_id: str,
    simple_prices: dict | None,
    market_rows: dict[str, dict] | None,
    vs_currency: str = "usd",
) -> MainAssetRecord:
    simple = (simple_prices or {}).get(coin_id)
    market = (market_rows or {}).get(coin_id)
    simple = simple if isinstance(simple, dict) else {}
    market = market if isinstance(market, dict) else {}

    price = to_float(simple.get(vs_currency))
    if price is None:
        price = to_float(market.get("current_price"))
    change_24h = to_float(simple.get(f"{vs_currency}_24h_change"))
    if change_24h is None:
        change_24h = to_float(market.get("price_change_percentage_24h"))

    return MainAssetRecord(
        price=price,
        low_24h=to_float(market.get("low_24h")),
        high_24h=to_float(market.get("high_24h")),
        change_24h_pct=change_24h,
        change_7d_pct=to_float(market.get("price_change_percentage_7d_in_currency")),
    )


def index_markets_by_id(markets: list[dict] | None) -> dict[str, dict]:
    out: dict[str, dict] = {}
    for row in markets or []:
        if isinstance(row, dict) and row.get("id"):
            out[str(row["id"])] = row
    return out


def normalize_aggregator_alts(
    markets: list[dict],
    *,
    min_volume: float,
    top_coins_limit: int,
    top_gainers_limit: int,
    exclude_ids: Iterable[str] = (),
) -> dict[str, AltAssetRecord]:
    excluded = set(exclude_ids)
    liquid: list[tuple[float, dict]] = []
    for row in markets:
        if not isinstance(row, dict) or row.get("id") in excluded:
            continue
        volume = to_float(row.get("total_volume"))
        if volume is None or volume <= min_volume:
            continue
        liquid.append((volume, row))
    liquid.sort(key=lambda kv: kv[0], reverse=True)

    rows: list[tuple[str, AltAssetRecord]] = []
    for volume, row in liquid[:top_coins_limit]:
        price = to_float(row.get("current_price"))
        change = to_float(row.get("price_change_percentage_24h"))
        symbol = str(row.get("symbol") or "").upper()
        if not symbol or price is None or change is None:
            continue
        rows.append((symbol, AltAssetRecord(price=price, change_24h_pct=change, volume_24h_quote=volume)))
    return rank_top_gainers(rows, top_gainers_limit)


# --- dominance --------------------------------------------------------------


def dominance_change_24h(
    dominance_pct: float,
    total_mcap_change_pct: float | None,
    btc_mcap_change_pct: float | None,
) -> float:
    """24h dominance delta in percentage points, 0.0 when inputs are unknown.

    D = B / T, so D_prev = D * (1 + t) / (1 + b) for 24h fractional changes t, b.
    """
    if total_mcap_change_pct is None or btc_mcap_change_pct is None:
        return 0.0
    btc_factor = 1 + btc_mcap_change_pct / 100
    if btc_factor <= 0:
        return 0.0
    previous = dominance_pct * (1 + total_mcap_change_pct / 100) / btc_factor
    change = dominance_pct - previous
    return change if math.isfinite(change) else 0.0


def resolve_dominance(
    global_data: dict | None,
    *,
    fallback: float,
    btc_mcap_change_pct: float | None = None,
) -> tuple[float, float, bool]:
    """Return ``(dominance_pct, dominance_change_pct, used_fallback)``."""
    if not isinstance(global_data, dict):
        return fallback, 0.0, True

    shares = global_data.get("market_cap_percentage")
    dominance = to_float(shares.get("btc")) if isinstance(shares, dict) else None
    if dominance is None or not 0.0 <= dominance <= 100.0:
        return fallback, 0.0, True

    change = dominance_change_24h(
        dominance,
        to_float(global_data.get("market_cap_change_percentage_24h_usd")),
        btc_mcap_change_pct,
    )
    return dominance, change, False
