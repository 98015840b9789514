from __future__ import annotations

from market_bot.schemas.alert import PriceAlert
from market_bot.schemas.market import MarketSnapshot
from market_bot.services.normalizer import percent_change


def check_significant_changes(
    current: MarketSnapshot,
    previous: MarketSnapshot | None,
    threshold: float,
) -> list[PriceAlert]:
    """Main-asset moves since ``previous`` whose magnitude reaches ``threshold``."""
    if previous is None:
        return []

    alerts: list[PriceAlert] = []
    for coin_id, record in current.main_assets.items():
        prior = previous.main_assets.get(coin_id)
        if prior is None:
            continue
        change = percent_change(record.price, prior.price)
        if change is None or abs(change) < threshold:
            continue
        alerts.append(
            PriceAlert(
                symbol=current.symbol_for(coin_id),
                change_pct=change,
                current_price=record.price,
                previous_price=prior.price,
            )
        )
    return alerts


def has_significant_changes(
    current: MarketSnapshot,
    previous: MarketSnapshot | None,
    min_change: float,
) -> bool:
    """Report gate: any main or alt asset moved by at least ``min_change`` percent."""
    if previous is None:
        return True

    for coin_id, record in current.main_assets.items():
        prior = previous.main_assets.get(coin_id)
        if prior is None:
            continue
        change = percent_change(record.price, prior.price)
        if change is not None and abs(change) >= min_change:
            return True

    for symbol, alt in current.alt_assets.items():
        prior_alt = previous.alt_assets.get(symbol)
        if prior_alt is None:
            continue
        change = percent_change(alt.price, prior_alt.price)
        if change is not None and abs(change) >= min_change:
            return True

    return False
