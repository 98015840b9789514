from __future__ import annotations

from market_bot.schemas.alert import PriceAlert
from market_bot.schemas.market import MainAssetRecord, MarketSnapshot


def format_usd(value: float | None) -> str:
    if value is None:
        return "N/A"
    if abs(value) >= 1:
        return f"${value:,.2f}"
    return f"${value:.6f}".rstrip("0").rstrip(".")


def format_pct(value: float | None) -> str:
    if value is None:
        return "N/A"
    return f"{value:+.2f}%"


def format_volume(value: float | None) -> str:
    if value is None:
        return "N/A"
    if value >= 1_000_000_000:
        return f"${value / 1_000_000_000:.2f}B"
    return f"${value / 1_000_000:.1f}M"


def format_asset_block(coin_id: str, record: MainAssetRecord) -> str:
    title = f"*{coin_id.upper()}*"
    if record.price is None:
        return f"{title}: Data unavailable\n"

    change_line = f"📊 24h: {format_pct(record.change_24h_pct)}"
    if record.change_7d_pct is not None:
        change_line += f" (7d: {format_pct(record.change_7d_pct)})"

    return (
        f"{title}\n"
        f"💰 Current: {format_usd(record.price)}\n"
        f"{change_line}\n"
        f"📉 Min: {format_usd(record.low_24h)}\n"
        f"📈 Max: {format_usd(record.high_24h)}\n"
    )


def format_dominance_line(snapshot: MarketSnapshot) -> str:
    line = (
        f"📈 BTC Dominance: {snapshot.dominance_pct:.2f}% "
        f"({format_pct(snapshot.dominance_change_pct)} 24h)"
    )
    if snapshot.dominance_fallback:
        line += " _(estimate)_"
    return line


def format_top_gainers(snapshot: MarketSnapshot, limit: int) -> list[str]:
    return [
        f"{symbol}: {format_usd(alt.price)} ({format_pct(alt.change_24h_pct)}) (Vol: {format_volume(alt.volume_24h_quote)})"
        for symbol, alt in snapshot.top_gainers(limit)
    ]


def _market_section(snapshot: MarketSnapshot, main_coins: list[str] | None) -> str:
    coins = main_coins if main_coins is not None else list(snapshot.main_assets)
    blocks = [format_asset_block(coin, snapshot.main_assets.get(coin) or MainAssetRecord()) for coin in coins]
    return "\n".join(blocks) + "\n" + format_dominance_line(snapshot)


def format_report(snapshot: MarketSnapshot, advice: str, *, main_coins: list[str] | None = None) -> str:
    return f"🚀 *Crypto Report*\n\n{_market_section(snapshot, main_coins)}\n\n{advice.strip()}"


def format_prices(snapshot: MarketSnapshot, *, main_coins: list[str] | None = None, gainers_limit: int = 5) -> str:
    message = f"💰 *Current Prices*\n\n{_market_section(snapshot, main_coins)}"
    gainers = format_top_gainers(snapshot, gainers_limit)
    if gainers:
        message += "\n\n🚀 *Top Gainers:*\n" + "\n".join(gainers)
    return message


def format_price_alert(alerts: list[PriceAlert]) -> str:
    parts = ["🚨 *PRICE ALERT!*"]
    for alert in alerts:
        direction = "📈" if alert.change_pct > 0 else "📉"
        parts.append(
            f"{direction} {alert.symbol}: {format_usd(alert.current_price)} ({format_pct(alert.change_pct)})\n"
            f"Previous: {format_usd(alert.previous_price)}"
        )
    return "\n\n".join(parts)


def format_error(detail: str) -> str:
    return f"❌ *Error*\n\n{detail}\n\nTry again later."
