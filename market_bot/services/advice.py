from __future__ import annotations

from market_bot.schemas.market import MarketSnapshot
from market_bot.services.report_formatter import format_pct, format_top_gainers, format_usd

_TREND_BREAKPOINT = 2.0
_ACTION_BREAKPOINT = 5.0
_DOMINANCE_HIGH = 55.0
_DOMINANCE_MODERATE = 50.0


def classify_trend(change_24h: float | None) -> str:
    if change_24h is None:
        return "❔ BTC trend unavailable: no 24h change data."
    if change_24h >= _TREND_BREAKPOINT:
        return "🟢 BTC strong uptrend: buyers in control."
    if change_24h >= 0:
        return "🟡 BTC slight upward drift: cautious optimism."
    if change_24h > -_TREND_BREAKPOINT:
        return "🟠 BTC slight pullback: market cooling down."
    return "🔴 BTC strong downtrend: sellers in control."


def classify_dominance(dominance_pct: float) -> str:
    if dominance_pct > _DOMINANCE_HIGH:
        return "🏦 High BTC dominance: capital stays in Bitcoin, altseason unlikely."
    if dominance_pct > _DOMINANCE_MODERATE:
        return "⚖️ Moderate BTC dominance: selective altcoin moves possible."
    return "🌊 Low BTC dominance: altcoins gaining share, altseason conditions."


def classify_action(change_24h: float | None) -> str:
    if change_24h is not None and change_24h >= _ACTION_BREAKPOINT:
        return "💰 Strategy: consider taking partial profit after the rally."
    if change_24h is not None and change_24h <= -_ACTION_BREAKPOINT:
        return "🛒 Strategy: sharp drop, watch for a buy-the-dip entry."
    return "⏸ Strategy: hold, no clear signal."


def build_rule_based_advice(snapshot: MarketSnapshot, *, gainers_limit: int = 5) -> str:
    btc = snapshot.main_assets.get("bitcoin")
    btc_change = btc.change_24h_pct if btc is not None else None

    lines = [
        "📊 *Market Summary:*",
        classify_trend(btc_change),
        classify_dominance(snapshot.dominance_pct),
        classify_action(btc_change),
    ]

    gainers = format_top_gainers(snapshot, gainers_limit)
    if gainers:
        lines.append("")
        lines.append("🚀 *Top Gainers:*")
        lines.extend(gainers)

    lines.append("")
    lines.append("⚠️ AI analysis unavailable. Monitor price movements manually.")
    return "\n".join(lines)


def build_prompt(snapshot: MarketSnapshot) -> str:
    market_lines = []
    for coin_id, record in snapshot.main_assets.items():
        market_lines.append(
            f"{snapshot.symbol_for(coin_id)}: {format_usd(record.price)} ({format_pct(record.change_24h_pct)} 24h)"
        )

    altcoin_info = ""
    gainers = snapshot.top_gainers(3)
    if gainers:
        altcoin_info = "\nAltcoins (gaining):\n" + "\n".join(
            f"- {symbol}: {format_pct(alt.change_24h_pct)}" for symbol, alt in gainers
        )

    return (
        "You are a crypto trader. Analyze this data in SIMPLE terms:\n\n"
        + "\n".join(market_lines)
        + f"\nBTC Dominance: {snapshot.dominance_pct:.2f}% ({format_pct(snapshot.dominance_change_pct)} 24h)"
        + altcoin_info
        + "\n\nWrite in SIMPLE language (max 1-2 sentences each):\n"
        "📉 Market: BTC going up/down? Key price?\n"
        "📊 BTC Dominance: Altcoins pump soon?\n"
        "💰 Strategy: Buy/sell prices (if clear opportunity)\n"
        "🚀 Altcoins: Pick the best coin with 5-15% gains (avoid 20%+ pumps). Which coin is starting to move?\n\n"
        'Be extremely brief. If no clear opportunity, say "No clear signals" or skip section.'
    )


class AdviceGenerator:
    """AI commentary with provider fallback, rule-based summary as the last resort."""

    def __init__(self, *, providers: list | None = None, gainers_limit: int = 5) -> None:
        self.providers = list(providers or [])
        self.gainers_limit = gainers_limit
        self.last_provider: str | None = None

    def _try_provider(self, provider, prompt: str) -> str | None:
        try:
            if not provider.is_available():
                return None
            return provider.generate(prompt)
        except Exception as exc:
            print(f"[AI][provider_failed] provider={provider.name} error={exc}", flush=True)
            return None

    def get_advice(self, snapshot: MarketSnapshot) -> str:
        if self.providers:
            prompt = build_prompt(snapshot)
            for provider in self.providers:
                text = self._try_provider(provider, prompt)
                if text:
                    self.last_provider = provider.name
                    return f"🤖 AI Analysis ({provider.label}):\n{text}"
            print("[AI][all_unavailable] using rule-based summary", flush=True)

        self.last_provider = None
        return self.rule_based(snapshot)

    def rule_based(self, snapshot: MarketSnapshot) -> str:
        return build_rule_based_advice(snapshot, gainers_limit=self.gainers_limit)

    def provider_status(self) -> dict[str, bool]:
        return {provider.name: self._is_available(provider) for provider in self.providers}

    @staticmethod
    def _is_available(provider) -> bool:
        try:
            return bool(provider.is_available())
        except Exception:
            return False
