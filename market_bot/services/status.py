from __future__ import annotations

import os

from market_bot.schemas.status import ServiceStatus

_ENV_KEYS = ("TG_BOT_TOKEN", "TG_CHAT_ID", "OPENAI_API_KEY", "GEMINI_API_KEY", "DEEPSEEK_API_KEY")


def _probe(name: str, check) -> bool:
    try:
        check()
    except Exception as exc:
        print(f"[STATUS][probe_failed] target={name} error={exc}", flush=True)
        return False
    return True


def collect_status(*, settings, coingecko_client, binance_client, telegram_client, advice) -> ServiceStatus:
    """Probe every external collaborator once; nothing here raises."""
    return ServiceStatus(
        env={key: bool(os.getenv(key)) for key in _ENV_KEYS},
        data_apis={
            "coingecko": _probe("coingecko", coingecko_client.ping),
            "binance": _probe("binance", lambda: binance_client.get_24h_ticker(f"BTC{settings.QUOTE_CURRENCY}")),
        },
        ai_providers=advice.provider_status(),
        telegram=_probe("telegram", telegram_client.get_me),
        check_interval_min=settings.CHECK_INTERVAL_MIN,
        alert_threshold=settings.PRICE_ALERT_THRESHOLD,
        report_hours=list(settings.SCHEDULED_REPORT_HOURS),
    )


def _mark(ok: bool) -> str:
    return "✅" if ok else "❌"


def format_status(status: ServiceStatus) -> str:
    data_lines = "\n".join(f"• {name.capitalize()} API: {_mark(ok)}" for name, ok in status.data_apis.items())
    if status.ai_providers:
        ai_lines = "\n".join(f"• {name.capitalize()}: {_mark(ok)}" for name, ok in status.ai_providers.items())
    else:
        ai_lines = "• none configured (rule-based summaries)"
    hours = ", ".join(str(h) for h in status.report_hours) or "none"

    return (
        "🔍 *Services Status*\n\n"
        f"📊 *Market Data:*\n{data_lines}\n\n"
        f"🤖 *AI Services:*\n{ai_lines}\n\n"
        f"💬 Telegram: {_mark(status.telegram)}\n\n"
        "⚙️ *Settings:*\n"
        f"• Check every: {status.check_interval_min} minutes\n"
        f"• Alert threshold: {status.alert_threshold}%\n"
        f"• Reports at: {hours}:00"
    )
