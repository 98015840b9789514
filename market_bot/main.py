from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI
from pydantic import ValidationError

from market_bot.api.routes import health_router, router
from market_bot.config.settings import Settings, get_settings
from market_bot.integrations.ai_rest import build_ai_providers
from market_bot.integrations.binance_rest import BinanceRestClient
from market_bot.integrations.coingecko_rest import CoinGeckoRestClient
from market_bot.integrations.telegram_rest import TelegramClient
from market_bot.services.advice import AdviceGenerator
from market_bot.services.commands import CommandDispatcher
from market_bot.services.market_data import build_market_data_service
from market_bot.services.report_hours import is_report_hour
from market_bot.services.reporting import ReportService
from market_bot.services.scheduler import MarketScheduler
from market_bot.services.status import collect_status, format_status


class BotRuntime:
    """Wires clients and services for one process from validated settings."""

    def __init__(self, settings: Settings, session: Optional[Any] = None) -> None:
        self.settings = settings
        self.coingecko = CoinGeckoRestClient(session=session)
        self.binance = BinanceRestClient(session=session)
        self.notifier = TelegramClient(settings.TG_BOT_TOKEN, settings.TG_CHAT_ID, session=session)

        self.market_data = build_market_data_service(
            settings,
            coingecko_client=self.coingecko,
            binance_client=self.binance,
        )
        self.advice = AdviceGenerator(
            providers=build_ai_providers(settings, session=session),
            gainers_limit=settings.TOP_GAINERS_LIMIT,
        )
        self.reporting = ReportService(
            market_data=self.market_data,
            advice=self.advice,
            notifier=self.notifier,
            main_coins=settings.MAIN_COINS,
            gainers_limit=settings.TOP_GAINERS_LIMIT,
        )
        self.scheduler = MarketScheduler(
            market_data=self.market_data,
            reporting=self.reporting,
            notifier=self.notifier,
            interval_sec=settings.CHECK_INTERVAL_MIN * 60,
            alert_threshold=settings.PRICE_ALERT_THRESHOLD,
            report_min_change=settings.SCHEDULED_REPORT_MIN_CHANGE,
            report_hour_checker=lambda: is_report_hour(
                settings.SCHEDULED_REPORT_HOURS, tz=settings.REPORT_TIMEZONE
            ),
            run_on_start=settings.RUN_ON_START,
        )
        self.commands = CommandDispatcher(
            reporting=self.reporting,
            notifier=self.notifier,
            settings=settings,
            status_text=lambda: format_status(self.collect_status()),
        )

    def collect_status(self):
        return collect_status(
            settings=self.settings,
            coingecko_client=self.coingecko,
            binance_client=self.binance,
            telegram_client=self.notifier,
            advice=self.advice,
        )


def load_settings_or_report(loader=get_settings) -> Settings:
    try:
        return loader()
    except ValidationError as exc:
        missing = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
        print(f"[BOOT][config_error] invalid_or_missing={','.join(missing)}", flush=True)
        raise


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = load_settings_or_report(app.state.get_settings)
    runtime = app.state.runtime_factory(settings)
    app.state.runtime = runtime
    print(
        f"[BOOT][started] providers={','.join(settings.MARKET_PROVIDERS)} "
        f"coins={','.join(settings.MAIN_COINS)} interval_min={settings.CHECK_INTERVAL_MIN} "
        f"alert_threshold={settings.PRICE_ALERT_THRESHOLD} ai={','.join(settings.enabled_ai_providers()) or 'none'}",
        flush=True,
    )
    if settings.WEBHOOK_URL:
        runtime.notifier.set_webhook(settings.WEBHOOK_URL)
    runtime.scheduler.start()

    try:
        yield
    finally:
        # no join deadline: an in-flight cycle runs to completion
        runtime.scheduler.stop(timeout=None)
        if settings.WEBHOOK_URL:
            runtime.notifier.delete_webhook()
        print("[BOOT][stopped]", flush=True)


app = FastAPI(title="Crypto Market Bot", version="0.1.0", lifespan=lifespan)
app.include_router(health_router)
app.include_router(router, prefix="/v1")

# NOTE: lazy-loaded so app import does not require env during tests.
app.state.get_settings = get_settings
app.state.runtime_factory = BotRuntime
app.state.runtime = None
