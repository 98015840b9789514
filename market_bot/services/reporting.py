from __future__ import annotations

from market_bot.errors import MarketDataUnavailableError
from market_bot.schemas.market import MarketSnapshot
from market_bot.services.advice import AdviceGenerator
from market_bot.services.market_data import MarketDataService
from market_bot.services.report_formatter import format_error, format_prices, format_report


class ReportService:
    def __init__(
        self,
        *,
        market_data: MarketDataService,
        advice: AdviceGenerator,
        notifier,
        main_coins: list[str],
        gainers_limit: int = 5,
    ) -> None:
        self.market_data = market_data
        self.advice = advice
        self.notifier = notifier
        self.main_coins = list(main_coins)
        self.gainers_limit = gainers_limit

    def build_full_report(self, snapshot: MarketSnapshot) -> str:
        try:
            advice = self.advice.get_advice(snapshot)
        except Exception as exc:
            print(f"[REPORT][advice_failed] error={exc} fallback=rule-based", flush=True)
            advice = self.advice.rule_based(snapshot)
        return format_report(snapshot, advice, main_coins=self.main_coins)

    def build_simple_report(self, snapshot: MarketSnapshot) -> str:
        return format_report(snapshot, self.advice.rule_based(snapshot), main_coins=self.main_coins)

    def build_prices(self, snapshot: MarketSnapshot) -> str:
        return format_prices(snapshot, main_coins=self.main_coins, gainers_limit=self.gainers_limit)

    def send_report(self, snapshot: MarketSnapshot | None = None, *, with_ai: bool = True) -> bool:
        """Fetch (if needed), render and send one report. Returns False when no data was available."""
        if snapshot is None:
            try:
                snapshot = self.market_data.get_market_data()
            except MarketDataUnavailableError as exc:
                print(f"[REPORT][data_unavailable] error={exc}", flush=True)
                self.notifier.send_message(format_error(str(exc)))
                return False

        message = self.build_full_report(snapshot) if with_ai else self.build_simple_report(snapshot)
        self.notifier.send_message(message)
        return True

    def send_prices(self) -> bool:
        try:
            snapshot = self.market_data.get_market_data()
        except MarketDataUnavailableError as exc:
            print(f"[REPORT][data_unavailable] error={exc}", flush=True)
            self.notifier.send_message(format_error(str(exc)))
            return False
        self.notifier.send_message(self.build_prices(snapshot))
        return True
