from __future__ import annotations

import threading
import time
from typing import Callable

from market_bot.errors import MarketDataUnavailableError
from market_bot.services.change_detector import check_significant_changes, has_significant_changes
from market_bot.services.price_store import LastPriceStore
from market_bot.services.report_formatter import format_error, format_price_alert

STATE_IDLE = "IDLE"
STATE_CYCLE_RUNNING = "CYCLE_RUNNING"


class MarketScheduler:
    """Periodic poll -> detect -> report loop. At most one cycle runs at a time."""

    def __init__(
        self,
        *,
        market_data,
        reporting,
        notifier,
        price_store: LastPriceStore | None = None,
        interval_sec: float = 900.0,
        alert_threshold: float = 2.0,
        report_min_change: float = 2.0,
        report_hour_checker: Callable[[], bool] | None = None,
        run_on_start: bool = True,
    ) -> None:
        self.market_data = market_data
        self.reporting = reporting
        self.notifier = notifier
        self.price_store = price_store or LastPriceStore()
        self.interval_sec = interval_sec
        self.alert_threshold = alert_threshold
        self.report_min_change = report_min_change
        self.report_hour_checker = report_hour_checker or (lambda: True)
        self.run_on_start = run_on_start

        self.state = STATE_IDLE
        self._cycle_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._metrics = {
            "cycles": 0,
            "skipped_ticks": 0,
            "no_data": 0,
            "errors": 0,
            "alerts_sent": 0,
            "reports_sent": 0,
        }
        self.last_cycle_ts: int | None = None
        self.last_error: str | None = None

    def run_cycle(self) -> dict:
        if not self._cycle_lock.acquire(blocking=False):
            self._metrics["skipped_ticks"] += 1
            print("[SCHED][tick_skipped] reason=cycle_running", flush=True)
            return {"status": "SKIPPED"}

        self.state = STATE_CYCLE_RUNNING
        try:
            return self._run_cycle_locked()
        except Exception as exc:
            self._metrics["errors"] += 1
            self.last_error = str(exc)
            print(f"[SCHED][cycle_error] error={exc}", flush=True)
            return {"status": "ERROR", "error": str(exc)}
        finally:
            self._metrics["cycles"] += 1
            self.last_cycle_ts = int(time.time())
            self.state = STATE_IDLE
            self._cycle_lock.release()

    def _run_cycle_locked(self) -> dict:
        previous = self.price_store.get()
        try:
            snapshot = self.market_data.get_market_data()
        except MarketDataUnavailableError as exc:
            self._metrics["no_data"] += 1
            self.last_error = str(exc)
            print(f"[SCHED][no_data] error={exc}", flush=True)
            self.notifier.send_message(format_error(str(exc)))
            return {"status": "NO_DATA", "error": str(exc)}

        try:
            alerts = check_significant_changes(snapshot, previous, self.alert_threshold)
            if alerts:
                print(f"[SCHED][alerts] count={len(alerts)} symbols={','.join(a.symbol for a in alerts)}", flush=True)
                self.notifier.send_message(format_price_alert(alerts))
                self._metrics["alerts_sent"] += 1

            report_sent = False
            if self.report_hour_checker() and has_significant_changes(snapshot, previous, self.report_min_change):
                report_sent = self._send_report(snapshot)
        finally:
            self.price_store.set(snapshot)

        self.last_error = None
        return {
            "status": "OK",
            "source": snapshot.source,
            "alerts": len(alerts),
            "report_sent": report_sent,
        }

    def _send_report(self, snapshot) -> bool:
        print("[SCHED][report] sending scheduled report", flush=True)
        try:
            sent = self.reporting.send_report(snapshot, with_ai=True)
        except Exception as exc:
            print(f"[SCHED][report_failed] error={exc} fallback=simple", flush=True)
            sent = self.reporting.send_report(snapshot, with_ai=False)
        if sent:
            self._metrics["reports_sent"] += 1
        return sent

    def trigger(self) -> dict:
        return self.run_cycle()

    def _loop(self) -> None:
        if self.run_on_start and not self._stop_event.is_set():
            self.run_cycle()
        while not self._stop_event.wait(self.interval_sec):
            self.run_cycle()

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, daemon=True, name="market-scheduler")
        print(f"[SCHED][start] interval_sec={self.interval_sec} run_on_start={int(self.run_on_start)}", flush=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        print("[SCHED][stop]", flush=True)

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def metrics(self) -> dict:
        return {
            **self._metrics,
            "state": self.state,
            "running": self.running,
            "interval_sec": self.interval_sec,
            "last_cycle_ts": self.last_cycle_ts,
            "last_error": self.last_error,
            "has_last_prices": self.price_store.get() is not None,
        }
