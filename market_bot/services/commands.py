from __future__ import annotations

from typing import Callable

_KEYBOARD = [
    [
        {"text": "📊 Full Report", "callback_data": "report"},
        {"text": "📈 Prices Only", "callback_data": "prices"},
    ]
]


def format_welcome() -> str:
    return (
        "🤖 *Welcome to Crypto Bot!*\n\n"
        "I monitor cryptocurrency prices and send notifications about important changes.\n\n"
        "*Available commands:*\n"
        "📊 /report - Get full report with AI\n"
        "📈 /prices - Get prices only\n"
        "🔍 /status - Check services status\n\n"
        "*Or use buttons below:*"
    )


def format_help(settings) -> str:
    hours = ", ".join(str(h) for h in settings.SCHEDULED_REPORT_HOURS) or "none"
    coins = "\n".join(f"• {coin.upper()}" for coin in settings.MAIN_COINS)
    return (
        "📖 *Command Help*\n\n"
        "*Main commands:*\n"
        "📊 /report - Get full report with AI analysis\n"
        "📈 /prices - Get prices and top gainers\n"
        "🔍 /status - Check all services status\n"
        "📖 /help - Show this help\n\n"
        "*Automatic notifications:*\n"
        f"🚨 Price Alerts - every {settings.CHECK_INTERVAL_MIN} minutes when change >= {settings.PRICE_ALERT_THRESHOLD}%\n"
        f"📊 Scheduled Reports - at {hours}:00 ({settings.REPORT_TIMEZONE})\n\n"
        f"*Monitored coins:*\n{coins}"
    )


class CommandDispatcher:
    """Maps inbound chat commands and button callbacks onto report actions."""

    def __init__(self, *, reporting, notifier, settings, status_text: Callable[[], str]) -> None:
        self.reporting = reporting
        self.notifier = notifier
        self.settings = settings
        self.status_text = status_text
        self.handled = 0

    def handle_command(self, text: str) -> str:
        # "/report@MyBot extra" -> "/report"
        command = text.strip().split()[0].split("@")[0].lower() if text.strip() else ""
        self.handled += 1
        try:
            if command == "/start":
                self.notifier.send_message_with_keyboard(format_welcome(), _KEYBOARD)
            elif command == "/report":
                self.notifier.send_message("📊 *Generating report...*")
                self.reporting.send_report(with_ai=True)
            elif command == "/prices":
                self.notifier.send_message("📈 *Getting prices...*")
                self.reporting.send_prices()
            elif command == "/status":
                self.notifier.send_message(self.status_text())
            elif command == "/help":
                self.notifier.send_message(format_help(self.settings))
            else:
                self.notifier.send_message("❌ Unknown command. Use /report or /prices to get data.")
                return "unknown"
        except Exception as exc:
            print(f"[CMD][command_failed] command={command} error={exc}", flush=True)
            self.notifier.send_message("❌ Command processing error")
            return "error"
        return command.lstrip("/")

    def handle_callback_query(self, callback_query: dict) -> str:
        query_id = str(callback_query.get("id", ""))
        data = callback_query.get("data")
        try:
            if data == "report":
                self.notifier.answer_callback_query(query_id, "📊 Generating full report...")
                self.reporting.send_report(with_ai=True)
            elif data == "prices":
                self.notifier.answer_callback_query(query_id, "📈 Getting prices...")
                self.reporting.send_prices()
            else:
                self.notifier.answer_callback_query(query_id, "❌ Unknown command")
                return "unknown"
        except Exception as exc:
            print(f"[CMD][callback_failed] data={data} error={exc}", flush=True)
            self.notifier.answer_callback_query(query_id, "❌ Processing error")
            return "error"
        return str(data)

    def _from_configured_chat(self, message) -> bool:
        chat = message.get("chat") if isinstance(message, dict) else None
        chat_id = str((chat or {}).get("id", ""))
        if chat_id != str(self.settings.TG_CHAT_ID):
            print(f"[CMD][foreign_chat_ignored] chat_id={chat_id}", flush=True)
            return False
        return True

    def process_update(self, update: dict) -> str | None:
        message = update.get("message")
        if isinstance(message, dict):
            if not self._from_configured_chat(message):
                return None
            text = message.get("text")
            if isinstance(text, str) and text.startswith("/"):
                return self.handle_command(text)
            return None

        callback_query = update.get("callback_query")
        if isinstance(callback_query, dict):
            if not self._from_configured_chat(callback_query.get("message")):
                return None
            return self.handle_callback_query(callback_query)
        return None
