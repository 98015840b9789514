from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests


class TelegramClient:
    """Telegram Bot API sender. Failures are logged and swallowed (returns None)."""

    _BASE_URL = "https://api.telegram.org"

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        session: Optional[Any] = None,
        base_url: Optional[str] = None,
        parse_mode: str = "Markdown",
        timeout: float = 10,
    ) -> None:
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.session = session or requests
        self.base_url = (base_url or self._BASE_URL).rstrip("/")
        self.parse_mode = parse_mode
        self.timeout = timeout
        self.sent = 0
        self.failed = 0

    def _url(self, method: str) -> str:
        return f"{self.base_url}/bot{self.bot_token}/{method}"

    def _post(self, method: str, body: Dict[str, Any]) -> Dict[str, Any]:
        response = self.session.post(self._url(method), json=body, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def send_message(self, text: str, chat_id: Optional[str] = None) -> Dict[str, Any] | None:
        body = {
            "chat_id": chat_id or self.chat_id,
            "text": text,
            "parse_mode": self.parse_mode,
        }
        try:
            payload = self._post("sendMessage", body)
        except Exception as exc:
            self.failed += 1
            print(f"[TELEGRAM][send_failed] error={exc}", flush=True)
            return None
        self.sent += 1
        return payload

    def send_message_with_keyboard(
        self,
        text: str,
        keyboard: List[List[Dict[str, str]]],
        chat_id: Optional[str] = None,
    ) -> Dict[str, Any] | None:
        body = {
            "chat_id": chat_id or self.chat_id,
            "text": text,
            "parse_mode": self.parse_mode,
            "reply_markup": {"inline_keyboard": keyboard},
        }
        try:
            payload = self._post("sendMessage", body)
        except Exception as exc:
            self.failed += 1
            print(f"[TELEGRAM][send_keyboard_failed] error={exc}", flush=True)
            return None
        self.sent += 1
        return payload

    def answer_callback_query(self, callback_query_id: str, text: str) -> Dict[str, Any] | None:
        try:
            return self._post(
                "answerCallbackQuery",
                {"callback_query_id": callback_query_id, "text": text},
            )
        except Exception as exc:
            print(f"[TELEGRAM][callback_answer_failed] error={exc}", flush=True)
            return None

    def set_webhook(self, url: str) -> Dict[str, Any] | None:
        try:
            payload = self._post("setWebhook", {"url": url})
        except Exception as exc:
            print(f"[TELEGRAM][webhook_set_failed] error={exc}", flush=True)
            return None
        print(f"[TELEGRAM][webhook_set] url={url}", flush=True)
        return payload

    def delete_webhook(self) -> Dict[str, Any] | None:
        try:
            payload = self._post("deleteWebhook", {})
        except Exception as exc:
            print(f"[TELEGRAM][webhook_delete_failed] error={exc}", flush=True)
            return None
        print("[TELEGRAM][webhook_deleted]", flush=True)
        return payload

    def get_me(self) -> Dict[str, Any]:
        response = self.session.get(self._url("getMe"), timeout=self.timeout)
        response.raise_for_status()
        return response.json()
