import math
import os
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, field_validator

_KNOWN_PROVIDERS = {"coingecko", "binance"}

DEFAULT_COIN_SYMBOLS = {
    "bitcoin": "BTC",
    "ethereum": "ETH",
    "binancecoin": "BNB",
    "solana": "SOL",
    "ripple": "XRP",
    "cardano": "ADA",
    "dogecoin": "DOGE",
    "tron": "TRX",
    "polkadot": "DOT",
    "litecoin": "LTC",
    "chainlink": "LINK",
    "avalanche-2": "AVAX",
    "toncoin": "TON",
}


def _split_csv(raw: str | None, default: list[str]) -> list[str]:
    if raw is None:
        return list(default)
    values = [s.strip() for s in raw.split(",") if s.strip()]
    return values or list(default)


def _parse_symbol_overrides(raw: str | None) -> dict[str, str]:
    out: dict[str, str] = {}
    for item in _split_csv(raw, []):
        coin_id, sep, symbol = item.partition(":")
        if not sep or not coin_id.strip() or not symbol.strip():
            raise ValueError(f"invalid MAIN_COIN_SYMBOLS entry: {item!r}")
        out[coin_id.strip().lower()] = symbol.strip().upper()
    return out


class Settings(BaseModel):
    TG_BOT_TOKEN: str
    TG_CHAT_ID: str

    OPENAI_API_KEY: str | None = None
    GEMINI_API_KEY: str | None = None
    DEEPSEEK_API_KEY: str | None = None
    AI_TEST_TOKENS: int = 50

    CHECK_INTERVAL_MIN: int = 15
    MAIN_COINS: list[str] = ["bitcoin", "ethereum"]
    MAIN_COIN_SYMBOLS: dict[str, str] = {}
    BTC_DOMINANCE_FALLBACK: float = 50.0

    PRICE_ALERT_THRESHOLD: float = 2.0
    SCHEDULED_REPORT_MIN_CHANGE: float = 2.0
    SCHEDULED_REPORT_HOURS: list[int] = [8, 14, 17, 20, 23]
    REPORT_TIMEZONE: str = "UTC"

    MIN_VOLUME_USD: float = 1_000_000.0
    TOP_COINS_LIMIT: int = 100
    TOP_GAINERS_LIMIT: int = 5
    QUOTE_CURRENCY: str = "USDT"
    MARKET_PROVIDERS: list[str] = ["coingecko", "binance"]

    RUN_ON_START: bool = True
    PORT: int = 3000
    WEBHOOK_URL: str | None = None

    @field_validator("TG_BOT_TOKEN", "TG_CHAT_ID")
    @classmethod
    def require_non_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be empty")
        return value.strip()

    @field_validator("OPENAI_API_KEY", "GEMINI_API_KEY", "DEEPSEEK_API_KEY", "WEBHOOK_URL")
    @classmethod
    def blank_key_is_none(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    @field_validator("MAIN_COINS")
    @classmethod
    def normalize_main_coins(cls, value: list[str]) -> list[str]:
        coins = [c.strip().lower() for c in value if c.strip()]
        if not coins:
            raise ValueError("at least one main coin is required")
        return coins

    @field_validator("MAIN_COIN_SYMBOLS", mode="before")
    @classmethod
    def parse_symbol_overrides(cls, value):
        if isinstance(value, str):
            return _parse_symbol_overrides(value)
        return value

    @field_validator("CHECK_INTERVAL_MIN", "TOP_COINS_LIMIT", "TOP_GAINERS_LIMIT", "AI_TEST_TOKENS")
    @classmethod
    def require_positive_int(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be >= 1")
        return value

    @field_validator("PRICE_ALERT_THRESHOLD", "SCHEDULED_REPORT_MIN_CHANGE", "MIN_VOLUME_USD")
    @classmethod
    def require_non_negative(cls, value: float) -> float:
        if not math.isfinite(value) or value < 0:
            raise ValueError("must be a finite non-negative number")
        return value

    @field_validator("BTC_DOMINANCE_FALLBACK")
    @classmethod
    def validate_dominance_fallback(cls, value: float) -> float:
        if not math.isfinite(value) or not 0.0 <= value <= 100.0:
            raise ValueError("must be within [0, 100]")
        return value

    @field_validator("SCHEDULED_REPORT_HOURS")
    @classmethod
    def validate_hours(cls, value: list[int]) -> list[int]:
        for hour in value:
            if not 0 <= hour <= 23:
                raise ValueError(f"hour out of range: {hour}")
        return sorted(set(value))

    @field_validator("REPORT_TIMEZONE")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone: {value!r}") from exc
        return value

    @field_validator("QUOTE_CURRENCY")
    @classmethod
    def normalize_quote(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("MARKET_PROVIDERS")
    @classmethod
    def validate_providers(cls, value: list[str]) -> list[str]:
        providers = [p.strip().lower() for p in value if p.strip()]
        unknown = [p for p in providers if p not in _KNOWN_PROVIDERS]
        if unknown:
            raise ValueError(f"unknown market providers: {','.join(unknown)}")
        if not providers:
            raise ValueError("at least one market provider is required")
        return providers

    def symbol_for(self, coin_id: str) -> str:
        if coin_id in self.MAIN_COIN_SYMBOLS:
            return self.MAIN_COIN_SYMBOLS[coin_id]
        return DEFAULT_COIN_SYMBOLS.get(coin_id, coin_id.upper())

    def main_symbols(self) -> dict[str, str]:
        return {coin: self.symbol_for(coin) for coin in self.MAIN_COINS}

    def enabled_ai_providers(self) -> list[str]:
        out: list[str] = []
        if self.OPENAI_API_KEY:
            out.append("openai")
        if self.GEMINI_API_KEY:
            out.append("gemini")
        if self.DEEPSEEK_API_KEY:
            out.append("deepseek")
        return out

    @classmethod
    def from_env(cls) -> "Settings":
        raw: dict = {
            "TG_BOT_TOKEN": os.getenv("TG_BOT_TOKEN"),
            "TG_CHAT_ID": os.getenv("TG_CHAT_ID"),
            "OPENAI_API_KEY": os.getenv("OPENAI_API_KEY"),
            "GEMINI_API_KEY": os.getenv("GEMINI_API_KEY"),
            "DEEPSEEK_API_KEY": os.getenv("DEEPSEEK_API_KEY"),
            "MAIN_COINS": _split_csv(os.getenv("MAIN_COINS"), ["bitcoin", "ethereum"]),
            "MAIN_COIN_SYMBOLS": os.getenv("MAIN_COIN_SYMBOLS") or {},
            "MARKET_PROVIDERS": _split_csv(os.getenv("MARKET_PROVIDERS"), ["coingecko", "binance"]),
        }

        raw_hours = os.getenv("SCHEDULED_REPORT_HOURS")
        if raw_hours is not None:
            raw["SCHEDULED_REPORT_HOURS"] = _split_csv(raw_hours, [])

        # unset optional values fall back to the model defaults
        for name in (
            "AI_TEST_TOKENS",
            "CHECK_INTERVAL_MIN",
            "BTC_DOMINANCE_FALLBACK",
            "PRICE_ALERT_THRESHOLD",
            "SCHEDULED_REPORT_MIN_CHANGE",
            "REPORT_TIMEZONE",
            "MIN_VOLUME_USD",
            "TOP_COINS_LIMIT",
            "TOP_GAINERS_LIMIT",
            "QUOTE_CURRENCY",
            "RUN_ON_START",
            "PORT",
            "WEBHOOK_URL",
        ):
            value = os.getenv(name)
            if value is not None and value.strip() != "":
                raw[name] = value.strip()

        return cls.model_validate(raw)


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
