from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests


class BinanceRestClient:
    """Public Binance spot market endpoints; no API key required."""

    _BASE_URL = "https://api.binance.com/api/v3"

    def __init__(
        self,
        session: Optional[Any] = None,
        base_url: Optional[str] = None,
        timeout: float = 10,
    ) -> None:
        self.base_url = (base_url or self._BASE_URL).rstrip("/")
        self.session = session or requests
        self.timeout = timeout

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = self.session.get(
            f"{self.base_url}{path}",
            params=params,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def get_24h_tickers(self) -> List[Dict[str, Any]]:
        payload = self._get("/ticker/24hr")
        if not isinstance(payload, list):
            raise ValueError("24h tickers payload must be a list")
        return payload

    def get_24h_ticker(self, symbol: str) -> Dict[str, Any]:
        payload = self._get("/ticker/24hr", params={"symbol": symbol})
        if not isinstance(payload, dict):
            raise ValueError(f"24h ticker payload for {symbol} must be an object")
        return payload

    def get_daily_klines(self, symbol: str, limit: int = 7) -> List[List[Any]]:
        payload = self._get(
            "/klines",
            params={"symbol": symbol, "interval": "1d", "limit": limit},
        )
        if not isinstance(payload, list):
            raise ValueError(f"klines payload for {symbol} must be a list")
        return payload
