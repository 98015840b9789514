from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests


class CoinGeckoRestClient:
    """Minimal CoinGecko public REST client (simple price, markets, global)."""

    _BASE_URL = "https://api.coingecko.com/api/v3"

    def __init__(
        self,
        session: Optional[Any] = None,
        base_url: Optional[str] = None,
        vs_currency: str = "usd",
        timeout: float = 10,
    ) -> None:
        self.base_url = (base_url or self._BASE_URL).rstrip("/")
        self.session = session or requests
        self.vs_currency = vs_currency
        self.timeout = timeout

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = self.session.get(
            f"{self.base_url}{path}",
            headers={"accept": "application/json"},
            params=params,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def ping(self) -> bool:
        payload = self._get("/ping")
        return isinstance(payload, dict) and "gecko_says" in payload

    def get_simple_price(self, ids: List[str]) -> Dict[str, Any]:
        payload = self._get(
            "/simple/price",
            params={
                "ids": ",".join(ids),
                "vs_currencies": self.vs_currency,
                "include_24hr_change": "true",
            },
        )
        if not isinstance(payload, dict):
            raise ValueError("simple price payload must be an object")
        return payload

    def get_markets(
        self,
        *,
        ids: Optional[List[str]] = None,
        order: str = "market_cap_desc",
        per_page: int = 100,
        price_change_percentage: str = "24h,7d",
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {
            "vs_currency": self.vs_currency,
            "order": order,
            "per_page": min(max(per_page, 1), 250),
            "page": 1,
            "price_change_percentage": price_change_percentage,
        }
        if ids:
            params["ids"] = ",".join(ids)
        payload = self._get("/coins/markets", params=params)
        if not isinstance(payload, list):
            raise ValueError("markets payload must be a list")
        return payload

    def get_global(self) -> Dict[str, Any]:
        payload = self._get("/global")
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            raise ValueError("missing data in global payload")
        return data
