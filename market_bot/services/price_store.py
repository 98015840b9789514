from __future__ import annotations

import threading

from market_bot.schemas.market import MarketSnapshot


class LastPriceStore:
    """Single-slot holder for the previous cycle's snapshot."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshot: MarketSnapshot | None = None
        self.writes = 0

    def get(self) -> MarketSnapshot | None:
        with self._lock:
            return self._snapshot

    def set(self, snapshot: MarketSnapshot) -> None:
        with self._lock:
            self._snapshot = snapshot
            self.writes += 1

    def clear(self) -> None:
        with self._lock:
            self._snapshot = None
