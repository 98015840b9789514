from __future__ import annotations


class ProviderError(RuntimeError):
    """Raised when a single market data provider returns unusable data."""

    def __init__(self, provider: str, reason: str) -> None:
        super().__init__(f"{provider}: {reason}")
        self.provider = provider
        self.reason = reason


class MarketDataUnavailableError(RuntimeError):
    """Raised when every configured market data provider failed in one cycle."""

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(errors)
        detail = "; ".join(f"{name}: {reason}" for name, reason in self.errors.items())
        super().__init__(f"MARKET_DATA_UNAVAILABLE ({detail or 'no providers configured'})")


class AdviceUnavailableError(RuntimeError):
    pass
