import math

from pydantic import BaseModel, field_validator


class MainAssetRecord(BaseModel):
    price: float | None = None
    low_24h: float | None = None
    high_24h: float | None = None
    change_24h_pct: float | None = None
    change_7d_pct: float | None = None


class AltAssetRecord(BaseModel):
    price: float
    change_24h_pct: float
    volume_24h_quote: float


class MarketSnapshot(BaseModel):
    as_of: int
    source: str
    main_assets: dict[str, MainAssetRecord]
    main_symbols: dict[str, str] = {}
    alt_assets: dict[str, AltAssetRecord] = {}
    dominance_pct: float
    dominance_change_pct: float = 0.0
    dominance_fallback: bool = False

    @field_validator("dominance_pct")
    @classmethod
    def validate_dominance(cls, value: float) -> float:
        if not math.isfinite(value) or not 0.0 <= value <= 100.0:
            raise ValueError(f"dominance must be a finite percentage, got {value!r}")
        return value

    @field_validator("dominance_change_pct")
    @classmethod
    def finite_dominance_change(cls, value: float) -> float:
        if not math.isfinite(value):
            return 0.0
        return value

    def symbol_for(self, coin_id: str) -> str:
        return self.main_symbols.get(coin_id, coin_id.upper())

    def top_gainers(self, limit: int | None = None) -> list[tuple[str, AltAssetRecord]]:
        rows = sorted(self.alt_assets.items(), key=lambda kv: kv[1].change_24h_pct, reverse=True)
        if limit is not None:
            rows = rows[:limit]
        return rows
