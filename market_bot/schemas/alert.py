from pydantic import BaseModel


class PriceAlert(BaseModel):
    symbol: str
    change_pct: float
    current_price: float
    previous_price: float
