from typing import Dict, List, Union
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class PricePoint(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    price: float
    last_updated_at: str = Field(..., alias="lastUpdatedAt")


class StockEnvelope(BaseModel):
    """Single-sample upstream shape: ``{"stock": {...}}``."""
    stock: PricePoint


UpstreamPrices = Union[List[PricePoint], StockEnvelope]
upstream_prices = TypeAdapter(UpstreamPrices)


class TickerDirectory(BaseModel):
    stocks: Dict[str, str] = Field(default_factory=dict)


class AuthResponse(BaseModel):
    token_type: str = "Bearer"
    access_token: str
    expires_in: float


class AverageStockPriceResponse(BaseModel):
    averageStockPrice: float
    priceHistory: List[PricePoint]


class StockSummary(BaseModel):
    averagePrice: float
    priceHistory: List[PricePoint]


class StockCorrelationResponse(BaseModel):
    correlation: float
    stocks: Dict[str, StockSummary]


class StockStats(BaseModel):
    averagePrice: float
    stdDev: float


class CorrelationMatrixResponse(BaseModel):
    tickers: List[str]
    matrix: Dict[str, Dict[str, float]]
    stats: Dict[str, StockStats]


class ErrorBody(BaseModel):
    error: str
    message: str
