# portfolio_engine/schemas/quotes.py
"""Pydantic schemas for the quote endpoints."""

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field

from portfolio_engine.models import QuoteProvenance


class QuoteRequest(BaseModel):
    symbols: list[str] = Field(
        default_factory=list,
        max_length=500,
        description="Provider symbols, e.g. ['AAPL', 'VUSA.L']"
    )


class QuoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    symbol: str
    price: float = Field(..., description="Pounds for penny-quoted symbols")
    volume: int | None
    currency: str | None
    fetched_at: dt.datetime
    provenance: QuoteProvenance
    is_expired: bool


class QuotesResponse(BaseModel):
    quotes: list[QuoteResponse]
    missing: list[str] = Field(
        default_factory=list,
        description="Requested symbols with no live or cached quote"
    )


class CacheClearResponse(BaseModel):
    removed: int = Field(..., description="Number of cached quotes dropped")
