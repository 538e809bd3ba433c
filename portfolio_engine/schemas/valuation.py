# portfolio_engine/schemas/valuation.py
"""
Pydantic schemas for Portfolio Valuation.

These schemas handle:
- Current valuation requests and responses
- Valuation history (time series)
"""

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field

from portfolio_engine.models import QuoteProvenance
from portfolio_engine.schemas.portfolio import HoldingInput, TransactionInput


# =============================================================================
# CURRENT VALUATION
# =============================================================================

class ValuationRequest(BaseModel):
    holdings: list[HoldingInput] = Field(default_factory=list)
    refresh_prices: bool = Field(
        default=True,
        description="Fetch live quotes before valuing (false = use given prices)"
    )


class HoldingValuationResponse(BaseModel):
    """Valuation of a single holding."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    ticker: str
    name: str
    symbol: str = Field(..., description="Provider symbol used for the quote")
    account: str | None
    quantity: float
    price: float = Field(..., description="Effective price (live, else manual)")
    value: float
    cost_basis: float | None = Field(..., description="None when avg_cost is unknown")
    unrealized_pnl: float | None
    unrealized_pnl_pct: float | None
    pct_of_total: float = Field(..., description="Share of portfolio in percentage points")
    price_provenance: QuoteProvenance | None = Field(
        ...,
        description="live / stale, or null when the manual price was used"
    )
    price_expired: bool = Field(
        default=False,
        description="True when a stale quote is past the staleness horizon"
    )
    quote_time: dt.datetime | None = None


class PortfolioValuationResponse(BaseModel):
    """Complete current valuation."""

    holdings: list[HoldingValuationResponse]
    total_value: float
    total_cost_basis: float
    total_unrealized_pnl: float
    missing_prices: list[str] = Field(
        default_factory=list,
        description="Symbols with neither a live nor a cached quote"
    )
    has_stale_prices: bool
    valued_at: dt.datetime | None


# =============================================================================
# HISTORY
# =============================================================================

class HistoryRequest(BaseModel):
    transactions: list[TransactionInput] = Field(default_factory=list)
    start_date: dt.date | None = Field(
        default=None,
        description="First day (default: end_date minus the default window)"
    )
    end_date: dt.date | None = Field(default=None, description="Last day (default: today)")
    initial_cash: float = Field(default=0.0, description="Flat cash balance, used only when there are no transactions")


class HistoryPointResponse(BaseModel):
    """Portfolio value on one day."""

    model_config = ConfigDict(from_attributes=True)

    date: dt.date
    cash: float
    invested: float
    total: float


class PortfolioHistoryResponse(BaseModel):
    """Daily time series."""

    start_date: dt.date
    end_date: dt.date
    points: list[HistoryPointResponse]
    unpriced_symbols: list[str] = Field(
        default_factory=list,
        description="Traded symbols without any close series (valued at 0)"
    )
