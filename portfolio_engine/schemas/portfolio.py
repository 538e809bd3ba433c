# portfolio_engine/schemas/portfolio.py
"""
Pydantic schemas for portfolio input (holdings and transactions).

The engine does not persist anything: every request carries the holdings
or transactions it is about. These schemas only check shape and types;
domain rules (non-negative quantity, BUY needs a symbol, ...) are enforced
when converting to the service types, so violations surface as a
ValidationError (400) naming the offending field.
"""

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field, field_validator

from portfolio_engine.models import AssetCategory, TransactionType
from portfolio_engine.services.valuation.types import Holding, Transaction


# =============================================================================
# HOLDINGS
# =============================================================================

class HoldingInput(BaseModel):
    """One holding as entered by the user."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "h1",
                "ticker": "VUSA",
                "name": "Vanguard S&P 500 UCITS ETF",
                "category": "ETF",
                "quantity": 120,
                "manual_price": 85.10,
                "avg_cost": 72.40,
                "account": "ISA",
                "exchange": "LSE",
                "issuer": "Vanguard",
            }
        }
    )

    id: str = Field(..., min_length=1, description="Caller-assigned identifier")
    ticker: str = Field(default="", description="Ticker; bare when exchange is given")
    name: str = Field(default="", description="Display name")
    category: AssetCategory = Field(default=AssetCategory.STOCK)
    quantity: float = Field(..., description="Units held (>= 0)")
    manual_price: float = Field(default=0.0, description="Manually entered price (>= 0)")
    live_price: float | None = Field(default=None, description="Known live price")
    avg_cost: float | None = Field(default=None, description="Acquisition cost per unit")
    account: str | None = None
    section: str | None = None
    theme: str | None = None
    exchange: str | None = Field(default=None, description="Listing exchange (e.g. LSE)")
    sector: str | None = None
    country: str | None = None
    issuer: str | None = Field(default=None, description="Fund issuer hint (e.g. iShares)")
    include: bool = Field(default=True, description="Excluded holdings are ignored")

    @field_validator("ticker")
    @classmethod
    def normalize_ticker(cls, v: str) -> str:
        """Trim whitespace and uppercase."""
        return v.strip().upper()

    @field_validator("exchange")
    @classmethod
    def normalize_exchange(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip().upper() or None

    def to_domain(self) -> Holding:
        """
        Raises:
            ValidationError: Negative quantity or manual price
        """
        return Holding(
            id=self.id,
            ticker=self.ticker,
            name=self.name or self.ticker,
            category=self.category,
            quantity=self.quantity,
            manual_price=self.manual_price,
            live_price=self.live_price,
            avg_cost=self.avg_cost,
            account=self.account,
            section=self.section,
            theme=self.theme,
            exchange=self.exchange,
            sector=self.sector,
            country=self.country,
            issuer=self.issuer,
            include=self.include,
        )


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionInput(BaseModel):
    """One dated cash or trade event."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "type": "BUY",
                "date": "2024-01-15",
                "symbol": "AAPL",
                "quantity": 10,
                "amount": 1855.20,
            }
        }
    )

    type: TransactionType
    date: dt.date
    symbol: str | None = Field(default=None, description="Required for BUY/SELL")
    quantity: float = Field(default=0.0, description="Units; sign is ignored")
    amount: float = Field(default=0.0, description="Total cash moved (>= 0)")

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip().upper() or None

    def to_domain(self) -> Transaction:
        """
        Raises:
            ValidationError: Negative amount, or BUY/SELL without symbol/quantity
        """
        return Transaction(
            type=self.type,
            date=self.date,
            symbol=self.symbol,
            quantity=self.quantity,
            amount=self.amount,
        )
