# portfolio_engine/services/valuation/types.py
"""
Internal data types for the Valuation Service.

These dataclasses are used internally by the calculators and engines.
They are NOT Pydantic schemas - those are defined in portfolio_engine/schemas/
for API serialization.

Design Principles:
- Immutable value objects (frozen=True); "updating" a holding means
  dataclasses.replace()
- Plain float arithmetic, no rounding inside the engine
- Use date (not datetime) for valuation dates
- Optional fields use None, not sentinel values
- Malformed input fails at construction with ValidationError

Type Hierarchy:
    Holding             - One position as entered by the user
    Transaction         - One cash or trade event
    HoldingValuation    - Current value of one holding
    PortfolioValuation  - Current value of the whole portfolio
    HistoryPoint        - Single point in time series
    PortfolioHistory    - Time series result
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime

from portfolio_engine.models import (
    AssetCategory,
    QuoteProvenance,
    TransactionType,
    TRADE_TYPES,
)
from portfolio_engine.services.exceptions import ValidationError


# =============================================================================
# INPUTS
# =============================================================================

@dataclass(frozen=True)
class Holding:
    """
    A single position in the portfolio.

    Attributes:
        id: Caller-assigned identifier (echoed back in results)
        ticker: Symbol as entered; may be bare ("VUSA") when exchange is set
        name: Display name
        category: Asset category; ETF and FUND are looked through
        quantity: Units held (>= 0)
        manual_price: Price entered by the user (>= 0)
        live_price: Latest market price, when one was fetched
        avg_cost: Acquisition cost per unit, when known
        account: Account the holding sits in (e.g. "ISA", "SIPP")
        section: User grouping (e.g. "Core", "Satellite")
        theme: User grouping (e.g. "Tech", "Dividends")
        exchange: Listing exchange used to build the provider ticker
        sector: Sector of a direct instrument
        country: Country of a direct instrument
        issuer: Fund issuer hint for the holdings cascade ("iShares", ...)
        include: Excluded holdings are ignored by valuation and exposure
    """

    id: str
    ticker: str
    name: str
    category: AssetCategory
    quantity: float
    manual_price: float
    live_price: float | None = None
    avg_cost: float | None = None
    account: str | None = None
    section: str | None = None
    theme: str | None = None
    exchange: str | None = None
    sector: str | None = None
    country: str | None = None
    issuer: str | None = None
    include: bool = True

    def __post_init__(self) -> None:
        if not math.isfinite(self.quantity) or self.quantity < 0:
            raise ValidationError(
                f"Holding {self.id}: quantity must be a non-negative number, got {self.quantity}",
                field="quantity",
            )
        if not math.isfinite(self.manual_price) or self.manual_price < 0:
            raise ValidationError(
                f"Holding {self.id}: manual_price must be a non-negative number, "
                f"got {self.manual_price}",
                field="manual_price",
            )

    @property
    def has_live_price(self) -> bool:
        return (
            self.live_price is not None
            and math.isfinite(self.live_price)
            and self.live_price > 0
        )

    @property
    def effective_price(self) -> float:
        """Live price when usable, otherwise the manually entered price."""
        return self.live_price if self.has_live_price else self.manual_price

    @property
    def value(self) -> float:
        return self.effective_price * self.quantity

    @property
    def is_look_through(self) -> bool:
        return self.category.is_look_through


@dataclass(frozen=True)
class Transaction:
    """
    A dated cash or trade event.

    quantity is signed as entered; the engine uses its absolute value and
    lets the type decide direction. amount is the total cash moved and is
    never negative.
    """

    type: TransactionType
    date: date
    symbol: str | None = None
    quantity: float = 0.0
    amount: float = 0.0

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Raise ValidationError if the event cannot be replayed."""
        if not math.isfinite(self.amount) or self.amount < 0:
            raise ValidationError(
                f"{self.type.value} on {self.date}: amount must be >= 0, got {self.amount}",
                field="amount",
            )
        if self.type in TRADE_TYPES:
            if not self.symbol or not self.symbol.strip():
                raise ValidationError(
                    f"{self.type.value} on {self.date} requires a symbol",
                    field="symbol",
                )
            if not math.isfinite(self.quantity) or self.quantity == 0:
                raise ValidationError(
                    f"{self.type.value} {self.symbol} on {self.date} requires a non-zero quantity",
                    field="quantity",
                )

    @property
    def is_trade(self) -> bool:
        return self.type in TRADE_TYPES

    @property
    def normalized_symbol(self) -> str | None:
        return self.symbol.strip().upper() if self.symbol else None


# =============================================================================
# CURRENT VALUATION
# =============================================================================

@dataclass(frozen=True)
class HoldingValuation:
    """
    Current valuation for one holding.

    Attributes:
        holding: The holding as valued (live_price applied when fetched)
        symbol: Provider symbol used for the quote lookup
        price: Effective price used
        value: price × quantity
        cost_basis: avg_cost × quantity, None when avg_cost is unknown
        unrealized_pnl: value - cost_basis, None when cost basis is unknown
        pct_of_total: Share of the portfolio total in percentage points
        provenance: Where the live price came from (None = manual price)
        is_expired: True when a stale quote is past the staleness horizon
        quote_time: When the quote was originally fetched
    """

    holding: Holding
    symbol: str
    price: float
    value: float
    cost_basis: float | None
    unrealized_pnl: float | None
    pct_of_total: float
    provenance: QuoteProvenance | None = None
    is_expired: bool = False
    quote_time: datetime | None = None

    @property
    def unrealized_pnl_pct(self) -> float | None:
        if self.cost_basis is None or self.unrealized_pnl is None or self.cost_basis == 0:
            return None
        return self.unrealized_pnl / self.cost_basis * 100


@dataclass(frozen=True)
class PortfolioValuation:
    """
    Current valuation of all included holdings.

    Attributes:
        holdings: Per-holding valuations, in input order
        total_value: Sum of holding values
        total_cost_basis: Sum of known cost bases
        total_unrealized_pnl: Sum of known unrealized P&L
        missing_prices: Symbols for which no live or cached quote was found
        valued_at: When the valuation was computed (UTC)
    """

    holdings: list[HoldingValuation]
    total_value: float
    total_cost_basis: float
    total_unrealized_pnl: float
    missing_prices: list[str] = field(default_factory=list)
    valued_at: datetime | None = None

    @property
    def has_stale_prices(self) -> bool:
        return any(h.provenance == QuoteProvenance.STALE for h in self.holdings)


# =============================================================================
# HISTORY
# =============================================================================

@dataclass(frozen=True)
class HistoryPoint:
    """Portfolio value on one calendar day."""

    date: date
    cash: float
    invested: float
    total: float


@dataclass(frozen=True)
class PortfolioHistory:
    """
    Daily time series over [start_date, end_date].

    Attributes:
        start_date: First day of the window
        end_date: Last day of the window
        points: One HistoryPoint per calendar day, ascending
        symbols: Symbols traded by the transactions
        unpriced_symbols: Traded symbols with no close series at all
    """

    start_date: date
    end_date: date
    points: list[HistoryPoint]
    symbols: list[str] = field(default_factory=list)
    unpriced_symbols: list[str] = field(default_factory=list)

    @property
    def latest(self) -> HistoryPoint | None:
        return self.points[-1] if self.points else None
