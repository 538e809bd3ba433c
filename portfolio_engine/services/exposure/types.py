# portfolio_engine/services/exposure/types.py
"""
Result types for look-through exposure aggregation.

Fund lookups produce a discriminated LookThroughResult:
    LookThroughSuccess  - constituents were returned
    LookThroughSkipped  - the fund contributes nothing, with the reason

The public breakdown only lists what was aggregated; skips are carried in a
separate diagnostic field so callers and tests can see why a fund is absent.

All weights are in percentage points of the whole portfolio.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from portfolio_engine.services.market_data.base import FundConstituent


# =============================================================================
# FUND LOOKUP RESULTS
# =============================================================================

@dataclass(frozen=True)
class LookThroughSuccess:
    fund_symbol: str
    constituents: tuple[FundConstituent, ...]

    @property
    def coverage(self) -> float:
        """Sum of constituent weights (≈100 for a complete fund report)."""
        return sum(c.weight for c in self.constituents)


@dataclass(frozen=True)
class LookThroughSkipped:
    fund_symbol: str
    reason: str


LookThroughResult = Union[LookThroughSuccess, LookThroughSkipped]


# =============================================================================
# AGGREGATED EXPOSURE
# =============================================================================

@dataclass(frozen=True)
class SymbolExposure:
    """
    Aggregated weight of one underlying instrument.

    Attributes:
        symbol: Aggregation key (ticker, or name for unlisted lines)
        name: First name seen for the key
        weight: Percentage points of the portfolio
        sources: (holding symbol, contributed weight) in first-seen order;
            a direct holding lists itself
    """

    symbol: str
    name: str
    weight: float
    sources: tuple[tuple[str, float], ...] = ()


@dataclass(frozen=True)
class BucketExposure:
    """Aggregated weight of one sector or country."""

    label: str
    weight: float


@dataclass(frozen=True)
class ExposureBreakdown:
    """
    Portfolio exposure after look-through.

    Attributes:
        top_exposures: Highest weighted symbols, truncated to the top N
        sector_exposure: Every sector bucket, descending
        country_exposure: Every country bucket, descending
        skipped: Funds whose look-through was unavailable
        total_value: Value of the included holdings
        all_exposures: Every symbol bucket, descending (untruncated)
    """

    top_exposures: list[SymbolExposure]
    sector_exposure: list[BucketExposure]
    country_exposure: list[BucketExposure]
    skipped: list[LookThroughSkipped] = field(default_factory=list)
    total_value: float = 0.0
    all_exposures: list[SymbolExposure] = field(default_factory=list)

    @property
    def symbol_count(self) -> int:
        return len(self.all_exposures)

    @property
    def total_weight(self) -> float:
        """Sum of untruncated symbol weights."""
        return sum(e.weight for e in self.all_exposures)

    def weight_of(self, symbol: str) -> float:
        key = symbol.strip().upper()
        for exposure in self.all_exposures:
            if exposure.symbol == key:
                return exposure.weight
        return 0.0
