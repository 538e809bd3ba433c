# portfolio_engine/services/protocols.py
"""
Protocol interfaces for the engine's external collaborators.

Using typing.Protocol enables structural subtyping:
- Concrete providers satisfy protocols without inheriting from them
- Test doubles (MagicMock, small fakes) work without explicit inheritance
- The engine's external boundary is documented in one place

Every method here may block on the network; callers wrap them with a
timeout (utils.concurrency) and treat any exception as a recoverable
provider failure.
"""

from __future__ import annotations

from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from portfolio_engine.services.market_data.base import (
        FundConstituent,
        PricePoint,
        Quote,
        RawQuote,
    )


class QuoteSource(Protocol):
    """Batch current-price source. May raise on any failure."""

    def get_batch_quotes(self, symbols: list[str]) -> list[RawQuote]:
        ...


class HistoricalPriceSource(Protocol):
    """
    Full daily close history for one symbol, ascending by date.

    Returns an empty list when the symbol has no data; raises only for
    transport failures.
    """

    def get_full_history(self, symbol: str) -> list[PricePoint]:
        ...


class FundHoldingsSource(Protocol):
    """Underlying constituents of a fund. May raise; callers skip the fund."""

    def get_holdings(
        self,
        fund_symbol: str,
        issuer: str | None = None,
    ) -> list[FundConstituent]:
        ...


class QuoteFetcherProtocol(Protocol):
    """Interface required by ValuationService."""

    def fetch_quotes(self, symbols: list[str]) -> dict[str, Quote]:
        ...
