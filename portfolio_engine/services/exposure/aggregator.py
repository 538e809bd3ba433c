# portfolio_engine/services/exposure/aggregator.py
"""
Look-through exposure aggregation.

Turns a list of holdings into "what do I actually own":

    1. Portfolio weight of every included holding (value ÷ total)
    2. Fund holdings (ETF/FUND) are looked up concurrently under one
       deadline per request, and every lookup becomes a LookThroughSuccess
       or a LookThroughSkipped
    3. Contributions are accumulated in holding input order:
        - direct instrument: its full weight to its own symbol, and to its
          sector/country when known
        - fund: (constituent% / 100) × fund weight to each constituent's
          symbol, and to its sector/country when known
        - skipped fund: nothing
    4. Buckets are ranked by weight, descending; ties keep first-seen order

One level only: constituents are never expanded again, even when a
constituent is itself a fund.

Weights are reported in percentage points.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from portfolio_engine.services.constants import DEFAULT_TOP_EXPOSURES, FUND_WEIGHT_SCALE
from portfolio_engine.services.exposure.types import (
    BucketExposure,
    ExposureBreakdown,
    LookThroughResult,
    LookThroughSkipped,
    LookThroughSuccess,
    SymbolExposure,
)
from portfolio_engine.services.protocols import FundHoldingsSource
from portfolio_engine.services.valuation.calculators import (
    calculate_portfolio_weights,
    calculate_value,
)
from portfolio_engine.services.valuation.service import quote_symbol
from portfolio_engine.services.valuation.types import Holding
from portfolio_engine.utils.concurrency import CallRunner, start_deadline

logger = logging.getLogger(__name__)


@dataclass
class _SymbolBucket:
    name: str
    weight: float = 0.0
    sources: list[tuple[str, float]] = field(default_factory=list)


class _ExposureAccumulator:
    """Insertion-ordered weight maps for symbol, sector and country."""

    def __init__(self) -> None:
        self.symbols: dict[str, _SymbolBucket] = {}
        self.sectors: dict[str, float] = {}
        self.countries: dict[str, float] = {}

    def add(
            self,
            key: str,
            name: str,
            weight: float,
            source: str,
            sector: str | None = None,
            country: str | None = None,
    ) -> None:
        bucket = self.symbols.get(key)
        if bucket is None:
            bucket = self.symbols[key] = _SymbolBucket(name=name or key)
        bucket.weight += weight
        bucket.sources.append((source, weight))

        sector = (sector or "").strip()
        if sector:
            self.sectors[sector] = self.sectors.get(sector, 0.0) + weight

        country = (country or "").strip()
        if country:
            self.countries[country] = self.countries.get(country, 0.0) + weight

    def ranked_symbols(self) -> list[SymbolExposure]:
        exposures = [
            SymbolExposure(
                symbol=key,
                name=bucket.name,
                weight=bucket.weight,
                sources=tuple(bucket.sources),
            )
            for key, bucket in self.symbols.items()
        ]
        # sorted() is stable: equal weights stay in first-seen order
        return sorted(exposures, key=lambda e: -e.weight)

    @staticmethod
    def ranked_buckets(buckets: dict[str, float]) -> list[BucketExposure]:
        return sorted(
            (BucketExposure(label=label, weight=weight) for label, weight in buckets.items()),
            key=lambda b: -b.weight,
        )


class ExposureAggregator:
    """
    Aggregates direct and look-through exposure for a portfolio.

    Attributes:
        _holdings_source: Fund constituent provider
        _timeout: Seconds allowed for all fund lookups of one request
        _top_n: Symbols kept in top_exposures

    Example:
        aggregator = ExposureAggregator(holdings_source=CascadingHoldingsSource(...))
        breakdown = aggregator.aggregate(holdings)
        breakdown.top_exposures[0].symbol   # largest underlying position
        breakdown.skipped                   # funds with no look-through
    """

    def __init__(
            self,
            holdings_source: FundHoldingsSource,
            max_workers: int = 4,
            timeout_seconds: float = 10.0,
            top_n: int = DEFAULT_TOP_EXPOSURES,
            runner: CallRunner | None = None,
    ) -> None:
        if top_n < 1:
            raise ValueError("top_n must be at least 1")

        self._holdings_source = holdings_source
        self._timeout = timeout_seconds
        self._top_n = top_n
        self._runner = runner or CallRunner(name="look-through", max_concurrent=max_workers)

    def aggregate(self, holdings: Iterable[Holding]) -> ExposureBreakdown:
        """
        Build the exposure breakdown for the included holdings.

        Fund lookup failures never raise: the fund is reported in
        `skipped` and contributes nothing.
        """
        weighted = calculate_portfolio_weights(holdings)
        total_value = sum(calculate_value(h) for h, _ in weighted)

        lookups = self._look_through(
            [h for h, weight in weighted if h.is_look_through and weight > 0]
        )

        acc = _ExposureAccumulator()

        for holding, weight in weighted:
            if weight <= 0:
                continue

            pct = weight * 100
            source = self._display_symbol(holding)

            if not holding.is_look_through:
                acc.add(
                    key=source,
                    name=holding.name,
                    weight=pct,
                    source=source,
                    sector=holding.sector,
                    country=holding.country,
                )
                continue

            result = lookups[quote_symbol(holding)]
            if isinstance(result, LookThroughSkipped):
                continue

            for constituent in result.constituents:
                key = constituent.key
                if not key:
                    continue
                acc.add(
                    key=key,
                    name=constituent.name,
                    weight=(constituent.weight / FUND_WEIGHT_SCALE) * pct,
                    source=source,
                    sector=constituent.sector,
                    country=constituent.country,
                )

        ranked = acc.ranked_symbols()
        skipped = [r for r in lookups.values() if isinstance(r, LookThroughSkipped)]

        logger.info(
            f"Aggregated {len(weighted)} holdings into {len(ranked)} symbols "
            f"({len(lookups) - len(skipped)} funds looked through, {len(skipped)} skipped)"
        )

        return ExposureBreakdown(
            top_exposures=ranked[:self._top_n],
            sector_exposure=acc.ranked_buckets(acc.sectors),
            country_exposure=acc.ranked_buckets(acc.countries),
            skipped=skipped,
            total_value=total_value,
            all_exposures=ranked,
        )

    # =========================================================================
    # FUND LOOKUPS
    # =========================================================================

    def _look_through(self, funds: list[Holding]) -> dict[str, LookThroughResult]:
        """Look up each distinct fund concurrently; one result per fund symbol."""
        issuers: dict[str, str | None] = {}
        for holding in funds:
            issuers.setdefault(quote_symbol(holding), holding.issuer)

        deadline = start_deadline(self._timeout)
        futures = {
            symbol: self._runner.submit(self._holdings_source.get_holdings, symbol, issuer)
            for symbol, issuer in issuers.items()
        }

        return {
            symbol: self._collect(symbol, future, deadline)
            for symbol, future in futures.items()
        }

    def _collect(self, symbol: str, future, deadline: float) -> LookThroughResult:
        try:
            constituents = self._runner.wait(
                future, self._timeout, f"fund holdings for {symbol}", deadline=deadline
            )
        except Exception as e:
            logger.warning(f"Look-through skipped for {symbol}: {e}")
            return LookThroughSkipped(fund_symbol=symbol, reason=str(e))

        usable = tuple(c for c in constituents or [] if c.weight > 0)
        if not usable:
            logger.warning(f"Look-through skipped for {symbol}: no constituents reported")
            return LookThroughSkipped(fund_symbol=symbol, reason="no constituents reported")

        logger.debug(f"Looked through {symbol}: {len(usable)} constituents")
        return LookThroughSuccess(fund_symbol=symbol, constituents=usable)

    @staticmethod
    def _display_symbol(holding: Holding) -> str:
        return (holding.ticker or holding.name).strip().upper()
