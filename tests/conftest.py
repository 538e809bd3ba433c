# tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Fake quote, history and fund holdings sources
- A deterministic clock for the quote cache
- A TestClient wired to the fakes
- Sample data factories
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("APP_NAME", "Test App")

import threading
from datetime import date, datetime, timedelta, timezone

import pytest

from portfolio_engine.models import AssetCategory, QuoteProvenance, TransactionType
from portfolio_engine.services.exceptions import ProviderUnavailableError
from portfolio_engine.services.market_data.base import (
    FundConstituent,
    PricePoint,
    Quote,
    RawQuote,
)
from portfolio_engine.services.valuation.types import Holding, Transaction


# =============================================================================
# FAKE QUOTE SOURCE
# =============================================================================

class FakeQuoteSource:
    """
    In-memory QuoteSource.

    Prices are configured per symbol; a symbol without a price is omitted
    from the response. `fail_batches` makes the given call numbers (1-based)
    raise instead of answering.
    """

    def __init__(self, prices: dict[str, float] | None = None):
        self.prices: dict[str, float] = dict(prices or {})
        self.currencies: dict[str, str] = {}
        self.calls: list[list[str]] = []
        self.fail_batches: set[int] = set()
        self.fail_all = False

    def get_batch_quotes(self, symbols: list[str]) -> list[RawQuote]:
        self.calls.append(list(symbols))
        if self.fail_all or len(self.calls) in self.fail_batches:
            raise ProviderUnavailableError(provider="fake", reason="simulated outage")
        return [
            RawQuote(symbol=s, price=self.prices[s], currency=self.currencies.get(s))
            for s in symbols
            if s in self.prices
        ]


# =============================================================================
# FAKE HISTORY SOURCE
# =============================================================================

class FakeHistorySource:
    """In-memory HistoricalPriceSource with per-symbol failures."""

    def __init__(self, series: dict[str, list[PricePoint]] | None = None):
        self.series = dict(series or {})
        self.errors: dict[str, Exception] = {}
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def get_full_history(self, symbol: str) -> list[PricePoint]:
        with self._lock:
            self.calls.append(symbol)
        if symbol in self.errors:
            raise self.errors[symbol]
        return list(self.series.get(symbol, []))


# =============================================================================
# FAKE FUND HOLDINGS SOURCE
# =============================================================================

class FakeHoldingsSource:
    """In-memory FundHoldingsSource; unknown funds raise."""

    def __init__(self, funds: dict[str, list[FundConstituent]] | None = None):
        self.funds = dict(funds or {})
        self.errors: dict[str, Exception] = {}
        self.calls: list[tuple[str, str | None]] = []
        self._lock = threading.Lock()

    def get_holdings(self, fund_symbol: str, issuer: str | None = None) -> list[FundConstituent]:
        with self._lock:
            self.calls.append((fund_symbol, issuer))
        if fund_symbol in self.errors:
            raise self.errors[fund_symbol]
        if fund_symbol not in self.funds:
            raise ProviderUnavailableError(provider="fake", reason=f"unknown fund {fund_symbol}")
        return list(self.funds[fund_symbol])


# =============================================================================
# CLOCK
# =============================================================================

class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 6, 3, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def quote_source() -> FakeQuoteSource:
    return FakeQuoteSource()


@pytest.fixture
def history_source() -> FakeHistorySource:
    return FakeHistorySource()


@pytest.fixture
def holdings_source() -> FakeHoldingsSource:
    return FakeHoldingsSource()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# =============================================================================
# API CLIENT
# =============================================================================

class EngineHarness:
    """TestClient plus the fakes wired behind every dependency."""

    def __init__(self, client, quote_source, history_source, holdings_source, cache):
        self.client = client
        self.quote_source = quote_source
        self.history_source = history_source
        self.holdings_source = holdings_source
        self.cache = cache


@pytest.fixture
def api(quote_source, history_source, holdings_source, clock):
    """
    TestClient whose services run on in-memory fakes.

    Overrides the singleton dependencies so no request reaches a real
    provider. The history window defaults to the 30 days ending 2024-03-31.
    """
    from fastapi.testclient import TestClient

    from portfolio_engine import dependencies
    from portfolio_engine.main import app
    from portfolio_engine.services.exposure import ExposureAggregator
    from portfolio_engine.services.market_data import QuoteCache, QuoteFetcher
    from portfolio_engine.services.valuation import ValuationService

    cache = QuoteCache(ttl_seconds=600, clock=clock)
    fetcher = QuoteFetcher(
        source=quote_source,
        cache=cache,
        batch_delay_seconds=0,
        timeout_seconds=5.0,
    )
    valuation = ValuationService(
        quote_fetcher=fetcher,
        history_source=history_source,
        history_window_days=30,
        timeout_seconds=5.0,
        today=lambda: date(2024, 3, 31),
    )
    aggregator = ExposureAggregator(holdings_source=holdings_source, timeout_seconds=5.0)

    app.dependency_overrides[dependencies.get_quote_cache] = lambda: cache
    app.dependency_overrides[dependencies.get_quote_fetcher] = lambda: fetcher
    app.dependency_overrides[dependencies.get_valuation_service] = lambda: valuation
    app.dependency_overrides[dependencies.get_exposure_aggregator] = lambda: aggregator

    with TestClient(app) as client:
        yield EngineHarness(client, quote_source, history_source, holdings_source, cache)

    app.dependency_overrides.clear()


# =============================================================================
# FACTORIES
# =============================================================================

def make_holding(
        ticker: str = "AAPL",
        quantity: float = 10,
        manual_price: float = 100.0,
        category: AssetCategory = AssetCategory.STOCK,
        **kwargs,
) -> Holding:
    """Create a Holding with sensible defaults."""
    return Holding(
        id=kwargs.pop("id", ticker.lower() or "h"),
        ticker=ticker,
        name=kwargs.pop("name", ticker),
        category=category,
        quantity=quantity,
        manual_price=manual_price,
        **kwargs,
    )


def make_transaction(
        txn_type: TransactionType,
        day: date,
        symbol: str | None = None,
        quantity: float = 0.0,
        amount: float = 0.0,
) -> Transaction:
    return Transaction(type=txn_type, date=day, symbol=symbol, quantity=quantity, amount=amount)


def make_quote(
        symbol: str = "AAPL",
        price: float = 100.0,
        fetched_at: datetime | None = None,
        provenance: QuoteProvenance = QuoteProvenance.LIVE,
) -> Quote:
    return Quote(
        symbol=symbol,
        price=price,
        volume=None,
        currency="USD",
        fetched_at=fetched_at or datetime(2024, 6, 3, 9, 0, tzinfo=timezone.utc),
        provenance=provenance,
    )


def constituent(symbol: str, weight: float, sector: str | None = None,
                country: str | None = None, name: str | None = None) -> FundConstituent:
    return FundConstituent(
        symbol=symbol,
        name=name or symbol,
        weight=weight,
        sector=sector,
        country=country,
    )
