# portfolio_engine/dependencies.py
"""
Dependency injection module for FastAPI services.

This module provides singleton service instances that are shared across
all requests. Sharing matters here: the quote cache must outlive a single
request so a later request can fall back on quotes fetched earlier, and the
providers' circuit breakers must see every call to be meaningful.

Services are lazily initialized on first use to avoid import-time side effects.

Usage in routers:
    from portfolio_engine.dependencies import get_valuation_service

    @router.post("/valuation")
    def value_portfolio(service: ValuationService = Depends(get_valuation_service)):
        ...

Tests replace any of these with app.dependency_overrides.
"""

import logging
from functools import lru_cache

from portfolio_engine.config import settings
from portfolio_engine.services.exposure import (
    CascadingHoldingsSource,
    ExposureAggregator,
    ISharesHoldingsProvider,
)
from portfolio_engine.services.market_data import (
    FMPClient,
    MarketDataProvider,
    QuoteCache,
    QuoteFetcher,
    YahooFinanceProvider,
)
from portfolio_engine.services.valuation import ValuationService
from portfolio_engine.utils.concurrency import CallRunner

logger = logging.getLogger(__name__)


# =============================================================================
# SINGLETON SERVICE INSTANCES
# =============================================================================
# Order matters: define dependencies before dependents
# 1. get_quote_cache, get_fmp_client (no deps)
# 2. get_market_data_provider (yahoo, or the FMP client)
# 3. get_quote_fetcher (provider + cache)
# 4. get_holdings_source (iShares + FMP fallback)
# 5. get_valuation_service, get_exposure_aggregator


@lru_cache(maxsize=1)
def get_quote_cache() -> QuoteCache:
    """Process-wide quote cache."""
    return QuoteCache(ttl_seconds=settings.quote_cache_ttl_seconds)


@lru_cache(maxsize=1)
def get_fmp_client() -> FMPClient | None:
    """FMP client, or None when no API key is configured."""
    if not settings.is_fmp_configured:
        return None
    return FMPClient(
        api_key=settings.fmp_api_key,
        base_url=settings.fmp_base_url,
        timeout=settings.external_call_timeout_seconds,
    )


@lru_cache(maxsize=1)
def get_market_data_provider() -> MarketDataProvider:
    """
    Provider for current quotes and price history (QUOTE_PROVIDER).

    Shared by every service so one circuit breaker sees all calls.
    """
    if settings.quote_provider == "fmp":
        client = get_fmp_client()
        if client is not None:
            logger.info("Using FMP for quotes and price history")
            return client
        logger.warning("QUOTE_PROVIDER=fmp but FMP_API_KEY is not set; using Yahoo Finance")

    return YahooFinanceProvider(timeout=int(settings.external_call_timeout_seconds))


def _make_runner(name: str) -> CallRunner:
    """Timeout runner for one kind of provider call, shared across requests."""
    return CallRunner(
        name=name,
        max_concurrent=settings.max_workers,
        max_abandoned=settings.max_abandoned_calls,
    )


@lru_cache(maxsize=1)
def get_quote_fetcher() -> QuoteFetcher:
    return QuoteFetcher(
        source=get_market_data_provider(),
        cache=get_quote_cache(),
        batch_size=settings.quote_batch_size,
        batch_delay_seconds=settings.quote_batch_delay_seconds,
        timeout_seconds=settings.external_call_timeout_seconds,
        runner=_make_runner("quotes"),
    )


@lru_cache(maxsize=1)
def get_ishares_provider() -> ISharesHoldingsProvider:
    return ISharesHoldingsProvider(timeout=settings.external_call_timeout_seconds)


@lru_cache(maxsize=1)
def get_holdings_source() -> CascadingHoldingsSource:
    """iShares CSVs first where applicable, FMP as the universal fallback."""
    return CascadingHoldingsSource(
        ishares=get_ishares_provider(),
        fallback=get_fmp_client(),
    )


@lru_cache(maxsize=1)
def get_valuation_service() -> ValuationService:
    return ValuationService(
        quote_fetcher=get_quote_fetcher(),
        history_source=get_market_data_provider(),
        history_window_days=settings.history_window_days,
        timeout_seconds=settings.external_call_timeout_seconds,
        history_runner=_make_runner("history"),
    )


@lru_cache(maxsize=1)
def get_exposure_aggregator() -> ExposureAggregator:
    return ExposureAggregator(
        holdings_source=get_holdings_source(),
        timeout_seconds=settings.external_call_timeout_seconds,
        top_n=settings.top_exposures_limit,
        runner=_make_runner("look-through"),
    )


def get_active_providers() -> list[MarketDataProvider]:
    """Providers currently wired in, for health reporting."""
    providers: list[MarketDataProvider] = [get_market_data_provider(), get_ishares_provider()]
    fmp = get_fmp_client()
    if fmp is not None and fmp not in providers:
        providers.append(fmp)
    return providers
