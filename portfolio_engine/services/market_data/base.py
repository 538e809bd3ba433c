# portfolio_engine/services/market_data/base.py
"""
Data transfer objects and the abstract provider base for market data.

The engine talks to three external collaborators (see services/protocols.py):
a batch quote source, a historical close source and a fund holdings source.
Concrete providers (Yahoo Finance, FMP, iShares) derive from
MarketDataProvider to share retry behaviour and a circuit breaker.

Design Principles:
- Providers return raw, provider-shaped values (RawQuote); normalisation
  (penny conversion, provenance tagging, caching) happens in the fetcher
- Frozen dataclasses for everything that crosses a thread boundary
- Retry logic implemented once, in the base class
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, TypeVar

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from portfolio_engine.models import QuoteProvenance
from portfolio_engine.services.circuit_breaker import CircuitBreaker
from portfolio_engine.services.exceptions import (
    ProviderUnavailableError,
    RateLimitError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# DATA CLASSES - PROVIDER RESPONSES
# =============================================================================

@dataclass(frozen=True)
class RawQuote:
    """
    One row of a batch quote response, exactly as the provider priced it.

    Attributes:
        symbol: Provider symbol (e.g., "AAPL", "VUSA.L")
        price: Last price in the provider's quoting unit (pence for GBX)
        volume: Trading volume, if reported
        currency: Quoting currency, if reported (e.g., "USD", "GBp")
    """

    symbol: str
    price: float
    volume: int | None = None
    currency: str | None = None

    @property
    def has_valid_price(self) -> bool:
        return math.isfinite(self.price) and self.price > 0


@dataclass(frozen=True)
class PricePoint:
    """
    One daily close.

    Attributes:
        date: Trading date
        close: Closing price
    """

    date: date
    close: float


@dataclass(frozen=True)
class FundConstituent:
    """
    One underlying holding of an ETF or fund.

    Attributes:
        symbol: Constituent ticker (may be empty for cash lines or bonds)
        name: Constituent name
        weight: Percentage of the fund (0-100)
        sector: Sector classification, if the source provides one
        country: Country/location, if the source provides one
    """

    symbol: str
    name: str
    weight: float
    sector: str | None = None
    country: str | None = None

    @property
    def key(self) -> str:
        """Aggregation key: ticker, falling back to name for unlisted lines."""
        return (self.symbol or self.name).strip().upper()


# =============================================================================
# DATA CLASSES - NORMALISED QUOTES
# =============================================================================

@dataclass(frozen=True)
class Quote:
    """
    Current price snapshot as returned by the quote fetcher.

    Prices are always pound-denominated for penny-quoted symbols.

    Attributes:
        symbol: Symbol as requested
        price: Normalised price
        volume: Trading volume, if known
        currency: Normalised currency ("GBP" after a pence conversion)
        fetched_at: UTC time of the original live fetch
        provenance: LIVE or STALE
        is_expired: True when a STALE quote is older than the cache TTL
    """

    symbol: str
    price: float
    volume: int | None
    currency: str | None
    fetched_at: datetime
    provenance: QuoteProvenance = QuoteProvenance.LIVE
    is_expired: bool = False

    @property
    def is_stale(self) -> bool:
        return self.provenance == QuoteProvenance.STALE


# =============================================================================
# ABSTRACT BASE CLASS
# =============================================================================

class MarketDataProvider(ABC):
    """
    Base class for concrete market data providers.

    Retry Behavior:
        `_execute_with_retry` retries with exponential backoff on:
        - ProviderUnavailableError: Network issues, server errors
        - RateLimitError: API rate limit exceeded

        Everything else (invalid API key, parse errors raised as other types)
        fails immediately. Subclasses tune retries via class attributes:

        - MAX_RETRY_ATTEMPTS: Total attempts (default: 3)
        - RETRY_MIN_WAIT: Minimum wait in seconds (default: 1)
        - RETRY_MAX_WAIT: Maximum wait in seconds (default: 10)
        - RETRY_MULTIPLIER: Exponential multiplier (default: 1)

    Circuit Breaker:
        Each provider instance owns one breaker named after the provider.
        Calls go through `_guarded`, which applies retry inside the breaker
        so a whole retry sequence counts as one failure.
    """

    MAX_RETRY_ATTEMPTS: int = 3
    RETRY_MIN_WAIT: int = 1
    RETRY_MAX_WAIT: int = 10
    RETRY_MULTIPLIER: int = 1

    CIRCUIT_FAILURE_THRESHOLD: int = 5
    CIRCUIT_RECOVERY_TIMEOUT: float = 60.0

    _circuit_breaker: CircuitBreaker | None = None

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Unique identifier for this provider.

        Used for logging, error messages and the circuit breaker name.
        """
        pass

    def _get_circuit_breaker(self) -> CircuitBreaker:
        """Lazily create this provider's circuit breaker."""
        if self._circuit_breaker is None:
            self._circuit_breaker = CircuitBreaker(
                name=self.name,
                failure_threshold=self.CIRCUIT_FAILURE_THRESHOLD,
                recovery_timeout=self.CIRCUIT_RECOVERY_TIMEOUT,
            )
        return self._circuit_breaker

    def _guarded(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run func with retry, inside this provider's circuit breaker."""
        with self._get_circuit_breaker():
            return self._execute_with_retry(func, *args, **kwargs)

    def _execute_with_retry(
            self,
            func: Callable[..., T],
            *args: Any,
            **kwargs: Any,
    ) -> T:
        """
        Execute a function with retry logic for transient failures.

        Raises:
            The last exception if all retries fail
        """

        @retry(
            stop=stop_after_attempt(self.MAX_RETRY_ATTEMPTS),
            wait=wait_exponential(
                multiplier=self.RETRY_MULTIPLIER,
                min=self.RETRY_MIN_WAIT,
                max=self.RETRY_MAX_WAIT,
            ),
            retry=retry_if_exception_type((ProviderUnavailableError, RateLimitError)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        def _inner() -> T:
            return func(*args, **kwargs)

        return _inner()

    def is_available(self) -> bool:
        """False while this provider's circuit breaker is open."""
        return not self._get_circuit_breaker().is_open
