# portfolio_engine/services/exceptions.py
"""
Service layer exceptions.

These exceptions represent domain-specific errors and contain NO HTTP knowledge.
The API layer (main.py) maps them to HTTP responses.

Most provider failures never reach the caller: the quote fetcher falls back
to its cache, the history prefetch substitutes an empty series and the
look-through aggregator records a skip. These classes are what providers
raise internally, and what malformed input raises synchronously.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    │   └── InvalidDateRangeError
    └── MarketDataError
        ├── ProviderUnavailableError
        │   └── ExternalCallTimeoutError
        ├── RateLimitError
        └── HoldingsUnavailableError

    CircuitBreakerOpen (from circuit_breaker module)
        - Raised when circuit breaker is open and blocking requests
"""

from datetime import date

from portfolio_engine.services.circuit_breaker import CircuitBreakerOpen


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(ServiceError):
    """
    Raised when engine input is malformed (negative quantity, BUY without a
    symbol, unordered window bounds).

    Always raised before any external call is made.

    Attributes:
        field: The field that failed validation (optional)
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class InvalidDateRangeError(ValidationError):
    """Raised when a history window starts after it ends."""

    def __init__(self, start_date: date, end_date: date) -> None:
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(
            f"start_date ({start_date}) must be on or before end_date ({end_date})",
            field="start_date",
        )


# =============================================================================
# MARKET DATA PROVIDER ERRORS
# =============================================================================


class MarketDataError(ServiceError):
    """
    Base exception for market data provider failures.

    Attributes:
        provider: Name of the provider that failed
    """

    def __init__(self, message: str, provider: str | None = None) -> None:
        self.provider = provider
        super().__init__(message)


class ProviderUnavailableError(MarketDataError):
    """
    Raised when a market data provider is temporarily unavailable.

    Examples:
    - Network errors
    - Server errors (500, 502, 503)
    - Unparseable responses

    This is a retryable error.
    """

    def __init__(self, provider: str, reason: str) -> None:
        message = f"Provider '{provider}' is unavailable: {reason}"
        super().__init__(message, provider=provider)
        self.reason = reason


class ExternalCallTimeoutError(ProviderUnavailableError):
    """
    Raised when an external call does not complete within its timeout.

    The underlying worker thread may still finish later; its result is
    discarded.

    Attributes:
        operation: Label of the call that timed out
        timeout_seconds: The timeout that expired
    """

    def __init__(self, operation: str, timeout_seconds: float) -> None:
        self.operation = operation
        self.timeout_seconds = timeout_seconds
        super().__init__(
            provider=operation,
            reason=f"no response within {timeout_seconds:g}s",
        )


class RateLimitError(MarketDataError):
    """
    Raised when the provider's rate limit has been exceeded.

    This is a retryable error (with backoff).

    Attributes:
        retry_after: Seconds to wait before retrying (if provided by API)
    """

    def __init__(self, provider: str, retry_after: int | None = None) -> None:
        message = f"Rate limit exceeded for provider '{provider}'"
        if retry_after:
            message += f" (retry after {retry_after}s)"
        super().__init__(message, provider=provider)
        self.retry_after = retry_after


class HoldingsUnavailableError(MarketDataError):
    """
    Raised when no fund holdings source could return constituents for a fund.

    Attributes:
        fund_symbol: The fund that could not be looked through
        reason: Summary of why each source failed
    """

    def __init__(self, fund_symbol: str, reason: str) -> None:
        self.fund_symbol = fund_symbol
        self.reason = reason
        super().__init__(
            f"No fund holdings available for '{fund_symbol}': {reason}"
        )


__all__ = [
    "ServiceError",
    "ValidationError",
    "InvalidDateRangeError",
    "MarketDataError",
    "ProviderUnavailableError",
    "ExternalCallTimeoutError",
    "RateLimitError",
    "HoldingsUnavailableError",
    "CircuitBreakerOpen",
]
