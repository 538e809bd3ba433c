# portfolio_engine/services/__init__.py
"""
Service layer for the portfolio engine.

Services:
- Have NO knowledge of HTTP (no HTTPException, no status codes)
- Raise domain-specific exceptions (exceptions.py)
- Receive their collaborators through the constructor
- Are easily testable with fakes or MagicMock

Architecture:
    services/
    ├── __init__.py          # This file
    ├── exceptions.py        # Domain exceptions
    ├── constants.py         # Fixed domain conventions
    ├── protocols.py         # External collaborator interfaces
    ├── circuit_breaker.py   # Circuit breaker for providers
    ├── market_data/         # Quotes, price history, providers
    ├── valuation/           # Current valuation and history replay
    └── exposure/            # Look-through exposure aggregation

Subpackages are imported explicitly by their users, e.g.
    from portfolio_engine.services.valuation import ValuationService
"""

from portfolio_engine.services.exceptions import (
    ServiceError,
    ValidationError,
    InvalidDateRangeError,
    MarketDataError,
    ProviderUnavailableError,
    ExternalCallTimeoutError,
    RateLimitError,
    HoldingsUnavailableError,
    CircuitBreakerOpen,
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
