# portfolio_engine/middleware/__init__.py
"""
Middleware components for the portfolio engine API.

Usage:
    from portfolio_engine.middleware import CorrelationIdMiddleware

    app.add_middleware(CorrelationIdMiddleware)
"""

from portfolio_engine.middleware.correlation import (
    CORRELATION_ID_HEADER,
    REQUEST_ID_HEADER,
    CorrelationIdMiddleware,
)

__all__ = [
    "CorrelationIdMiddleware",
    "CORRELATION_ID_HEADER",
    "REQUEST_ID_HEADER",
]
