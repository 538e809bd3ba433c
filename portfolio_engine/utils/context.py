# portfolio_engine/utils/context.py
"""
Request-scoped context for the portfolio engine.

Holds the correlation ID of the request being served so that log records
emitted deep inside the quote fetcher or the look-through aggregator can be
tied back to the HTTP call that triggered them.

Backed by contextvars, so the value follows async/await chains. Worker
threads do not inherit it automatically; utils.concurrency.submit copies the
context into each provider call.
"""

from contextvars import ContextVar

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    """Return the current request's correlation ID, or None outside a request."""
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID (called by CorrelationIdMiddleware)."""
    _correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    """Reset the correlation ID at the end of a request."""
    _correlation_id_var.set(None)
