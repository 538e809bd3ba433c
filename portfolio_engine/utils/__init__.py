# portfolio_engine/utils/__init__.py
"""
Cross-cutting utilities:
- logging: Logging setup with correlation ID support
- context: Request context (correlation IDs)
- concurrency: Timeout-bounded calls on worker threads
- date_utils: Calendar helpers for history windows

Usage:
    from portfolio_engine.utils import setup_logging, get_logger
    from portfolio_engine.utils import get_correlation_id, set_correlation_id
"""

from portfolio_engine.utils.context import (
    get_correlation_id,
    set_correlation_id,
    clear_correlation_id,
)
from portfolio_engine.utils.logging import setup_logging, get_logger

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    # Context
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
]
