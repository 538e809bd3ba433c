# portfolio_engine/routers/__init__.py
"""
API routers for the portfolio engine.

Each router handles a specific domain:
- valuation: Current valuation and history replay
- exposure: Look-through exposure aggregation
- quotes: Quote lookup and cache management
"""

from portfolio_engine.routers.exposure import router as exposure_router
from portfolio_engine.routers.quotes import router as quotes_router
from portfolio_engine.routers.valuation import router as valuation_router

__all__ = [
    "valuation_router",
    "exposure_router",
    "quotes_router",
]
