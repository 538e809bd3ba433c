# portfolio_engine/services/exposure/__init__.py
"""
Look-through exposure package.

Architecture:
    exposure/
    ├── __init__.py              # This file - package exports
    ├── types.py                 # LookThroughResult and breakdown types
    ├── aggregator.py            # ExposureAggregator
    └── holdings_providers.py    # iShares CSV provider and the source cascade
"""

from portfolio_engine.services.exposure.aggregator import ExposureAggregator
from portfolio_engine.services.exposure.holdings_providers import (
    ISHARES_PRODUCTS,
    CascadingHoldingsSource,
    ISharesHoldingsProvider,
    is_ishares_ticker,
    parse_ishares_csv,
)
from portfolio_engine.services.exposure.types import (
    BucketExposure,
    ExposureBreakdown,
    LookThroughResult,
    LookThroughSkipped,
    LookThroughSuccess,
    SymbolExposure,
)

__all__ = [
    "ExposureAggregator",
    "CascadingHoldingsSource",
    "ISharesHoldingsProvider",
    "ISHARES_PRODUCTS",
    "is_ishares_ticker",
    "parse_ishares_csv",
    "BucketExposure",
    "ExposureBreakdown",
    "LookThroughResult",
    "LookThroughSkipped",
    "LookThroughSuccess",
    "SymbolExposure",
]
