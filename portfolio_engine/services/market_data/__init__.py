# portfolio_engine/services/market_data/__init__.py
"""
Market data services package.

This package contains:
- Provider DTOs and retrying base class (base.py)
- Ticker/currency normalisation (currency.py)
- Process-wide quote cache (quote_cache.py)
- Batched quote fetching with cache fallback (quote_fetcher.py)
- Concurrent price history warm-up (price_history.py)
- Yahoo Finance provider (yahoo.py)
- Financial Modeling Prep provider (fmp.py)

Architecture:
    QuoteFetcher
    ├── QuoteSource (YahooFinanceProvider | FMPClient)
    └── QuoteCache

    HistoricalPriceLoader
    └── HistoricalPriceSource (YahooFinanceProvider | FMPClient)
"""

from portfolio_engine.services.market_data.base import (
    MarketDataProvider,
    RawQuote,
    Quote,
    PricePoint,
    FundConstituent,
)
from portfolio_engine.services.market_data.currency import (
    format_exchange_ticker,
    convert_gbx_to_gbp,
    is_penny_denominated,
    normalize_quote_price,
)
from portfolio_engine.services.market_data.quote_cache import QuoteCache
from portfolio_engine.services.market_data.quote_fetcher import QuoteFetcher
from portfolio_engine.services.market_data.price_history import HistoricalPriceLoader
from portfolio_engine.services.market_data.yahoo import YahooFinanceProvider
from portfolio_engine.services.market_data.fmp import FMPClient

__all__ = [
    # Base
    "MarketDataProvider",
    "RawQuote",
    "Quote",
    "PricePoint",
    "FundConstituent",
    # Normalisation
    "format_exchange_ticker",
    "convert_gbx_to_gbp",
    "is_penny_denominated",
    "normalize_quote_price",
    # Quotes
    "QuoteCache",
    "QuoteFetcher",
    # History
    "HistoricalPriceLoader",
    # Providers
    "YahooFinanceProvider",
    "FMPClient",
]
