# portfolio_engine/models.py
"""
Domain enums shared by the service layer and the API schemas.

Enums subclass str so they serialize cleanly in JSON responses and can be
compared against raw strings coming from request bodies.
"""

import enum


class TransactionType(str, enum.Enum):
    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"
    BUY = "BUY"
    SELL = "SELL"
    DIVIDEND = "DIVIDEND"


# Transaction types that move holdings (and therefore require a symbol)
TRADE_TYPES = frozenset({TransactionType.BUY, TransactionType.SELL})


class AssetCategory(str, enum.Enum):
    ETF = "ETF"
    STOCK = "STOCK"
    CRYPTO = "CRYPTO"
    CASH = "CASH"
    BOND = "BOND"
    FUND = "FUND"
    OTHER = "OTHER"

    @property
    def is_look_through(self) -> bool:
        """True for pooled vehicles that are expanded into constituents."""
        return self in (AssetCategory.ETF, AssetCategory.FUND)


class QuoteProvenance(str, enum.Enum):
    """
    Where a quote came from.

    LIVE  - Fetched from the provider during this call
    STALE - Served from the quote cache because the live fetch failed
            or the provider did not return the symbol
    """
    LIVE = "live"
    STALE = "stale"
