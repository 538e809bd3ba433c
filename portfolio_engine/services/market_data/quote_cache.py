# portfolio_engine/services/market_data/quote_cache.py
"""
Process-wide cache of the last known quote per symbol.

The cache is an explicit object with injected configuration rather than
module-level state: the application creates one instance (dependencies.py)
and passes it to the QuoteFetcher, and tests create their own to seed or
inspect it deterministically.

Entries are never evicted by age. The TTL only decides whether `get`
considers an entry fresh; `get_latest` returns an entry of any age so the
fetcher can serve it as a degraded fallback when the provider fails.
"""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable

from portfolio_engine.services.market_data.base import Quote

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuoteCache:
    """
    Thread-safe symbol -> Quote map with a staleness horizon.

    Example:
        cache = QuoteCache(ttl_seconds=600)
        cache.put(quote)
        cache.get("AAPL")          # quote if younger than 10 minutes
        cache.get_latest("AAPL")   # quote regardless of age
        cache.clear()
    """

    def __init__(
            self,
            ttl_seconds: float = 600,
            clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds cannot be negative")
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._entries: dict[str, Quote] = {}
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl.total_seconds()

    def now(self) -> datetime:
        """Current time according to the cache's clock."""
        return self._clock()

    def is_expired(self, quote: Quote) -> bool:
        return self._clock() - quote.fetched_at > self._ttl

    def put(self, quote: Quote) -> None:
        """Store a quote, replacing any older entry for the symbol."""
        with self._lock:
            current = self._entries.get(quote.symbol)
            # An abandoned slow fetch finishing late must not overwrite newer data
            if current is not None and current.fetched_at > quote.fetched_at:
                return
            self._entries[quote.symbol] = quote

    def get(self, symbol: str) -> Quote | None:
        """Fresh entry for symbol, or None if missing or past the TTL."""
        with self._lock:
            quote = self._entries.get(symbol)
        if quote is None or self.is_expired(quote):
            return None
        return quote

    def get_latest(self, symbol: str) -> Quote | None:
        """Most recent entry for symbol regardless of age."""
        with self._lock:
            return self._entries.get(symbol)

    def symbols(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> int:
        """Drop every entry. Returns how many were removed."""
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
        logger.info(f"Quote cache cleared ({removed} entries)")
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, symbol: object) -> bool:
        with self._lock:
            return symbol in self._entries
