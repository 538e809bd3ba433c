# tests/services/test_quote_cache.py
"""
Tests for the process-wide quote cache.
"""

import threading

import pytest

from portfolio_engine.services.market_data.quote_cache import QuoteCache
from tests.conftest import make_quote


class TestQuoteCacheBasics:
    """Tests for put/get semantics."""

    def test_get_returns_fresh_entry(self, clock):
        cache = QuoteCache(ttl_seconds=600, clock=clock)
        quote = make_quote("AAPL", 190.0, fetched_at=clock())

        cache.put(quote)

        assert cache.get("AAPL") == quote
        assert "AAPL" in cache
        assert len(cache) == 1

    def test_get_missing_returns_none(self, clock):
        cache = QuoteCache(ttl_seconds=600, clock=clock)

        assert cache.get("AAPL") is None
        assert cache.get_latest("AAPL") is None

    def test_get_ignores_expired_entry(self, clock):
        cache = QuoteCache(ttl_seconds=600, clock=clock)
        cache.put(make_quote("AAPL", fetched_at=clock()))

        clock.advance(601)

        assert cache.get("AAPL") is None

    def test_get_latest_returns_expired_entry(self, clock):
        cache = QuoteCache(ttl_seconds=600, clock=clock)
        quote = make_quote("AAPL", fetched_at=clock())
        cache.put(quote)

        clock.advance(3600)

        assert cache.get_latest("AAPL") == quote
        assert cache.is_expired(quote) is True

    def test_entry_at_ttl_boundary_is_fresh(self, clock):
        cache = QuoteCache(ttl_seconds=600, clock=clock)
        cache.put(make_quote("AAPL", fetched_at=clock()))

        clock.advance(600)

        assert cache.get("AAPL") is not None

    def test_latest_write_wins(self, clock):
        cache = QuoteCache(ttl_seconds=600, clock=clock)
        cache.put(make_quote("AAPL", 100.0, fetched_at=clock()))
        clock.advance(10)
        cache.put(make_quote("AAPL", 101.0, fetched_at=clock()))

        assert cache.get("AAPL").price == 101.0

    def test_older_quote_does_not_overwrite_newer(self, clock):
        cache = QuoteCache(ttl_seconds=600, clock=clock)
        older = make_quote("AAPL", 100.0, fetched_at=clock())
        clock.advance(10)
        newer = make_quote("AAPL", 101.0, fetched_at=clock())

        cache.put(newer)
        cache.put(older)

        assert cache.get_latest("AAPL").price == 101.0

    def test_clear_returns_count(self, clock):
        cache = QuoteCache(ttl_seconds=600, clock=clock)
        cache.put(make_quote("AAPL", fetched_at=clock()))
        cache.put(make_quote("MSFT", fetched_at=clock()))

        assert cache.clear() == 2
        assert len(cache) == 0
        assert cache.symbols() == []

    def test_negative_ttl_rejected(self):
        with pytest.raises(ValueError, match="ttl_seconds cannot be negative"):
            QuoteCache(ttl_seconds=-1)


class TestQuoteCacheConcurrency:
    """Concurrent writers never corrupt the map."""

    def test_concurrent_puts(self, clock):
        cache = QuoteCache(ttl_seconds=600, clock=clock)
        symbols = [f"SYM{i}" for i in range(50)]

        def writer(offset: int):
            for symbol in symbols:
                cache.put(make_quote(symbol, 100.0 + offset, fetched_at=clock()))

        threads = [threading.Thread(target=writer, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(cache) == 50
        assert sorted(cache.symbols()) == sorted(symbols)
        for symbol in symbols:
            assert cache.get(symbol).symbol == symbol
