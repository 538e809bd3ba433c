# portfolio_engine/services/market_data/quote_fetcher.py
"""
Batched current-quote fetching with cache fallback.

Flow for fetch_quotes(symbols):
    1. Normalise and de-duplicate symbols (empty input -> {} with no provider call)
    2. Split into fixed-size batches
    3. For each batch, sequentially:
        a. Call the quote source under a timeout
        b. Success: normalise pence -> pounds, tag LIVE, write to cache
        c. Failure: serve the latest cached quote per symbol, tagged STALE
        d. Sleep the inter-batch delay (not after the last batch)
    4. Symbols the provider silently omitted are served from cache (STALE)

Batches are deliberately sequential: the delay between them keeps bursts
under the provider's rate limit.

Provider failures never propagate. A symbol with neither a live quote nor a
cached one is simply absent from the result; callers treat absence as
"price unknown", never as zero.
"""

import logging
import time
from dataclasses import replace
from typing import Callable, Iterable

from portfolio_engine.models import QuoteProvenance
from portfolio_engine.services.market_data.base import Quote, RawQuote
from portfolio_engine.services.market_data.currency import normalize_quote_price
from portfolio_engine.services.market_data.quote_cache import QuoteCache
from portfolio_engine.services.protocols import QuoteSource
from portfolio_engine.utils.concurrency import CallRunner

logger = logging.getLogger(__name__)


class QuoteFetcher:
    """
    Fetches current quotes in rate-limit friendly batches.

    Attributes:
        _source: Batch quote provider
        _cache: Shared quote cache (written on success, read on failure)
        _batch_size: Symbols per provider call
        _batch_delay: Seconds to wait between consecutive batches
        _timeout: Seconds allowed for one provider call

    Example:
        fetcher = QuoteFetcher(source=provider, cache=QuoteCache(600))
        quotes = fetcher.fetch_quotes(["AAPL", "VUSA.L"])
        quotes["VUSA.L"].price        # pounds, even if quoted in pence
        quotes["VUSA.L"].provenance   # LIVE or STALE
    """

    def __init__(
            self,
            source: QuoteSource,
            cache: QuoteCache,
            batch_size: int = 10,
            batch_delay_seconds: float = 0.1,
            timeout_seconds: float = 10.0,
            runner: CallRunner | None = None,
            sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if batch_delay_seconds < 0:
            raise ValueError("batch_delay_seconds cannot be negative")

        self._source = source
        self._cache = cache
        self._batch_size = batch_size
        self._batch_delay = batch_delay_seconds
        self._timeout = timeout_seconds
        # Shared by every request; a batch that times out frees its slot
        self._runner = runner or CallRunner(name="quotes")
        self._sleep = sleep

    @property
    def cache(self) -> QuoteCache:
        return self._cache

    def fetch_quotes(self, symbols: Iterable[str]) -> dict[str, Quote]:
        """
        Fetch quotes for symbols.

        Args:
            symbols: Provider symbols; blanks are dropped, duplicates collapsed

        Returns:
            Mapping of symbol -> Quote, in first-seen request order.
            Symbols with no live or cached price are absent.
        """
        requested = self._unique_symbols(symbols)
        if not requested:
            return {}

        batches = [
            requested[i:i + self._batch_size]
            for i in range(0, len(requested), self._batch_size)
        ]
        results: dict[str, Quote] = {}

        for index, batch in enumerate(batches, start=1):
            try:
                rows = self._runner.call(
                    self._timeout,
                    self._source.get_batch_quotes,
                    batch,
                )
            except Exception as e:
                logger.warning(
                    f"Quote batch {index}/{len(batches)} failed ({e}); "
                    f"serving cached quotes for {len(batch)} symbols"
                )
                self._serve_from_cache(batch, results)
            else:
                self._store_live(batch, rows, results)

            if index < len(batches) and self._batch_delay > 0:
                self._sleep(self._batch_delay)

        missing = [s for s in requested if s not in results]
        if missing:
            logger.debug(f"Provider returned no quote for {missing}; trying cache")
            self._serve_from_cache(missing, results)

        live = sum(1 for q in results.values() if q.provenance == QuoteProvenance.LIVE)
        logger.info(
            f"Fetched quotes for {len(results)}/{len(requested)} symbols "
            f"({live} live, {len(results) - live} stale)"
        )

        return {s: results[s] for s in requested if s in results}

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    @staticmethod
    def _unique_symbols(symbols: Iterable[str]) -> list[str]:
        seen: dict[str, None] = {}
        for symbol in symbols:
            cleaned = (symbol or "").strip().upper()
            if cleaned:
                seen.setdefault(cleaned, None)
        return list(seen)

    def _store_live(
            self,
            batch: list[str],
            rows: list[RawQuote],
            results: dict[str, Quote],
    ) -> None:
        wanted = set(batch)
        fetched_at = self._cache.now()

        for row in rows or []:
            symbol = (row.symbol or "").strip().upper()
            if symbol not in wanted:
                continue
            if not row.has_valid_price:
                logger.warning(f"Ignoring invalid price {row.price!r} for {symbol}")
                continue

            price, currency = normalize_quote_price(symbol, row.price, row.currency)
            quote = Quote(
                symbol=symbol,
                price=price,
                volume=row.volume,
                currency=currency,
                fetched_at=fetched_at,
                provenance=QuoteProvenance.LIVE,
            )
            self._cache.put(quote)
            results[symbol] = quote

    def _serve_from_cache(self, symbols: list[str], results: dict[str, Quote]) -> None:
        for symbol in symbols:
            cached = self._cache.get_latest(symbol)
            if cached is None:
                continue
            results[symbol] = replace(
                cached,
                provenance=QuoteProvenance.STALE,
                is_expired=self._cache.is_expired(cached),
            )
