# portfolio_engine/services/market_data/price_history.py
"""
Concurrent warm-up of daily close series for the history engine.

Before replaying transactions the history engine needs a close series for
every symbol that was ever held. Series are fetched concurrently and
share one deadline. A failed or timed-out fetch yields an empty series for
that symbol (it then contributes zero invested value) and never aborts the
other fetches.

A loader instance memoises what it fetched, so it represents one
computation session: create a new loader per request.
"""

import logging
import threading
from typing import Iterable

from portfolio_engine.services.market_data.base import PricePoint
from portfolio_engine.services.protocols import HistoricalPriceSource
from portfolio_engine.utils.concurrency import CallRunner, start_deadline

logger = logging.getLogger(__name__)


class HistoricalPriceLoader:
    """
    Fetch and memoise full close histories.

    Example:
        loader = HistoricalPriceLoader(source=provider, runner=CallRunner(name="history"))
        series = loader.prefetch(["AAPL", "VUSA.L"])
        series["AAPL"]   # ascending list[PricePoint], possibly empty
    """

    def __init__(
            self,
            source: HistoricalPriceSource,
            timeout_seconds: float = 10.0,
            runner: CallRunner | None = None,
    ) -> None:
        self._source = source
        self._timeout = timeout_seconds
        self._runner = runner or CallRunner(name="history")
        self._series: dict[str, list[PricePoint]] = {}
        self._lock = threading.Lock()

    def prefetch(self, symbols: Iterable[str]) -> dict[str, list[PricePoint]]:
        """
        Ensure a series is loaded for every symbol.

        Returns:
            symbol -> ascending PricePoint list for each requested symbol
        """
        wanted = list(dict.fromkeys(s.strip().upper() for s in symbols if s and s.strip()))

        with self._lock:
            pending = [s for s in wanted if s not in self._series]

        if pending:
            logger.debug(f"Prefetching price history for {len(pending)} symbols")
            deadline = start_deadline(self._timeout)
            futures = {
                symbol: self._runner.submit(self._source.get_full_history, symbol)
                for symbol in pending
            }
            for symbol, future in futures.items():
                series = self._collect(symbol, future, deadline)
                with self._lock:
                    self._series[symbol] = series

        with self._lock:
            return {s: self._series[s] for s in wanted}

    def get_series(self, symbol: str) -> list[PricePoint]:
        """Series for one symbol (fetching it if not loaded yet)."""
        key = symbol.strip().upper()
        return self.prefetch([key]).get(key, [])

    def _collect(self, symbol: str, future, deadline: float) -> list[PricePoint]:
        try:
            points = self._runner.wait(
                future, self._timeout, f"price history for {symbol}", deadline=deadline
            )
        except Exception as e:
            logger.warning(f"Price history unavailable for {symbol}: {e}")
            return []

        # Providers are expected to return ascending data; enforce it and keep
        # the last close reported for any duplicated date
        by_date = {p.date: p for p in points or []}
        return [by_date[d] for d in sorted(by_date)]
