# portfolio_engine/services/market_data/yahoo.py
"""
Yahoo Finance market data provider implementation.

Implements the QuoteSource and HistoricalPriceSource interfaces using the
yfinance library. Yahoo Finance needs no API key, which makes it the default
provider.

Key features:
- Batch quotes through yf.Tickers (one session for the whole batch)
- Full daily close history through Ticker.history(period="max")
- Error classification into retryable provider errors
- Retry and circuit breaker inherited from MarketDataProvider

Limitations:
- Rate limits exist but are not documented
- fast_info currency is reported as "GBp" for pence-quoted London listings;
  the quote fetcher relies on that to convert to pounds
"""

import logging
import math
from datetime import date
from typing import Any

import yfinance as yf

from portfolio_engine.services.exceptions import (
    ProviderUnavailableError,
    RateLimitError,
)
from portfolio_engine.services.market_data.base import (
    MarketDataProvider,
    PricePoint,
    RawQuote,
)

logger = logging.getLogger(__name__)


class YahooFinanceProvider(MarketDataProvider):
    """
    Yahoo Finance implementation of the quote and history sources.

    Retry Behavior (inherited from MarketDataProvider):
        - Retries on ProviderUnavailableError and RateLimitError
        - Exponential backoff: 1s -> 2s -> 4s, at most 3 attempts

    Example:
        provider = YahooFinanceProvider()
        rows = provider.get_batch_quotes(["AAPL", "VUSA.L"])
        closes = provider.get_full_history("AAPL")
    """

    def __init__(self, timeout: int = 10) -> None:
        """
        Args:
            timeout: Request timeout in seconds passed to yfinance
        """
        self._timeout = timeout
        logger.info(f"YahooFinanceProvider initialized (timeout={timeout}s)")

    @property
    def name(self) -> str:
        return "yahoo"

    # =========================================================================
    # QUOTES
    # =========================================================================

    def get_batch_quotes(self, symbols: list[str]) -> list[RawQuote]:
        """
        Fetch the last price of every symbol in one yfinance session.

        Symbols Yahoo cannot price are left out of the result. If no symbol
        can be priced at all the whole batch is reported as failed.

        Raises:
            ProviderUnavailableError: Yahoo Finance unavailable
            RateLimitError: Yahoo throttled the request
        """
        if not symbols:
            return []
        return self._guarded(self._fetch_batch_quotes, symbols)

    def _fetch_batch_quotes(self, symbols: list[str]) -> list[RawQuote]:
        logger.debug(f"Fetching Yahoo quotes for {symbols}")

        try:
            tickers = yf.Tickers(" ".join(symbols)).tickers
        except Exception as e:
            raise self._classify_error(e, "batch quotes") from e

        rows: list[RawQuote] = []
        errors: list[str] = []

        for symbol in symbols:
            yf_ticker = tickers.get(symbol)
            if yf_ticker is None:
                errors.append(f"{symbol}: not returned")
                continue
            try:
                info = yf_ticker.fast_info
                price = self._to_float(info.last_price)
                if price is None:
                    errors.append(f"{symbol}: no price")
                    continue
                rows.append(RawQuote(
                    symbol=symbol,
                    price=price,
                    volume=self._to_int(getattr(info, "last_volume", None)),
                    currency=getattr(info, "currency", None),
                ))
            except Exception as e:
                error_str = str(e).lower()
                if "rate limit" in error_str or "too many requests" in error_str:
                    raise RateLimitError(provider=self.name)
                errors.append(f"{symbol}: {e}")

        if errors:
            logger.debug(f"Yahoo could not price {len(errors)} symbols: {errors}")

        if not rows:
            raise ProviderUnavailableError(
                provider=self.name,
                reason=f"no quotes returned for {len(symbols)} symbols",
            )

        return rows

    # =========================================================================
    # HISTORICAL PRICES
    # =========================================================================

    def get_full_history(self, symbol: str) -> list[PricePoint]:
        """
        Fetch every available daily close for a symbol, ascending.

        Returns:
            List of PricePoint (empty when Yahoo has no data for the symbol)

        Raises:
            ProviderUnavailableError: Yahoo Finance unavailable
            RateLimitError: Yahoo throttled the request
        """
        return self._guarded(self._fetch_full_history, symbol)

    def _fetch_full_history(self, symbol: str) -> list[PricePoint]:
        logger.debug(f"Fetching Yahoo history for {symbol}")

        try:
            df = yf.Ticker(symbol).history(
                period="max",
                interval="1d",
                auto_adjust=False,
                timeout=self._timeout,
            )
        except Exception as e:
            raise self._classify_error(e, f"history for {symbol}") from e

        if df is None or df.empty:
            logger.warning(f"No price history for {symbol}")
            return []

        points = self._dataframe_to_points(df)
        logger.debug(f"Fetched {len(points)} closes for {symbol}")
        return points

    def _dataframe_to_points(self, df) -> list[PricePoint]:
        """
        Convert a yfinance history DataFrame to PricePoints.

        Rows without a usable close are skipped.
        """
        points = []

        for idx, row in df.iterrows():
            price_date: date = idx.date() if hasattr(idx, "date") else idx
            close = self._to_float(row.get("Close"))
            if close is None:
                logger.debug(f"Skipping {price_date}: missing close price")
                continue
            points.append(PricePoint(date=price_date, close=close))

        points.sort(key=lambda p: p.date)
        return points

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _classify_error(self, error: Exception, what: str) -> Exception:
        """Map a yfinance exception to our provider exception types."""
        error_str = str(error).lower()
        if "rate limit" in error_str or "too many requests" in error_str:
            return RateLimitError(provider=self.name)

        logger.error(f"Yahoo Finance error fetching {what}: {error}")
        return ProviderUnavailableError(provider=self.name, reason=str(error))

    @staticmethod
    def _to_float(value: Any) -> float | None:
        """Convert to a positive finite float, or None."""
        if value is None:
            return None
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        if math.isnan(number) or math.isinf(number) or number <= 0:
            return None
        return number

    @staticmethod
    def _to_int(value: Any) -> int | None:
        if value is None:
            return None
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        if math.isnan(number):
            return None
        return int(number)
