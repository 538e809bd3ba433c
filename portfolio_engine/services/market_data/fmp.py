# portfolio_engine/services/market_data/fmp.py
"""
Financial Modeling Prep (FMP) provider.

Implements all three collaborator interfaces over FMP's "stable" REST API:
- QuoteSource:           GET /batch-quote-short?symbols=A,B,C
- HistoricalPriceSource: GET /historical-price-eod/full?symbol=S
- FundHoldingsSource:    GET /etf/holdings?symbol=S

Responses are validated with pydantic models so a schema change on FMP's
side surfaces as a ProviderUnavailableError instead of a KeyError deep in
the engine.

Status handling:
    429       -> RateLimitError (retried with backoff)
    401       -> MarketDataError (invalid key, never retried)
    other 4xx/5xx, network errors, malformed JSON -> ProviderUnavailableError

Quota: the free tier allows 250 requests/day, so batch endpoints are used
wherever FMP offers them.
"""

import datetime as dt
import logging
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from portfolio_engine.services.exceptions import (
    MarketDataError,
    ProviderUnavailableError,
    RateLimitError,
)
from portfolio_engine.services.market_data.base import (
    FundConstituent,
    MarketDataProvider,
    PricePoint,
    RawQuote,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://financialmodelingprep.com/stable"


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class FMPQuoteShort(BaseModel):
    model_config = ConfigDict(extra="ignore")

    symbol: str
    price: float
    volume: float | None = None


class FMPHistoricalPrice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    date: dt.date
    close: float


class FMPETFHolding(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    asset: str | None = None
    name: str | None = None
    weight_percentage: float = Field(default=0.0, alias="weightPercentage")
    shares: float | None = None
    isin: str | None = None
    market_value: float | None = Field(default=None, alias="marketValue")


_QUOTES_ADAPTER = TypeAdapter(list[FMPQuoteShort])
_HISTORY_ADAPTER = TypeAdapter(list[FMPHistoricalPrice])
_HOLDINGS_ADAPTER = TypeAdapter(list[FMPETFHolding])


# =============================================================================
# CLIENT
# =============================================================================

class FMPClient(MarketDataProvider):
    """
    Synchronous FMP client.

    Calls are made from worker threads (see utils.concurrency), so a single
    httpx.Client with its connection pool is shared across threads.

    Example:
        client = FMPClient(api_key="...")
        client.get_batch_quotes(["AAPL", "MSFT"])
        client.get_full_history("AAPL")
        client.get_holdings("SPY")
    """

    def __init__(
            self,
            api_key: str,
            base_url: str = DEFAULT_BASE_URL,
            timeout: float = 10.0,
            transport: httpx.BaseTransport | None = None,
    ) -> None:
        """
        Args:
            api_key: FMP API key
            base_url: API root (overridable for tests)
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        if not api_key:
            raise ValueError("FMP api_key is required")

        self._api_key = api_key
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
        )
        logger.info(f"FMPClient initialized (base_url={base_url}, timeout={timeout}s)")

    @property
    def name(self) -> str:
        return "fmp"

    def close(self) -> None:
        self._client.close()

    # =========================================================================
    # PUBLIC INTERFACE
    # =========================================================================

    def get_batch_quotes(self, symbols: list[str]) -> list[RawQuote]:
        """Fetch short quotes (symbol, price, volume) for a batch of symbols."""
        if not symbols:
            return []

        data = self._guarded(self._get, "/batch-quote-short", {"symbols": ",".join(symbols)})
        rows = self._parse(_QUOTES_ADAPTER, data, "batch quotes")

        return [
            RawQuote(
                symbol=row.symbol,
                price=row.price,
                volume=int(row.volume) if row.volume is not None else None,
            )
            for row in rows
        ]

    def get_full_history(
            self,
            symbol: str,
            from_date: dt.date | None = None,
            to_date: dt.date | None = None,
    ) -> list[PricePoint]:
        """
        Fetch end-of-day closes for a symbol, ascending by date.

        Returns an empty list when FMP has no data for the symbol.
        """
        params: dict[str, str] = {"symbol": symbol}
        if from_date:
            params["from"] = from_date.isoformat()
        if to_date:
            params["to"] = to_date.isoformat()

        data = self._guarded(self._get, "/historical-price-eod/full", params)

        # Older plans wrap the series: {"symbol": "...", "historical": [...]}
        if isinstance(data, dict):
            data = data.get("historical", [])

        rows = self._parse(_HISTORY_ADAPTER, data, f"history for {symbol}")
        points = [PricePoint(date=row.date, close=row.close) for row in rows if row.close > 0]
        points.sort(key=lambda p: p.date)
        return points

    def get_holdings(self, fund_symbol: str, issuer: str | None = None) -> list[FundConstituent]:
        """
        Fetch ETF constituents.

        FMP does not report sector or country per constituent; those buckets
        only receive weight from sources that do (e.g. iShares CSVs).
        """
        data = self._guarded(self._get, "/etf/holdings", {"symbol": fund_symbol})
        rows = self._parse(_HOLDINGS_ADAPTER, data, f"ETF holdings for {fund_symbol}")

        return [
            FundConstituent(
                symbol=(row.asset or "").strip(),
                name=(row.name or row.asset or "").strip(),
                weight=row.weight_percentage,
            )
            for row in rows
            if row.asset or row.name
        ]

    # =========================================================================
    # HTTP
    # =========================================================================

    def _get(self, endpoint: str, params: dict[str, str]) -> Any:
        """
        GET an endpoint and return decoded JSON.

        Raises:
            RateLimitError: HTTP 429
            MarketDataError: HTTP 401 (invalid API key)
            ProviderUnavailableError: Other HTTP errors, network errors, bad JSON
        """
        try:
            response = self._client.get(endpoint, params={"apikey": self._api_key, **params})
        except httpx.RequestError as e:
            raise ProviderUnavailableError(provider=self.name, reason=f"network error: {e}") from e

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                provider=self.name,
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            )
        if response.status_code == 401:
            raise MarketDataError("FMP: invalid API key", provider=self.name)
        if response.status_code != 200:
            raise ProviderUnavailableError(
                provider=self.name,
                reason=f"HTTP {response.status_code} from {endpoint}",
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderUnavailableError(
                provider=self.name,
                reason=f"invalid JSON from {endpoint}",
            ) from e

    def _parse(self, adapter: TypeAdapter, data: Any, what: str) -> list:
        try:
            return adapter.validate_python(data or [])
        except PydanticValidationError as e:
            logger.error(f"FMP returned malformed {what}: {e.error_count()} errors")
            raise ProviderUnavailableError(
                provider=self.name,
                reason=f"malformed {what} response",
            ) from e
