# portfolio_engine/services/exposure/holdings_providers.py
"""
Fund holdings sources for look-through.

Sources:
- ISharesHoldingsProvider: downloads the holdings CSV published on the
  iShares UK product page (sector and location included)
- FMPClient.get_holdings (market_data/fmp.py): universal fallback, no
  sector or country per constituent

CascadingHoldingsSource picks the best source for a fund:
    1. iShares, when the ticker is a known iShares product or the issuer
       hint mentions iShares/BlackRock
    2. FMP, when configured
    3. HoldingsUnavailableError when every applicable source failed
"""

import csv
import logging
import re

import httpx

from portfolio_engine.services.exceptions import (
    HoldingsUnavailableError,
    ProviderUnavailableError,
)
from portfolio_engine.services.market_data.base import FundConstituent, MarketDataProvider
from portfolio_engine.services.protocols import FundHoldingsSource

logger = logging.getLogger(__name__)

ISHARES_BASE_URL = "https://www.ishares.com/uk/individual/en/products"

# iShares UK ticker -> (product id, page slug)
ISHARES_PRODUCTS: dict[str, tuple[str, str]] = {
    "ISF": ("251795", "ishares-core-ftse-100-ucits-etf-gbp-dist-fund"),
    "IUKD": ("251806", "ishares-uk-dividend-ucits-etf-gbp-dist-fund"),
    "SWDA": ("251882", "ishares-core-msci-world-ucits-etf-usd-acc-fund"),
    "EIMI": ("264659", "ishares-core-msci-em-imi-ucits-etf-usd-acc-fund"),
    "IGLT": ("251806", "ishares-core-uk-gilts-ucits-etf-gbp-dist-fund"),
    "LQDE": ("251813", "ishares-core-corp-bond-ucits-etf-gbp-dist-fund"),
    "IITU": ("280510", "ishares-sp-500-information-technology-sector-ucits-etf-usd-acc-fund"),
    "CSUS": ("476363", "ishares-sp-500-esg-ucits-etf-usd-acc-fund"),
    "SUAS": ("291407", "ishares-msci-acwi-ucits-etf-usd-acc-fund"),
}

ISHARES_ISSUER_PATTERN = re.compile(r"ishares|blackrock", re.IGNORECASE)


def base_ticker(symbol: str) -> str:
    """Ticker without its exchange suffix ("SWDA.L" -> "SWDA")."""
    return symbol.strip().upper().split(".", 1)[0]


def is_ishares_ticker(symbol: str) -> bool:
    return base_ticker(symbol) in ISHARES_PRODUCTS


# =============================================================================
# ISHARES CSV
# =============================================================================

def _parse_number(value: str | None) -> float:
    """Parse '1,234.5', '12.3%' or '-' style cells; unparseable -> 0."""
    if not value:
        return 0.0
    cleaned = value.replace(",", "").replace("%", "").strip()
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def _find_header_row(rows: list[list[str]]) -> int:
    for index, row in enumerate(rows):
        lower = ",".join(row).lower()
        if "ticker" in lower or ("name" in lower and "weight" in lower):
            return index
    return -1


def parse_ishares_csv(raw: str) -> list[FundConstituent]:
    """
    Parse an iShares holdings CSV.

    The file starts with a few lines of fund metadata, then a header row,
    then one row per holding, then footer notes. Columns are located by
    substring so minor header changes ("Weight (%)", "Location") still match.

    Returns:
        Constituents (empty if no header row or no usable rows)
    """
    rows = list(csv.reader(raw.lstrip("\ufeff").splitlines()))

    header_index = _find_header_row(rows)
    if header_index == -1:
        return []

    header = [cell.strip().lower() for cell in rows[header_index]]

    def col(*names: str) -> int:
        for name in names:
            for index, cell in enumerate(header):
                if name in cell:
                    return index
        return -1

    ticker_idx = col("ticker")
    name_idx = col("name")
    weight_idx = col("weight")
    sector_idx = col("sector")
    country_idx = col("location", "country")

    if ticker_idx == -1 and name_idx == -1:
        return []

    def cell(row: list[str], index: int) -> str:
        return row[index].strip() if 0 <= index < len(row) else ""

    constituents: list[FundConstituent] = []

    for row in rows[header_index + 1:]:
        if len(row) < 2:
            continue

        ticker = cell(row, ticker_idx)
        name = cell(row, name_idx)
        weight = _parse_number(cell(row, weight_idx))

        # Footer and summary rows
        if not name and not ticker:
            continue
        if weight == 0 and not ticker:
            continue

        constituents.append(FundConstituent(
            symbol=ticker if ticker != "-" else "",
            name=name or ticker,
            weight=weight,
            sector=cell(row, sector_idx) or None,
            country=cell(row, country_idx) or None,
        ))

    return constituents


class ISharesHoldingsProvider(MarketDataProvider):
    """
    Holdings from iShares UK product CSV downloads.

    Only products listed in ISHARES_PRODUCTS can be downloaded.

    Example:
        provider = ISharesHoldingsProvider()
        provider.get_holdings("SWDA.L")
    """

    def __init__(
            self,
            base_url: str = ISHARES_BASE_URL,
            timeout: float = 10.0,
            transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={
                "User-Agent": "Mozilla/5.0 (compatible; portfolio-engine/0.1)",
                "Accept": "text/csv,text/plain,*/*",
            },
        )

    @property
    def name(self) -> str:
        return "ishares"

    def close(self) -> None:
        self._client.close()

    def get_holdings(self, fund_symbol: str, issuer: str | None = None) -> list[FundConstituent]:
        """
        Download and parse the fund's holdings CSV.

        Raises:
            HoldingsUnavailableError: Ticker is not a known iShares product,
                or the CSV contained no holdings
            ProviderUnavailableError: Download failed
        """
        ticker = base_ticker(fund_symbol)
        product = ISHARES_PRODUCTS.get(ticker)
        if product is None:
            raise HoldingsUnavailableError(fund_symbol, "no iShares product mapping")

        raw = self._guarded(self._download, ticker, product)
        constituents = parse_ishares_csv(raw)

        if not constituents:
            raise HoldingsUnavailableError(fund_symbol, "no holdings parsed from iShares CSV")

        logger.debug(f"iShares returned {len(constituents)} holdings for {ticker}")
        return constituents

    def _download(self, ticker: str, product: tuple[str, str]) -> str:
        product_id, slug = product
        try:
            response = self._client.get(
                f"/{product_id}/{slug}/",
                params={
                    "fileType": "csv",
                    "fileName": f"{ticker}_holdings",
                    "dataType": "fund",
                },
            )
        except httpx.RequestError as e:
            raise ProviderUnavailableError(provider=self.name, reason=f"network error: {e}") from e

        if response.status_code != 200:
            raise ProviderUnavailableError(
                provider=self.name,
                reason=f"CSV download failed for {ticker}: HTTP {response.status_code}",
            )
        return response.text


# =============================================================================
# CASCADE
# =============================================================================

class CascadingHoldingsSource:
    """
    Tries each applicable holdings source in turn.

    Attributes:
        _ishares: iShares CSV provider (None = disabled)
        _fallback: Universal source, normally FMPClient (None = not configured)
    """

    def __init__(
            self,
            ishares: ISharesHoldingsProvider | None = None,
            fallback: FundHoldingsSource | None = None,
    ) -> None:
        self._ishares = ishares
        self._fallback = fallback

    def get_holdings(self, fund_symbol: str, issuer: str | None = None) -> list[FundConstituent]:
        """
        Raises:
            HoldingsUnavailableError: No source returned constituents
        """
        failures: list[str] = []

        if self._ishares is not None and self._uses_ishares(fund_symbol, issuer):
            try:
                return self._ishares.get_holdings(fund_symbol, issuer)
            except Exception as e:
                logger.warning(f"iShares holdings failed for {fund_symbol}, trying next: {e}")
                failures.append(f"ishares: {e}")

        if self._fallback is not None:
            try:
                constituents = self._fallback.get_holdings(fund_symbol, issuer)
            except Exception as e:
                logger.warning(f"Fallback holdings failed for {fund_symbol}: {e}")
                failures.append(f"fallback: {e}")
            else:
                if constituents:
                    return constituents
                failures.append("fallback: no holdings returned")

        if not failures:
            failures.append("no holdings source configured for this fund")

        raise HoldingsUnavailableError(fund_symbol, "; ".join(failures))

    @staticmethod
    def _uses_ishares(fund_symbol: str, issuer: str | None) -> bool:
        return is_ishares_ticker(fund_symbol) or bool(
            issuer and ISHARES_ISSUER_PATTERN.search(issuer)
        )
