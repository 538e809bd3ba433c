# portfolio_engine/services/market_data/currency.py
"""
Ticker and currency normalisation.

Two conventions are handled here:

1. Exchange suffixes. Holdings are often entered as a bare ticker plus an
   exchange ("VUSA" on "LSE"); providers expect the suffixed form
   ("VUSA.L"). Rewriting is idempotent: a ticker that already carries a
   suffix passes through unchanged.

2. Pence quotes. London listings are commonly quoted in pence (GBX/GBp).
   Every price leaving the quote fetcher is pound-denominated, so a penny
   quote is divided by 100 exactly once, before it is cached or returned.
"""

from portfolio_engine.services.constants import (
    EXCHANGE_SUFFIXES,
    PENCE_CURRENCY_CODES,
    PENCE_PER_POUND,
    PENCE_TICKER_SUFFIX,
)


def format_exchange_ticker(ticker: str, exchange: str | None) -> str:
    """
    Rewrite a bare ticker to the provider's suffixed form.

    Examples:
        >>> format_exchange_ticker("VUSA", "LSE")
        'VUSA.L'
        >>> format_exchange_ticker("VUSA.L", "LSE")
        'VUSA.L'
        >>> format_exchange_ticker("AAPL", "NASDAQ")
        'AAPL'
    """
    ticker = ticker.strip()
    if "." in ticker:
        return ticker

    suffix = EXCHANGE_SUFFIXES.get((exchange or "").strip().upper())
    return f"{ticker}{suffix}" if suffix else ticker


def convert_gbx_to_gbp(price: float, currency: str | None) -> float:
    """
    Convert a pence price to pounds; any other currency is returned unchanged.

    Examples:
        >>> convert_gbx_to_gbp(6550, "GBX")
        65.5
        >>> convert_gbx_to_gbp(185.92, "USD")
        185.92
    """
    if currency in PENCE_CURRENCY_CODES:
        return price / PENCE_PER_POUND
    return price


def is_penny_denominated(symbol: str, currency: str | None = None) -> bool:
    """True for an explicit pence currency code or a London (.L) listing."""
    if currency in PENCE_CURRENCY_CODES:
        return True
    return symbol.strip().upper().endswith(PENCE_TICKER_SUFFIX)


def normalize_quote_price(
        symbol: str,
        price: float,
        currency: str | None,
) -> tuple[float, str | None]:
    """
    Apply the pence rule to a raw provider price.

    Returns:
        (price in pounds, "GBP") for penny-denominated symbols,
        otherwise (price, currency) unchanged
    """
    if not is_penny_denominated(symbol, currency):
        return price, currency
    return convert_gbx_to_gbp(price, "GBX"), "GBP"
