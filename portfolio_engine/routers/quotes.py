# portfolio_engine/routers/quotes.py
"""
Quote endpoints.

- POST /quotes        - Current quotes (live, or stale from cache)
- DELETE /quotes/cache - Drop every cached quote
"""

import logging

from fastapi import APIRouter, Depends

from portfolio_engine.dependencies import get_quote_cache, get_quote_fetcher
from portfolio_engine.schemas.quotes import (
    CacheClearResponse,
    QuoteRequest,
    QuoteResponse,
    QuotesResponse,
)
from portfolio_engine.services.market_data import QuoteCache, QuoteFetcher

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/quotes",
    tags=["Quotes"],
)


@router.post(
    "",
    response_model=QuotesResponse,
    summary="Fetch current quotes",
)
def get_quotes(
        request: QuoteRequest,
        fetcher: QuoteFetcher = Depends(get_quote_fetcher),
) -> QuotesResponse:
    """
    Fetch quotes in rate-limited batches.

    Never fails because of the provider: symbols the provider could not
    price are served from cache (`provenance: stale`) or listed in `missing`.
    Pence-quoted London listings are returned in pounds.
    """
    quotes = fetcher.fetch_quotes(request.symbols)
    requested = list(dict.fromkeys(s.strip().upper() for s in request.symbols if s.strip()))

    return QuotesResponse(
        quotes=[QuoteResponse.model_validate(q) for q in quotes.values()],
        missing=[s for s in requested if s not in quotes],
    )


@router.delete(
    "/cache",
    response_model=CacheClearResponse,
    summary="Clear the quote cache",
)
def clear_quote_cache(cache: QuoteCache = Depends(get_quote_cache)) -> CacheClearResponse:
    """Remove every cached quote. Later provider failures then yield `missing`."""
    removed = cache.clear()
    return CacheClearResponse(removed=removed)
