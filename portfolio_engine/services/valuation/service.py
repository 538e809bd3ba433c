# portfolio_engine/services/valuation/service.py
"""
Valuation Service - Main orchestrator for portfolio valuation.

This is the single entry point for valuation operations:
- get_valuation(): Current value of a list of holdings, with live quotes
- get_history(): Daily (cash, invested, total) series for charts

Design Principles:
- Dependency Injection: quote fetcher and history source via constructor
- No HTTP Knowledge: Raises domain exceptions, not HTTPException
- Degrades, never fails, on provider errors: a holding without a live
  quote keeps its manual price; a symbol without history values at 0

Usage:
    service = ValuationService(
        quote_fetcher=fetcher,
        history_source=YahooFinanceProvider(),
    )

    valuation = service.get_valuation(holdings)

    history = service.get_history(
        transactions,
        start_date=date(2024, 1, 1),
        end_date=date(2024, 3, 31),
    )
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Callable

from portfolio_engine.models import AssetCategory
from portfolio_engine.services.exceptions import InvalidDateRangeError
from portfolio_engine.services.market_data.base import Quote
from portfolio_engine.services.market_data.currency import format_exchange_ticker
from portfolio_engine.services.market_data.price_history import HistoricalPriceLoader
from portfolio_engine.services.protocols import HistoricalPriceSource, QuoteFetcherProtocol
from portfolio_engine.services.valuation.calculators import (
    calculate_cost_basis,
    calculate_pct_of_total,
    calculate_unrealized_pnl,
    calculate_value,
    included_holdings,
)
from portfolio_engine.services.valuation.history_calculator import HistoryCalculator
from portfolio_engine.services.valuation.types import (
    Holding,
    HoldingValuation,
    PortfolioHistory,
    PortfolioValuation,
    Transaction,
)
from portfolio_engine.utils.concurrency import CallRunner
from portfolio_engine.utils.date_utils import default_window

logger = logging.getLogger(__name__)


def quote_symbol(holding: Holding) -> str:
    """Provider symbol for a holding ("VUSA" on LSE -> "VUSA.L")."""
    return format_exchange_ticker(holding.ticker, holding.exchange).upper()


class ValuationService:
    """
    Main service for portfolio valuation operations.

    Attributes:
        DEFAULT_HISTORY_WINDOW_DAYS: Window used when get_history gets no dates
        _quote_fetcher: Batched quote fetcher (shared cache)
        _history_source: Full close history provider
        _history_calc: Rolling-state history replay
    """

    DEFAULT_HISTORY_WINDOW_DAYS: int = 90

    def __init__(
            self,
            quote_fetcher: QuoteFetcherProtocol,
            history_source: HistoricalPriceSource,
            history_window_days: int = DEFAULT_HISTORY_WINDOW_DAYS,
            max_workers: int = 4,
            timeout_seconds: float = 10.0,
            today: Callable[[], date] = date.today,
            history_runner: CallRunner | None = None,
    ) -> None:
        """
        Initialize the valuation service.

        Args:
            quote_fetcher: Fetcher used for current prices
            history_source: Provider of full daily close series
            history_window_days: Default history window length
            max_workers: History fetches allowed to run at once (all requests)
            timeout_seconds: Timeout for each history fetch
            today: Clock for the default window (injectable for tests)
            history_runner: Runner for history fetches (built from max_workers if omitted)
        """
        self._quote_fetcher = quote_fetcher
        self._history_source = history_source
        self._history_window_days = history_window_days
        self._timeout = timeout_seconds
        self._today = today
        self._history_runner = history_runner or CallRunner(name="history", max_concurrent=max_workers)
        self._history_calc = HistoryCalculator()

        logger.info("ValuationService initialized")

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def get_valuation(
            self,
            holdings: list[Holding],
            refresh_prices: bool = True,
    ) -> PortfolioValuation:
        """
        Value the included holdings at their current effective price.

        Args:
            holdings: Holdings to value; include=False holdings are ignored
            refresh_prices: Fetch live quotes first (False = use the prices
                already on the holdings)

        Returns:
            PortfolioValuation with per-holding results in input order
        """
        included = included_holdings(holdings)

        quotes: dict[str, Quote] = {}
        requested: list[str] = []
        if refresh_prices:
            requested = self._quote_symbols(included)
            quotes = self._quote_fetcher.fetch_quotes(requested) if requested else {}

        priced: list[tuple[Holding, str, Quote | None]] = []
        for holding in included:
            symbol = quote_symbol(holding)
            quote = quotes.get(symbol)
            if quote is not None:
                holding = replace(holding, live_price=quote.price)
            priced.append((holding, symbol, quote))

        total_value = sum(calculate_value(h) for h, _, _ in priced)

        valuations: list[HoldingValuation] = []
        for holding, symbol, quote in priced:
            value = calculate_value(holding)
            cost_basis = calculate_cost_basis(holding)
            valuations.append(HoldingValuation(
                holding=holding,
                symbol=symbol,
                price=holding.effective_price,
                value=value,
                cost_basis=cost_basis,
                unrealized_pnl=calculate_unrealized_pnl(value, cost_basis),
                pct_of_total=calculate_pct_of_total(value, total_value),
                provenance=quote.provenance if quote else None,
                is_expired=quote.is_expired if quote else False,
                quote_time=quote.fetched_at if quote else None,
            ))

        known_costs = [v for v in valuations if v.cost_basis is not None]
        missing = [s for s in requested if s not in quotes]

        if missing:
            logger.warning(f"No live or cached price for {missing}; using manual prices")

        return PortfolioValuation(
            holdings=valuations,
            total_value=total_value,
            total_cost_basis=sum(v.cost_basis for v in known_costs),
            total_unrealized_pnl=sum(v.unrealized_pnl for v in known_costs),
            missing_prices=missing,
            valued_at=datetime.now(timezone.utc),
        )

    def get_history(
            self,
            transactions: list[Transaction],
            start_date: date | None = None,
            end_date: date | None = None,
            initial_cash: float = 0.0,
    ) -> PortfolioHistory:
        """
        Reconstruct daily portfolio value over a window.

        Args:
            transactions: Events in any order
            start_date: First day (default: end_date - window + 1)
            end_date: Last day (default: today)
            initial_cash: Flat cash balance when there are no transactions

        Returns:
            PortfolioHistory with one point per calendar day

        Raises:
            InvalidDateRangeError: start_date after end_date
            ValidationError: Malformed transaction
        """
        end = end_date or self._today()
        if start_date is None:
            start, end = default_window(end, self._history_window_days)
        else:
            start = start_date

        # Reject malformed input before any external call
        if start > end:
            raise InvalidDateRangeError(start, end)
        for txn in transactions:
            txn.validate()

        symbols = list(dict.fromkeys(t.normalized_symbol for t in transactions if t.is_trade))

        loader = HistoricalPriceLoader(
            source=self._history_source,
            timeout_seconds=self._timeout,
            runner=self._history_runner,
        )
        series = loader.prefetch(symbols) if symbols else {}

        points = self._history_calc.build_history(
            transactions=transactions,
            price_series=series,
            start_date=start,
            end_date=end,
            initial_cash=initial_cash,
        )

        unpriced = [s for s in symbols if not series.get(s)]
        if unpriced:
            logger.warning(f"No price history for {unpriced}; valued at 0")

        logger.info(
            f"History {start}..{end}: {len(points)} points, "
            f"{len(transactions)} transactions, {len(symbols)} symbols"
        )

        return PortfolioHistory(
            start_date=start,
            end_date=end,
            points=points,
            symbols=symbols,
            unpriced_symbols=unpriced,
        )

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    @staticmethod
    def _quote_symbols(holdings: list[Holding]) -> list[str]:
        """Distinct provider symbols for holdings that have a market price."""
        symbols: dict[str, None] = {}
        for holding in holdings:
            if holding.category == AssetCategory.CASH or not holding.ticker.strip():
                continue
            symbols.setdefault(quote_symbol(holding), None)
        return list(symbols)
