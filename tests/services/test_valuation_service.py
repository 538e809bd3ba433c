# tests/services/test_valuation_service.py
"""
Tests for ValuationService: current valuation and history orchestration.
"""

from datetime import date

import pytest

from portfolio_engine.models import AssetCategory, QuoteProvenance, TransactionType
from portfolio_engine.services.exceptions import InvalidDateRangeError, ProviderUnavailableError
from portfolio_engine.services.market_data.base import PricePoint
from portfolio_engine.services.market_data.quote_cache import QuoteCache
from portfolio_engine.services.market_data.quote_fetcher import QuoteFetcher
from portfolio_engine.services.valuation.service import ValuationService, quote_symbol
from tests.conftest import make_holding, make_quote, make_transaction


@pytest.fixture
def cache(clock) -> QuoteCache:
    return QuoteCache(ttl_seconds=600, clock=clock)


@pytest.fixture
def service(quote_source, history_source, cache) -> ValuationService:
    fetcher = QuoteFetcher(
        source=quote_source,
        cache=cache,
        batch_delay_seconds=0,
        timeout_seconds=5.0,
    )
    return ValuationService(
        quote_fetcher=fetcher,
        history_source=history_source,
        history_window_days=30,
        timeout_seconds=5.0,
        today=lambda: date(2024, 3, 31),
    )


class TestQuoteSymbol:
    """Tests for quote_symbol."""

    def test_suffix_applied(self):
        assert quote_symbol(make_holding("vusa", exchange="LSE")) == "VUSA.L"

    def test_plain_ticker(self):
        assert quote_symbol(make_holding("AAPL")) == "AAPL"


class TestGetValuation:
    """Tests for current valuation."""

    def test_live_prices_applied(self, service, quote_source):
        quote_source.prices = {"AAPL": 200.0, "MSFT": 100.0}
        holdings = [
            make_holding("AAPL", quantity=3, manual_price=150.0, avg_cost=100.0),
            make_holding("MSFT", quantity=4, manual_price=90.0),
        ]

        result = service.get_valuation(holdings)

        aapl, msft = result.holdings
        assert aapl.price == 200.0
        assert aapl.value == 600.0
        assert aapl.provenance == QuoteProvenance.LIVE
        assert aapl.unrealized_pnl == 300.0
        assert aapl.unrealized_pnl_pct == pytest.approx(100.0)
        assert msft.cost_basis is None
        assert result.total_value == 1000.0
        assert aapl.pct_of_total == pytest.approx(60.0)
        assert result.total_cost_basis == 300.0
        assert result.total_unrealized_pnl == 300.0
        assert result.missing_prices == []

    def test_missing_quote_falls_back_to_manual(self, service, quote_source):
        holdings = [make_holding("NOPE", quantity=2, manual_price=50.0)]

        result = service.get_valuation(holdings)

        assert result.holdings[0].price == 50.0
        assert result.holdings[0].provenance is None
        assert result.missing_prices == ["NOPE"]

    def test_stale_quote_reported(self, service, quote_source, cache, clock):
        cache.put(make_quote("AAPL", 180.0, fetched_at=clock()))
        clock.advance(3600)
        quote_source.fail_all = True

        result = service.get_valuation([make_holding("AAPL", quantity=1)])

        valuation = result.holdings[0]
        assert valuation.price == 180.0
        assert valuation.provenance == QuoteProvenance.STALE
        assert valuation.is_expired is True
        assert result.has_stale_prices is True

    def test_cash_and_excluded_not_quoted(self, service, quote_source):
        quote_source.prices = {"AAPL": 10.0}
        holdings = [
            make_holding("AAPL", quantity=1),
            make_holding("GBP", quantity=500, manual_price=1.0, category=AssetCategory.CASH),
            make_holding("TSLA", quantity=1, include=False),
        ]

        result = service.get_valuation(holdings)

        assert quote_source.calls == [["AAPL"]]
        assert [v.symbol for v in result.holdings] == ["AAPL", "GBP"]
        assert result.total_value == 510.0

    def test_exchange_suffix_and_pence(self, service, quote_source):
        quote_source.prices = {"VUSA.L": 8500.0}
        holding = make_holding("VUSA", quantity=10, manual_price=80.0, exchange="LSE")

        valuation = service.get_valuation([holding]).holdings[0]

        assert valuation.symbol == "VUSA.L"
        assert valuation.price == pytest.approx(85.0)

    def test_refresh_disabled_uses_existing_prices(self, service, quote_source):
        holding = make_holding("AAPL", quantity=2, manual_price=10.0, live_price=12.0)

        result = service.get_valuation([holding], refresh_prices=False)

        assert quote_source.calls == []
        assert result.total_value == 24.0

    def test_empty_portfolio(self, service, quote_source):
        result = service.get_valuation([])

        assert result.total_value == 0.0
        assert result.holdings == []
        assert quote_source.calls == []


class TestGetHistory:
    """Tests for history orchestration."""

    def test_default_window(self, service):
        history = service.get_history([])

        assert history.start_date == date(2024, 3, 2)
        assert history.end_date == date(2024, 3, 31)
        assert len(history.points) == 30

    def test_explicit_window(self, service):
        history = service.get_history([], start_date=date(2024, 1, 1), end_date=date(2024, 1, 10))

        assert len(history.points) == 10

    def test_prefetches_traded_symbols(self, service, history_source):
        d1 = date(2024, 3, 1)
        history_source.series = {"AAPL": [PricePoint(d1, 100.0)]}
        txns = [
            make_transaction(TransactionType.DEPOSIT, d1, amount=1000.0),
            make_transaction(TransactionType.BUY, d1, "aapl", quantity=5, amount=500.0),
        ]

        history = service.get_history(txns, start_date=d1, end_date=date(2024, 3, 3))

        assert history_source.calls == ["AAPL"]
        assert history.symbols == ["AAPL"]
        assert history.latest.total == 1000.0

    def test_failed_series_reported_unpriced(self, service, history_source):
        d1 = date(2024, 3, 1)
        history_source.errors["AAPL"] = ProviderUnavailableError(provider="fake", reason="down")
        txns = [make_transaction(TransactionType.BUY, d1, "AAPL", quantity=5, amount=500.0)]

        history = service.get_history(txns, start_date=d1, end_date=d1)

        assert history.unpriced_symbols == ["AAPL"]
        assert history.points[0].invested == 0.0
        assert history.points[0].cash == -500.0

    def test_invalid_range_rejected_before_fetch(self, service, history_source):
        txns = [make_transaction(TransactionType.BUY, date(2024, 1, 1), "AAPL", quantity=1)]

        with pytest.raises(InvalidDateRangeError):
            service.get_history(txns, start_date=date(2024, 2, 1), end_date=date(2024, 1, 1))

        assert history_source.calls == []

    def test_no_trades_makes_no_fetch(self, service, history_source):
        txns = [make_transaction(TransactionType.DEPOSIT, date(2024, 3, 1), amount=10.0)]

        service.get_history(txns)

        assert history_source.calls == []
