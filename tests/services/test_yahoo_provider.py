# tests/services/test_yahoo_provider.py
"""
Tests for the YahooFinanceProvider.

Note: These tests mock the yfinance library to avoid actual API calls.
"""

from datetime import date
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import numpy as np
import pandas as pd
import pytest

from portfolio_engine.services.exceptions import ProviderUnavailableError, RateLimitError
from portfolio_engine.services.market_data.yahoo import YahooFinanceProvider


@pytest.fixture
def provider():
    """Provider with a single attempt so failures return immediately."""
    provider = YahooFinanceProvider(timeout=10)
    provider.MAX_RETRY_ATTEMPTS = 1
    return provider


def fake_ticker(price, currency="USD", volume=1000):
    ticker = MagicMock()
    ticker.fast_info = SimpleNamespace(last_price=price, last_volume=volume, currency=currency)
    return ticker


class TestYahooProviderInit:
    """Tests for provider initialization."""

    def test_provider_name(self):
        """Provider name should be 'yahoo'."""
        assert YahooFinanceProvider().name == "yahoo"

    def test_custom_timeout(self):
        assert YahooFinanceProvider(timeout=30)._timeout == 30


class TestBatchQuotes:
    """Tests for get_batch_quotes."""

    @patch("portfolio_engine.services.market_data.yahoo.yf")
    def test_returns_raw_prices(self, mock_yf, provider):
        """Pence prices are passed through unconverted with their currency."""
        mock_yf.Tickers.return_value.tickers = {
            "AAPL": fake_ticker(190.0),
            "VUSA.L": fake_ticker(8512.0, currency="GBp"),
        }

        rows = provider.get_batch_quotes(["AAPL", "VUSA.L"])

        assert [(r.symbol, r.price, r.currency) for r in rows] == [
            ("AAPL", 190.0, "USD"),
            ("VUSA.L", 8512.0, "GBp"),
        ]
        mock_yf.Tickers.assert_called_once_with("AAPL VUSA.L")

    @patch("portfolio_engine.services.market_data.yahoo.yf")
    def test_unpriced_symbols_omitted(self, mock_yf, provider):
        mock_yf.Tickers.return_value.tickers = {
            "AAPL": fake_ticker(190.0),
            "DEAD": fake_ticker(None),
        }

        rows = provider.get_batch_quotes(["AAPL", "DEAD", "MISSING"])

        assert [r.symbol for r in rows] == ["AAPL"]

    @patch("portfolio_engine.services.market_data.yahoo.yf")
    def test_nothing_priced_is_failure(self, mock_yf, provider):
        mock_yf.Tickers.return_value.tickers = {"DEAD": fake_ticker(float("nan"))}

        with pytest.raises(ProviderUnavailableError):
            provider.get_batch_quotes(["DEAD"])

    @patch("portfolio_engine.services.market_data.yahoo.yf")
    def test_rate_limit_classified(self, mock_yf, provider):
        mock_yf.Tickers.side_effect = Exception("Too Many Requests. Rate limited.")

        with pytest.raises(RateLimitError):
            provider.get_batch_quotes(["AAPL"])

    @patch("portfolio_engine.services.market_data.yahoo.yf")
    def test_network_error_classified(self, mock_yf, provider):
        mock_yf.Tickers.side_effect = Exception("Connection reset by peer")

        with pytest.raises(ProviderUnavailableError):
            provider.get_batch_quotes(["AAPL"])

    def test_empty_batch(self, provider):
        assert provider.get_batch_quotes([]) == []


class TestFullHistory:
    """Tests for get_full_history."""

    @patch("portfolio_engine.services.market_data.yahoo.yf")
    def test_dataframe_converted(self, mock_yf, provider):
        dates = pd.date_range(start="2024-01-15", periods=3, freq="B")
        mock_yf.Ticker.return_value.history.return_value = pd.DataFrame(
            {"Close": [186.0, np.nan, 188.0], "Volume": [1, 2, 3]},
            index=dates,
        )

        points = provider.get_full_history("AAPL")

        assert [(p.date, p.close) for p in points] == [
            (date(2024, 1, 15), 186.0),
            (date(2024, 1, 17), 188.0),
        ]
        mock_yf.Ticker.assert_called_once_with("AAPL")
        assert mock_yf.Ticker.return_value.history.call_args.kwargs["period"] == "max"

    @patch("portfolio_engine.services.market_data.yahoo.yf")
    def test_empty_dataframe(self, mock_yf, provider):
        mock_yf.Ticker.return_value.history.return_value = pd.DataFrame()

        assert provider.get_full_history("NOPE") == []

    @patch("portfolio_engine.services.market_data.yahoo.yf")
    def test_provider_error(self, mock_yf, provider):
        mock_yf.Ticker.return_value.history.side_effect = Exception("HTTP 500")

        with pytest.raises(ProviderUnavailableError):
            provider.get_full_history("AAPL")


class TestCircuitBreakerIntegration:
    """Repeated failures open the provider's breaker."""

    @patch("portfolio_engine.services.market_data.yahoo.yf")
    def test_breaker_opens(self, mock_yf, provider):
        mock_yf.Tickers.side_effect = Exception("Connection reset by peer")

        for _ in range(provider.CIRCUIT_FAILURE_THRESHOLD):
            with pytest.raises(ProviderUnavailableError):
                provider.get_batch_quotes(["AAPL"])

        assert provider.is_available() is False
