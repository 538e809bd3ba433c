# tests/routers/test_valuation_api.py
"""
API layer tests for valuation endpoints.

These tests verify the HTTP layer using FastAPI's TestClient:
- Correct status codes (200, 400, 422)
- Response JSON structure matches the Pydantic schemas
- Degraded results when the quote provider fails

Services run on the in-memory fakes from conftest (the `api` fixture).
"""

from datetime import date

import pytest

from portfolio_engine.services.exceptions import ProviderUnavailableError
from portfolio_engine.services.market_data.base import PricePoint
from tests.conftest import make_quote


def holding(id_: str, ticker: str, quantity: float, manual_price: float, **extra) -> dict:
    return {"id": id_, "ticker": ticker, "quantity": quantity, "manual_price": manual_price, **extra}


class TestValuePortfolio:
    """Tests for POST /valuation."""

    def test_values_holdings_with_live_prices(self, api):
        """Should replace manual prices with live quotes."""
        api.quote_source.prices = {"AAPL": 200.0, "VUSA.L": 8500.0}

        response = api.client.post("/valuation", json={
            "holdings": [
                holding("h1", "AAPL", 3, 150.0, avg_cost=100.0, account="ISA"),
                holding("h2", "vusa", 10, 80.0, exchange="lse", category="ETF"),
            ],
        })

        assert response.status_code == 200
        data = response.json()
        aapl, vusa = data["holdings"]
        assert aapl["price"] == 200.0
        assert aapl["value"] == 600.0
        assert aapl["unrealized_pnl"] == 300.0
        assert aapl["price_provenance"] == "live"
        assert aapl["account"] == "ISA"
        assert vusa["symbol"] == "VUSA.L"
        assert vusa["price"] == pytest.approx(85.0)
        assert data["total_value"] == pytest.approx(1450.0)
        assert data["missing_prices"] == []
        assert data["has_stale_prices"] is False

    def test_stale_prices_flagged(self, api):
        """Should serve cached quotes, flagged stale, when the provider fails."""
        api.cache.put(make_quote("AAPL", 180.0))
        api.quote_source.fail_all = True

        response = api.client.post("/valuation", json={"holdings": [holding("h1", "AAPL", 1, 150.0)]})

        assert response.status_code == 200
        data = response.json()
        assert data["holdings"][0]["price"] == 180.0
        assert data["holdings"][0]["price_provenance"] == "stale"
        assert data["has_stale_prices"] is True

    def test_missing_price_uses_manual(self, api):
        response = api.client.post("/valuation", json={"holdings": [holding("h1", "NOPE", 2, 50.0)]})

        data = response.json()
        assert data["holdings"][0]["price"] == 50.0
        assert data["holdings"][0]["price_provenance"] is None
        assert data["missing_prices"] == ["NOPE"]

    def test_refresh_disabled(self, api):
        response = api.client.post("/valuation", json={
            "holdings": [holding("h1", "AAPL", 2, 10.0)],
            "refresh_prices": False,
        })

        assert response.json()["total_value"] == 20.0
        assert api.quote_source.calls == []

    def test_negative_quantity_is_400(self, api):
        """Domain validation should return 400 naming the field."""
        response = api.client.post("/valuation", json={"holdings": [holding("h1", "AAPL", -1, 10.0)]})

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "ValidationError"
        assert data["details"] == {"field": "quantity"}
        assert api.quote_source.calls == []

    def test_missing_required_field_is_422(self, api):
        response = api.client.post("/valuation", json={"holdings": [{"id": "h1", "ticker": "AAPL"}]})

        assert response.status_code == 422
        assert response.json()["error"] == "ValidationError"

    def test_empty_portfolio(self, api):
        response = api.client.post("/valuation", json={"holdings": []})

        assert response.status_code == 200
        assert response.json()["total_value"] == 0.0


class TestValuationHistory:
    """Tests for POST /valuation/history."""

    def test_replays_transactions(self, api):
        """Should return one point per day with forward-filled prices."""
        api.history_source.series = {
            "AAPL": [PricePoint(date(2024, 1, 2), 100.0), PricePoint(date(2024, 1, 4), 110.0)],
        }

        response = api.client.post("/valuation/history", json={
            "start_date": "2024-01-01",
            "end_date": "2024-01-05",
            "transactions": [
                {"type": "DEPOSIT", "date": "2024-01-01", "amount": 1000},
                {"type": "BUY", "date": "2024-01-02", "symbol": "aapl", "quantity": 5, "amount": 500},
            ],
        })

        assert response.status_code == 200
        data = response.json()
        assert [p["date"] for p in data["points"]] == [
            "2024-01-01", "2024-01-02", "2024-01-03", "2024-01-04", "2024-01-05",
        ]
        assert [p["invested"] for p in data["points"]] == [0.0, 500.0, 500.0, 550.0, 550.0]
        assert data["points"][-1]["cash"] == 500.0
        assert data["points"][-1]["total"] == 1050.0
        assert data["unpriced_symbols"] == []

    def test_default_window(self, api):
        response = api.client.post("/valuation/history", json={"transactions": []})

        data = response.json()
        assert data["start_date"] == "2024-03-02"
        assert data["end_date"] == "2024-03-31"
        assert len(data["points"]) == 30

    def test_initial_cash_only_without_transactions(self, api):
        """initial_cash gives a flat series but never adds to replayed cash."""
        window = {"start_date": "2024-01-01", "end_date": "2024-01-02", "initial_cash": 1000}

        flat = api.client.post("/valuation/history", json={**window, "transactions": []})
        replayed = api.client.post("/valuation/history", json={
            **window,
            "transactions": [{"type": "DEPOSIT", "date": "2024-01-02", "amount": 50}],
        })

        assert [p["cash"] for p in flat.json()["points"]] == [1000.0, 1000.0]
        assert [p["cash"] for p in replayed.json()["points"]] == [0.0, 50.0]

    def test_unpriced_symbol_reported(self, api):
        api.history_source.errors["AAPL"] = ProviderUnavailableError(provider="fake", reason="down")

        response = api.client.post("/valuation/history", json={
            "start_date": "2024-01-01",
            "end_date": "2024-01-01",
            "transactions": [{"type": "BUY", "date": "2024-01-01", "symbol": "AAPL", "quantity": 1}],
        })

        assert response.status_code == 200
        assert response.json()["unpriced_symbols"] == ["AAPL"]

    def test_reversed_range_is_400(self, api):
        response = api.client.post("/valuation/history", json={
            "start_date": "2024-02-01",
            "end_date": "2024-01-01",
            "transactions": [{"type": "BUY", "date": "2024-01-01", "symbol": "AAPL", "quantity": 1}],
        })

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidDateRangeError"
        assert api.history_source.calls == []

    def test_buy_without_symbol_is_400(self, api):
        response = api.client.post("/valuation/history", json={
            "transactions": [{"type": "BUY", "date": "2024-01-01", "quantity": 1, "amount": 10}],
        })

        assert response.status_code == 400
        assert response.json()["details"] == {"field": "symbol"}

    def test_unknown_transaction_type_is_422(self, api):
        response = api.client.post("/valuation/history", json={
            "transactions": [{"type": "GIFT", "date": "2024-01-01", "amount": 10}],
        })

        assert response.status_code == 422
