# tests/routers/test_exposure_api.py
"""
API layer tests for the look-through exposure endpoint.
"""

import pytest

from portfolio_engine.services.exceptions import ProviderUnavailableError
from tests.conftest import constituent


class TestExposure:
    """Tests for POST /exposure."""

    def test_look_through_breakdown(self, api):
        """Fund constituents combine with direct holdings."""
        api.holdings_source.funds = {
            "F": [
                constituent("S", 10.0, sector="Technology", country="United States"),
                constituent("T", 5.0, sector="Energy", country="United Kingdom"),
            ],
        }

        response = api.client.post("/exposure", json={
            "holdings": [
                {"id": "f", "ticker": "F", "category": "ETF", "quantity": 1, "manual_price": 60},
                {"id": "s", "ticker": "S", "quantity": 1, "manual_price": 40},
            ],
        })

        assert response.status_code == 200
        data = response.json()
        top = {e["symbol"]: e for e in data["top_exposures"]}
        assert top["S"]["weight"] == pytest.approx(46.0)
        assert top["T"]["weight"] == pytest.approx(3.0)
        assert [s["holding"] for s in top["S"]["sources"]] == ["F", "S"]
        assert data["top_exposures"][0]["symbol"] == "S"
        assert data["sector_exposure"][0] == {"label": "Technology", "weight": pytest.approx(6.0)}
        assert data["total_value"] == 100.0
        assert data["symbol_count"] == 2
        assert data["skipped"] == []

    def test_failed_fund_listed_in_skipped(self, api):
        api.holdings_source.errors["F"] = ProviderUnavailableError(provider="fake", reason="down")

        response = api.client.post("/exposure", json={
            "holdings": [
                {"id": "f", "ticker": "F", "category": "FUND", "quantity": 1, "manual_price": 50},
                {"id": "s", "ticker": "S", "quantity": 1, "manual_price": 50},
            ],
        })

        assert response.status_code == 200
        data = response.json()
        assert [s["fund_symbol"] for s in data["skipped"]] == ["F"]
        assert [e["symbol"] for e in data["top_exposures"]] == ["S"]

    def test_excluded_holding_ignored(self, api):
        response = api.client.post("/exposure", json={
            "holdings": [
                {"id": "a", "ticker": "A", "quantity": 1, "manual_price": 50},
                {"id": "b", "ticker": "B", "quantity": 1, "manual_price": 50, "include": False},
            ],
        })

        data = response.json()
        assert [e["symbol"] for e in data["top_exposures"]] == ["A"]
        assert data["top_exposures"][0]["weight"] == pytest.approx(100.0)

    def test_negative_price_is_400(self, api):
        response = api.client.post("/exposure", json={
            "holdings": [{"id": "a", "ticker": "A", "quantity": 1, "manual_price": -5}],
        })

        assert response.status_code == 400
        assert response.json()["details"] == {"field": "manual_price"}
