# tests/services/test_calculators.py
"""
Tests for the point-in-time valuation helpers.
"""

import math

import pytest

from portfolio_engine.services.exceptions import ValidationError
from portfolio_engine.services.valuation.calculators import (
    calculate_cost_basis,
    calculate_pct_of_total,
    calculate_portfolio_weights,
    calculate_total_value,
    calculate_unrealized_pnl,
    calculate_value,
    get_effective_price,
    safe_divide,
)
from tests.conftest import make_holding


class TestEffectivePrice:
    """Tests for get_effective_price."""

    def test_live_price_wins(self):
        assert get_effective_price(make_holding(manual_price=100.0, live_price=120.0)) == 120.0

    def test_manual_price_without_live(self):
        assert get_effective_price(make_holding(manual_price=100.0)) == 100.0

    @pytest.mark.parametrize("live", [0.0, -1.0, math.nan, math.inf])
    def test_unusable_live_price_ignored(self, live):
        assert get_effective_price(make_holding(manual_price=100.0, live_price=live)) == 100.0


class TestValueAndPnl:
    """Tests for value, cost basis and unrealized P&L."""

    def test_value(self):
        assert calculate_value(make_holding(quantity=3, manual_price=10.0)) == 30.0

    def test_cost_basis_unknown(self):
        assert calculate_cost_basis(make_holding()) is None

    def test_cost_basis_and_pnl(self):
        holding = make_holding(quantity=10, manual_price=12.0, avg_cost=10.0)

        cost = calculate_cost_basis(holding)

        assert cost == 100.0
        assert calculate_unrealized_pnl(calculate_value(holding), cost) == 20.0

    def test_pnl_without_cost(self):
        assert calculate_unrealized_pnl(100.0, None) is None


class TestDivision:
    """Division never raises."""

    def test_safe_divide_zero(self):
        assert safe_divide(10, 0) == 0.0
        assert safe_divide(10, 0, default=-1.0) == -1.0

    def test_pct_of_total(self):
        assert calculate_pct_of_total(25, 200) == 12.5
        assert calculate_pct_of_total(25, 0) == 0.0


class TestPortfolioWeights:
    """Tests for calculate_portfolio_weights."""

    def test_weights_sum_to_one(self):
        holdings = [
            make_holding("A", quantity=1, manual_price=60.0),
            make_holding("B", quantity=1, manual_price=40.0),
        ]

        weights = calculate_portfolio_weights(holdings)

        assert [(h.ticker, w) for h, w in weights] == [("A", 0.6), ("B", 0.4)]

    def test_excluded_holdings_ignored(self):
        holdings = [
            make_holding("A", quantity=1, manual_price=60.0),
            make_holding("B", quantity=1, manual_price=40.0, include=False),
        ]

        weights = calculate_portfolio_weights(holdings)

        assert [(h.ticker, w) for h, w in weights] == [("A", 1.0)]
        assert calculate_total_value(holdings) == 60.0

    def test_zero_total_gives_zero_weights(self):
        holdings = [make_holding("A", quantity=0), make_holding("B", manual_price=0.0)]

        assert [w for _, w in calculate_portfolio_weights(holdings)] == [0.0, 0.0]


class TestHoldingValidation:
    """Holdings reject impossible numbers at construction."""

    def test_negative_quantity(self):
        with pytest.raises(ValidationError) as exc_info:
            make_holding(quantity=-1)

        assert exc_info.value.field == "quantity"

    def test_nan_manual_price(self):
        with pytest.raises(ValidationError) as exc_info:
            make_holding(manual_price=math.nan)

        assert exc_info.value.field == "manual_price"
