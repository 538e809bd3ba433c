# portfolio_engine/services/valuation/calculators.py
"""
Point-in-time valuation helpers.

Pure functions shared by the valuation service and the exposure aggregator:
- get_effective_price: live price when usable, else manual price
- calculate_value: effective price × quantity
- calculate_cost_basis / calculate_unrealized_pnl
- safe_divide / calculate_pct_of_total: division that never raises
- calculate_portfolio_weights: each included holding's share of the total

Design Principles:
- Stateless, no I/O
- Division by zero yields a default, never an exception
- Excluded holdings (include=False) never count towards totals
"""

from __future__ import annotations

from typing import Iterable

from portfolio_engine.services.valuation.types import Holding


def get_effective_price(holding: Holding) -> float:
    """
    Price used to value a holding.

    Returns:
        live_price if present, finite and > 0, otherwise manual_price
    """
    return holding.effective_price


def calculate_value(holding: Holding) -> float:
    return get_effective_price(holding) * holding.quantity


def calculate_cost_basis(holding: Holding) -> float | None:
    """avg_cost × quantity, or None when the acquisition cost is unknown."""
    if holding.avg_cost is None:
        return None
    return holding.avg_cost * holding.quantity


def calculate_unrealized_pnl(value: float, cost_basis: float | None) -> float | None:
    if cost_basis is None:
        return None
    return value - cost_basis


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    numerator / denominator, or default when the denominator is zero.

    Example:
        >>> safe_divide(10, 4)
        2.5
        >>> safe_divide(10, 0)
        0.0
    """
    if denominator == 0:
        return default
    return numerator / denominator


def calculate_pct_of_total(value: float, total: float) -> float:
    """Share of total in percentage points (0 when total is 0)."""
    return safe_divide(value, total) * 100


def included_holdings(holdings: Iterable[Holding]) -> list[Holding]:
    return [h for h in holdings if h.include]


def calculate_total_value(holdings: Iterable[Holding]) -> float:
    return sum(calculate_value(h) for h in included_holdings(holdings))


def calculate_portfolio_weights(holdings: Iterable[Holding]) -> list[tuple[Holding, float]]:
    """
    Weight of each included holding as a fraction of the portfolio.

    Weights sum to 1 unless the portfolio is worth nothing, in which case
    every weight is 0. Input order is preserved.

    Returns:
        List of (holding, weight) for included holdings
    """
    included = included_holdings(holdings)
    total = sum(calculate_value(h) for h in included)
    return [(h, safe_divide(calculate_value(h), total)) for h in included]
