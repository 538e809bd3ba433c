# portfolio_engine/services/valuation/__init__.py
"""
Valuation Service Package.

This package provides portfolio valuation capabilities:
- Current valuation with live quotes (get_valuation)
- Daily history replay for charts (get_history)

Architecture:
    valuation/
    ├── __init__.py              # This file - package exports
    ├── types.py                 # Holding, Transaction and result types
    ├── calculators.py           # Point-in-time helpers
    ├── history_calculator.py    # Rolling-state history replay
    └── service.py               # ValuationService (orchestrator)

Data Flow:
    Holdings → QuoteFetcher → live prices → HoldingValuation → PortfolioValuation
    Transactions → HistoricalPriceLoader (prefetch) → HistoryCalculator → PortfolioHistory
"""

from portfolio_engine.services.valuation.calculators import (
    get_effective_price,
    calculate_value,
    calculate_cost_basis,
    calculate_unrealized_pnl,
    safe_divide,
    calculate_pct_of_total,
    calculate_portfolio_weights,
)
from portfolio_engine.services.valuation.history_calculator import HistoryCalculator
from portfolio_engine.services.valuation.service import ValuationService, quote_symbol
from portfolio_engine.services.valuation.types import (
    Holding,
    Transaction,
    HoldingValuation,
    PortfolioValuation,
    HistoryPoint,
    PortfolioHistory,
)

__all__ = [
    # Main service
    "ValuationService",
    "HistoryCalculator",
    "quote_symbol",

    # Data types
    "Holding",
    "Transaction",
    "HoldingValuation",
    "PortfolioValuation",
    "HistoryPoint",
    "PortfolioHistory",

    # Calculators
    "get_effective_price",
    "calculate_value",
    "calculate_cost_basis",
    "calculate_unrealized_pnl",
    "safe_divide",
    "calculate_pct_of_total",
    "calculate_portfolio_weights",
]
