# portfolio_engine/services/constants.py
"""
Centralized constants for the engine's services.

Runtime-tunable values (batch size, TTL, timeouts) live in config.Settings;
the values here are fixed conventions of the domain.
"""

# =============================================================================
# EXCHANGE SUFFIXES
# =============================================================================

# Exchange identifier -> provider ticker suffix.
# Bare tickers on these exchanges are rewritten to "<TICKER><SUFFIX>".
EXCHANGE_SUFFIXES: dict[str, str] = {
    "LSE": ".L",
    "AMS": ".AS",
    "XETRA": ".DE",
    "EURONEXT": ".PA",
    "SIX": ".SW",
    "TSE": ".T",
    "ASX": ".AX",
    "HKG": ".HK",
}


# =============================================================================
# PENNY-DENOMINATED QUOTES
# =============================================================================

# Currency codes meaning "pence sterling"
PENCE_CURRENCY_CODES: frozenset[str] = frozenset({"GBX", "GBp"})

# London listings are quoted in pence unless stated otherwise
PENCE_TICKER_SUFFIX: str = ".L"

PENCE_PER_POUND: float = 100.0


# =============================================================================
# LOOK-THROUGH
# =============================================================================

# Symbol-level exposures returned by the aggregator
DEFAULT_TOP_EXPOSURES: int = 20

# Constituent weights are reported as percentages of the fund
FUND_WEIGHT_SCALE: float = 100.0

# Tolerance used when comparing aggregated weights
WEIGHT_TOLERANCE: float = 1e-6
