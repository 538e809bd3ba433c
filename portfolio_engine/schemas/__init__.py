# portfolio_engine/schemas/__init__.py
"""
Pydantic schemas for API request/response validation.

- errors: Error response formats
- portfolio: Holding and transaction input
- valuation: Current valuation and history
- exposure: Look-through exposure breakdown
- quotes: Quote lookup and cache management
"""

from portfolio_engine.schemas.errors import ErrorDetail, ValidationErrorDetail
from portfolio_engine.schemas.exposure import (
    BucketExposureResponse,
    ExposureRequest,
    ExposureResponse,
    ExposureSource,
    SkippedFundResponse,
    SymbolExposureResponse,
)
from portfolio_engine.schemas.portfolio import HoldingInput, TransactionInput
from portfolio_engine.schemas.quotes import (
    CacheClearResponse,
    QuoteRequest,
    QuoteResponse,
    QuotesResponse,
)
from portfolio_engine.schemas.valuation import (
    HistoryPointResponse,
    HistoryRequest,
    HoldingValuationResponse,
    PortfolioHistoryResponse,
    PortfolioValuationResponse,
    ValuationRequest,
)

__all__ = [
    "ErrorDetail",
    "ValidationErrorDetail",
    "HoldingInput",
    "TransactionInput",
    "ValuationRequest",
    "HoldingValuationResponse",
    "PortfolioValuationResponse",
    "HistoryRequest",
    "HistoryPointResponse",
    "PortfolioHistoryResponse",
    "ExposureRequest",
    "ExposureResponse",
    "ExposureSource",
    "SymbolExposureResponse",
    "BucketExposureResponse",
    "SkippedFundResponse",
    "QuoteRequest",
    "QuoteResponse",
    "QuotesResponse",
    "CacheClearResponse",
]
