# portfolio_engine/routers/exposure.py
"""
Look-through exposure endpoint.

- POST /exposure - Aggregate holdings (funds expanded) by symbol, sector, country
"""

from fastapi import APIRouter, Depends

from portfolio_engine.dependencies import get_exposure_aggregator
from portfolio_engine.schemas.exposure import (
    BucketExposureResponse,
    ExposureRequest,
    ExposureResponse,
    ExposureSource,
    SkippedFundResponse,
    SymbolExposureResponse,
)
from portfolio_engine.services.exposure import ExposureAggregator

router = APIRouter(
    prefix="/exposure",
    tags=["Exposure"],
)


def _map_symbol(exposure) -> SymbolExposureResponse:
    return SymbolExposureResponse(
        symbol=exposure.symbol,
        name=exposure.name,
        weight=exposure.weight,
        sources=[ExposureSource(holding=s, weight=w) for s, w in exposure.sources],
    )


@router.post(
    "",
    response_model=ExposureResponse,
    summary="Look-through exposure breakdown",
)
def get_exposure(
        request: ExposureRequest,
        aggregator: ExposureAggregator = Depends(get_exposure_aggregator),
) -> ExposureResponse:
    """
    Expand ETF/fund holdings into their constituents and aggregate.

    Funds whose constituents cannot be fetched contribute nothing and are
    listed in `skipped` with the reason.
    """
    holdings = [h.to_domain() for h in request.holdings]

    breakdown = aggregator.aggregate(holdings)

    return ExposureResponse(
        top_exposures=[_map_symbol(e) for e in breakdown.top_exposures],
        sector_exposure=[BucketExposureResponse.model_validate(b) for b in breakdown.sector_exposure],
        country_exposure=[BucketExposureResponse.model_validate(b) for b in breakdown.country_exposure],
        skipped=[SkippedFundResponse.model_validate(s) for s in breakdown.skipped],
        total_value=breakdown.total_value,
        symbol_count=breakdown.symbol_count,
    )
