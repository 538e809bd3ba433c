# portfolio_engine/schemas/exposure.py
"""
Pydantic schemas for look-through exposure.

All weights are percentage points of the whole portfolio.
"""

from pydantic import BaseModel, ConfigDict, Field

from portfolio_engine.schemas.portfolio import HoldingInput


class ExposureRequest(BaseModel):
    holdings: list[HoldingInput] = Field(default_factory=list)


class ExposureSource(BaseModel):
    """Contribution of one portfolio holding to an exposure."""

    holding: str
    weight: float


class SymbolExposureResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    symbol: str
    name: str
    weight: float
    sources: list[ExposureSource] = Field(default_factory=list)


class BucketExposureResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    label: str
    weight: float


class SkippedFundResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    fund_symbol: str
    reason: str


class ExposureResponse(BaseModel):
    top_exposures: list[SymbolExposureResponse]
    sector_exposure: list[BucketExposureResponse]
    country_exposure: list[BucketExposureResponse]
    skipped: list[SkippedFundResponse] = Field(
        default_factory=list,
        description="Funds whose constituents were unavailable (contribute nothing)"
    )
    total_value: float
    symbol_count: int = Field(..., description="Symbols before truncation to the top list")
