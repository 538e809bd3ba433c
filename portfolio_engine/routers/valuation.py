# portfolio_engine/routers/valuation.py
"""
Portfolio valuation endpoints.

- POST /valuation          - Current valuation of the posted holdings
- POST /valuation/history  - Daily value series replayed from transactions

Holdings and transactions travel in the request body; nothing is stored.
"""

from fastapi import APIRouter, Depends

from portfolio_engine.dependencies import get_valuation_service
from portfolio_engine.schemas.valuation import (
    HistoryPointResponse,
    HistoryRequest,
    HoldingValuationResponse,
    PortfolioHistoryResponse,
    PortfolioValuationResponse,
    ValuationRequest,
)
from portfolio_engine.services.valuation import ValuationService

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    prefix="/valuation",
    tags=["Valuation"],
)


# =============================================================================
# MAPPER FUNCTIONS (Internal Types -> Pydantic Schemas)
# =============================================================================

def _map_holding(valuation) -> HoldingValuationResponse:
    """Map internal HoldingValuation to Pydantic schema."""
    holding = valuation.holding
    return HoldingValuationResponse(
        id=holding.id,
        ticker=holding.ticker,
        name=holding.name,
        symbol=valuation.symbol,
        account=holding.account,
        quantity=holding.quantity,
        price=valuation.price,
        value=valuation.value,
        cost_basis=valuation.cost_basis,
        unrealized_pnl=valuation.unrealized_pnl,
        unrealized_pnl_pct=valuation.unrealized_pnl_pct,
        pct_of_total=valuation.pct_of_total,
        price_provenance=valuation.provenance,
        price_expired=valuation.is_expired,
        quote_time=valuation.quote_time,
    )


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post(
    "",
    response_model=PortfolioValuationResponse,
    summary="Value holdings at current prices",
)
def value_portfolio(
        request: ValuationRequest,
        service: ValuationService = Depends(get_valuation_service),
) -> PortfolioValuationResponse:
    """
    Value the posted holdings.

    Live quotes replace manual prices where available. When the provider
    fails, the last cached quote is used and flagged `stale`; when there is
    no quote at all the manual price is used and the symbol is listed in
    `missing_prices`.

    Raises **400** for a negative quantity or manual price.
    """
    # Domain ValidationError propagates to the global handler (400)
    holdings = [h.to_domain() for h in request.holdings]

    valuation = service.get_valuation(holdings, refresh_prices=request.refresh_prices)

    return PortfolioValuationResponse(
        holdings=[_map_holding(h) for h in valuation.holdings],
        total_value=valuation.total_value,
        total_cost_basis=valuation.total_cost_basis,
        total_unrealized_pnl=valuation.total_unrealized_pnl,
        missing_prices=valuation.missing_prices,
        has_stale_prices=valuation.has_stale_prices,
        valued_at=valuation.valued_at,
    )


@router.post(
    "/history",
    response_model=PortfolioHistoryResponse,
    summary="Replay transactions into a daily value series",
)
def get_valuation_history(
        request: HistoryRequest,
        service: ValuationService = Depends(get_valuation_service),
) -> PortfolioHistoryResponse:
    """
    Reconstruct cash, invested and total value for every calendar day.

    Prices are forward-filled from the last known close; a symbol with no
    close yet contributes 0. Without dates the default window ends today.

    Raises **400** if start_date is after end_date or a transaction is
    malformed (negative amount, BUY/SELL without symbol or quantity).
    """
    transactions = [t.to_domain() for t in request.transactions]

    history = service.get_history(
        transactions,
        start_date=request.start_date,
        end_date=request.end_date,
        initial_cash=request.initial_cash,
    )

    return PortfolioHistoryResponse(
        start_date=history.start_date,
        end_date=history.end_date,
        points=[HistoryPointResponse.model_validate(p) for p in history.points],
        unpriced_symbols=history.unpriced_symbols,
    )
