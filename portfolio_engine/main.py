# portfolio_engine/main.py
"""
FastAPI application entry point.

This file:
- Configures application-wide logging
- Creates the FastAPI application
- Registers global exception handlers
- Registers all routers
- Defines global endpoints (health checks)

Run:
    uvicorn portfolio_engine.main:app --reload
"""

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from portfolio_engine import __version__
from portfolio_engine.config import settings
from portfolio_engine.dependencies import get_active_providers
from portfolio_engine.middleware import CorrelationIdMiddleware
from portfolio_engine.routers import (
    exposure_router,
    quotes_router,
    valuation_router,
)
from portfolio_engine.schemas.errors import ErrorDetail, ValidationErrorDetail
from portfolio_engine.services.exceptions import (
    CircuitBreakerOpen,
    MarketDataError,
    ProviderUnavailableError,
    RateLimitError,
    ServiceError,
    ValidationError,
)
from portfolio_engine.utils import setup_logging

logger = logging.getLogger(__name__)

# =============================================================================
# LOGGING SETUP (must be before app creation)
# =============================================================================

setup_logging()

# =============================================================================
# APPLICATION SETUP
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description="Portfolio valuation, history replay and look-through exposure API",
    version=__version__,
)


# =============================================================================
# MIDDLEWARE (order matters: last added = first executed)
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

app.add_middleware(CorrelationIdMiddleware)


# =============================================================================
# GLOBAL EXCEPTION HANDLERS
# =============================================================================
# Service exceptions carry no HTTP knowledge; they are mapped here.
# Starlette picks the handler of the most specific exception class.
# =============================================================================

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Handle malformed engine input (400)."""
    logger.warning(f"Validation error: {exc}")
    return JSONResponse(
        status_code=400,
        content=ErrorDetail(
            error=type(exc).__name__,
            message=str(exc),
            details={"field": exc.field} if exc.field else None,
        ).model_dump(),
    )


@app.exception_handler(RateLimitError)
async def rate_limit_handler(request: Request, exc: RateLimitError) -> JSONResponse:
    """Handle rate limit exceeded (429)."""
    logger.warning(f"Rate limit exceeded: {exc}")
    return JSONResponse(
        status_code=429,
        content=ErrorDetail(
            error="RateLimitError",
            message=str(exc),
            details={"retry_after": exc.retry_after} if exc.retry_after else None,
        ).model_dump(),
    )


@app.exception_handler(ProviderUnavailableError)
async def provider_unavailable_handler(request: Request, exc: ProviderUnavailableError) -> JSONResponse:
    """Handle market data provider unavailable, including timeouts (503)."""
    logger.error(f"Provider unavailable: {exc}")
    return JSONResponse(
        status_code=503,
        content=ErrorDetail(
            error=type(exc).__name__,
            message=str(exc),
            details={"provider": exc.provider},
        ).model_dump(),
    )


@app.exception_handler(CircuitBreakerOpen)
async def circuit_breaker_handler(request: Request, exc: CircuitBreakerOpen) -> JSONResponse:
    """Handle circuit breaker open (503 with Retry-After)."""
    logger.warning(f"Circuit breaker open: {exc.breaker_name}")
    retry_after = int(exc.time_remaining) + 1
    return JSONResponse(
        status_code=503,
        content=ErrorDetail(
            error="CircuitBreakerOpen",
            message=f"Service temporarily unavailable. The {exc.breaker_name} circuit breaker is open.",
            details={
                "breaker_name": exc.breaker_name,
                "retry_after": retry_after,
            },
        ).model_dump(),
        headers={"Retry-After": str(retry_after)},
    )


@app.exception_handler(MarketDataError)
async def market_data_error_handler(request: Request, exc: MarketDataError) -> JSONResponse:
    """Handle generic market data errors (500)."""
    logger.error(f"Market data error: {exc}")
    return JSONResponse(
        status_code=500,
        content=ErrorDetail(
            error=type(exc).__name__,
            message=str(exc),
            details=None,
        ).model_dump(),
    )


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Catch-all for service errors without a dedicated handler (500)."""
    logger.error(f"Service error: {exc}")
    return JSONResponse(
        status_code=500,
        content=ErrorDetail(
            error=type(exc).__name__,
            message=str(exc),
            details=None,
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle all HTTPExceptions with consistent error format.

    Converts FastAPI's default {"detail": "..."} format to our standard
    ErrorDetail format for API consistency.
    """
    error_types = {
        400: "BadRequestError",
        404: "NotFoundError",
        405: "MethodNotAllowedError",
        422: "ValidationError",
        429: "RateLimitError",
        500: "InternalServerError",
        503: "ServiceUnavailableError",
    }

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorDetail(
            error=error_types.get(exc.status_code, "HTTPError"),
            message=str(exc.detail) if exc.detail else "An error occurred",
            details=None,
        ).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors with consistent format.

    Converts the default 422 validation error to our ValidationErrorDetail format.
    """
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]

    return JSONResponse(
        status_code=422,
        content=ValidationErrorDetail(
            error="ValidationError",
            message="Request validation failed",
            details=errors,
        ).model_dump(),
    )


# =============================================================================
# ROUTER REGISTRATION
# =============================================================================

app.include_router(valuation_router)  # /valuation, /valuation/history
app.include_router(exposure_router)  # /exposure
app.include_router(quotes_router)  # /quotes, /quotes/cache


# =============================================================================
# GLOBAL ENDPOINTS
# =============================================================================

@app.get("/", tags=["Health"])
def root():
    """API root - returns basic application info."""
    return {
        "message": f"Welcome to {settings.app_name}!",
        "docs": "/docs",
        "redoc": "/redoc",
    }


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check with provider circuit breaker state.

    Providers are non-critical: an open breaker only degrades results
    (stale quotes, skipped look-through), so the status becomes "degraded"
    and the endpoint still returns 200.
    """
    overall_status = "healthy"
    checks = {}

    for provider in get_active_providers():
        breaker = provider._get_circuit_breaker()
        check = {
            "status": "unhealthy" if breaker.is_open else "healthy",
            "critical": False,
            **breaker.describe(),
        }
        checks[provider.name] = check

        if breaker.is_open:
            overall_status = "degraded"

    return {
        "status": overall_status,
        "environment": settings.environment,
        "quote_provider": settings.quote_provider,
        "checks": checks,
    }


@app.get("/health/live", tags=["Health"])
def liveness_check():
    """
    Liveness probe endpoint.

    Returns HTTP 200 if the application is running. Does NOT check
    dependencies - use /health for that.
    """
    return {"status": "alive"}
