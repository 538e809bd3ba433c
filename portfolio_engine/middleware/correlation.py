# portfolio_engine/middleware/correlation.py
"""
Correlation ID middleware.

Each request runs under one correlation ID, taken from the caller's
X-Correlation-ID (or X-Request-ID) header when it is a usable token and
generated otherwise. Provider calls copy the request context into their
threads (utils.concurrency), so quote batches, history fetches and fund
lookups log under the ID of the request that triggered them. The ID is
echoed back in X-Correlation-ID, error responses included.
"""

import logging
import re
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from portfolio_engine.utils.context import clear_correlation_id, set_correlation_id

logger = logging.getLogger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"

# IDs end up in every log line (and JSON logs); anything else is replaced
_VALID_ID = re.compile(r"^[A-Za-z0-9._:\-]{1,128}$")


def resolve_correlation_id(headers) -> str:
    """First usable ID from the request headers, or a fresh UUID."""
    for header in (CORRELATION_ID_HEADER, REQUEST_ID_HEADER):
        value = (headers.get(header) or "").strip()
        if not value:
            continue
        if _VALID_ID.match(value):
            return value
        logger.debug(f"Ignoring unusable {header} header ({len(value)} chars)")
    return str(uuid.uuid4())


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Binds a correlation ID to the request context and the response."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Response],
    ) -> Response:
        correlation_id = resolve_correlation_id(request.headers)
        set_correlation_id(correlation_id)

        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = correlation_id
            return response
        finally:
            clear_correlation_id()
