"""Request context for booking calls: correlation ID and access log.

The correlation ID is taken from ``X-Correlation-ID``, else from the API
Gateway request ID that Mangum passes in the ASGI scope, else generated.
Every log record emitted while the request runs carries it, and one access
line per request records the caller, the route and the outcome.
"""

import time
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from stayledger.utils.logging import clear_correlation_id, get_logger, set_correlation_id

CORRELATION_ID_HEADER = "X-Correlation-ID"
CALLER_HEADER = "x-user-id"

logger = get_logger("stayledger_api.access")


def gateway_request_id(scope: dict[str, Any]) -> str | None:
    """API Gateway request ID from the Lambda event, when running under Mangum."""
    event = scope.get("aws.event") or {}
    return (event.get("requestContext") or {}).get("requestId")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Binds a correlation ID to the request and logs one access line for it."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        correlation_id = set_correlation_id(
            request.headers.get(CORRELATION_ID_HEADER) or gateway_request_id(request.scope)
        )
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[CORRELATION_ID_HEADER] = correlation_id
            return response
        finally:
            context = {
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "caller": request.headers.get(CALLER_HEADER, "anonymous"),
                "duration_ms": round((time.perf_counter() - started) * 1000, 1),
            }
            logger.info(
                "Request: " + " | ".join(f"{k}={v}" for k, v in context.items()),
                extra=context,
            )
            clear_correlation_id()
