"""HTTP middleware."""

from .correlation import CORRELATION_ID_HEADER, CorrelationIdMiddleware, gateway_request_id

__all__ = ["CORRELATION_ID_HEADER", "CorrelationIdMiddleware", "gateway_request_id"]
