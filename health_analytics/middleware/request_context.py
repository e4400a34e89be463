"""
RequestContext Middleware - Adds request tracking to all requests.

Every request gets a request_id that is:
- stored on request.state.request_id
- bound into the structlog context, so every log line emitted while
  handling the request carries it
- echoed back to the client in the X-Request-ID header

An incoming X-Request-ID header is reused so traces can span services.
"""

import uuid

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from health_analytics.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Add a request id to request.state, the log context and the response."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        logger.debug("Request started", method=request.method, path=request.url.path)

        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        response.headers["X-Request-ID"] = request_id
        return response
