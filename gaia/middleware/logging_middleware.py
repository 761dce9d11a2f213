"""
Request logging for the quote/swap API.

A short request id is bound into the structlog context, so the
``quote_provider_failed`` / ``swap_build_failed`` events raised while serving a
request can be joined back to the ``http_request`` line that closes it.
"""

import time
import uuid
from typing import Optional

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.stdlib.get_logger("gaia.http")

REQUEST_ID_HEADER = "x-request-id"

# Polled by the dashboard and load balancer; logged at DEBUG only
PROBE_PATHS = frozenset({"/healthz"})


def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each API call with its query, status and latency."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, path=request.url.path)

        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            if request.url.path in PROBE_PATHS and status_code < 500:
                log = logger.debug
            elif status_code >= 500:
                # 503 is the normal "every DEX unreachable" answer, keep it visible
                log = logger.error
            elif status_code >= 400:
                log = logger.warning
            else:
                log = logger.info

            log(
                "http_request",
                method=request.method,
                query=str(request.url.query) or None,
                status=status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
                client=_client_ip(request),
            )
