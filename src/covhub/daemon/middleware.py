"""HTTP middleware for request correlation and access logging."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from covhub.core.logging import clear_request_id, set_request_id

REQUEST_ID_HEADER = "X-Covhub-Request-Id"

# Type alias for the call_next function
CallNext = Callable[[Request], Awaitable[Response]]

logger = structlog.get_logger()


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind a correlation id to each request and echo it in the response.

    A client-supplied X-Covhub-Request-Id is reused; otherwise one is generated.
    Each request produces one ``http_request`` line in place of uvicorn's access log.
    """

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        request_id = set_request_id(request.headers.get(REQUEST_ID_HEADER) or None)
        start = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            logger.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                duration_ms=round((time.perf_counter() - start) * 1000, 1),
            )
            return response
        finally:
            clear_request_id()
