"""Request ID and request logging middleware."""

import logging
import time
import uuid
from datetime import datetime
from typing import Awaitable, Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"


def new_request_id() -> str:
    """Return an ID of the form ``lanwake-<YYYYmmddHHMMSS>-<12 hex chars>``."""
    stamp = datetime.now().strftime("%Y%m%d%H%M%S")
    return f"lanwake-{stamp}-{uuid.uuid4().hex[:12]}"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag every request with an ID and echo it in the response headers."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = new_request_id()
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each incoming request and its response status and duration."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        start = time.monotonic()
        request_id = getattr(request.state, "request_id", "-")
        client = request.client.host if request.client else "-"
        logger.info(
            "[%s] %s %s from %s", request_id, request.method, request.url.path, client
        )
        response = await call_next(request)
        logger.info(
            "[%s] %s %s -> %d (%.1f ms)",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            (time.monotonic() - start) * 1000,
        )
        return response
