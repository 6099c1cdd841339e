from __future__ import annotations

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from ..utils.auth import ROLE_HEADER, USER_HEADER

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log one line per request with the caller identity and the outcome."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = time.monotonic()
        user_id = request.headers.get(USER_HEADER)
        role = request.headers.get(ROLE_HEADER)
        caller = f"User(id={user_id}, role={role})" if user_id else "Anonymous"

        response = await call_next(request)

        elapsed_ms = (time.monotonic() - started) * 1000
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"[{caller}] {elapsed_ms:.1f}ms"
        )
        return response
