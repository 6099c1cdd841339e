from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from ..errors import CMSError

logger = logging.getLogger(__name__)


def error_handler(request: Request, exc: CMSError) -> JSONResponse:
    """Render a core error as ``{"error": code, "message": message}``."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} - {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "message": exc.message},
    )
