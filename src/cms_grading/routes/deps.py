from __future__ import annotations

import re
import unicodedata
from typing import TYPE_CHECKING
from urllib.parse import quote

from fastapi import Request
from fastapi.responses import Response

if TYPE_CHECKING:
    from ..app import Services

_UNSAFE_FILENAME_CHARS = re.compile(r'["\\\x00-\x1f\x7f]')


def get_services(request: Request) -> "Services":
    return request.app.state.services


def content_disposition(filename: str) -> str:
    """
    Build an ``attachment`` header value that survives any filename.

    Header values must be latin-1, so the plain ``filename`` parameter carries
    an ASCII rendering and ``filename*`` carries the UTF-8 original.
    """
    ascii_name = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    ascii_name = _UNSAFE_FILENAME_CHARS.sub("", ascii_name).strip() or "download"
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename, safe='')}"


def download_response(payload: bytes, filename: str, size: int, media_type: str) -> Response:
    return Response(
        content=payload,
        media_type=media_type,
        headers={
            "Content-Disposition": content_disposition(filename),
            "Content-Length": str(size),
        },
    )
