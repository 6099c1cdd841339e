from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Mapping

from fastapi import HTTPException, Request

from ..schemas import Role

USER_HEADER = "x-user-id"
ROLE_HEADER = "x-user-role"
GRADER_TOKEN_HEADER = "x-grader-token"


@dataclass(frozen=True)
class Requester:
    user_id: str
    role: Role

    @property
    def is_instructor(self) -> bool:
        return not self.role.is_student


def parse_requester(headers: Mapping[str, str]) -> Requester:
    """
    Read the caller identity forwarded by the authenticating gateway.

    Raises:
        ValueError: When either header is missing, empty, or the role is unknown.
    """
    if headers is None:
        raise ValueError("Identity headers missing")

    user_id = (headers.get(USER_HEADER) or "").strip()
    if not user_id:
        raise ValueError("User id header missing")

    raw_role = (headers.get(ROLE_HEADER) or "").strip().lower()
    if not raw_role:
        raise ValueError("Role header missing")
    try:
        role = Role(raw_role)
    except ValueError as exc:
        raise ValueError(f"Unknown role '{raw_role}'") from exc

    return Requester(user_id=user_id, role=role)


def get_requester(request: Request) -> Requester:
    """FastAPI dependency that raises ``HTTPException(401)`` on missing identity."""
    try:
        return parse_requester(request.headers)
    except ValueError as exc:
        raise HTTPException(status_code=401, detail="Unauthorized") from exc


def require_instructor(request: Request) -> Requester:
    requester = get_requester(request)
    if not requester.is_instructor:
        raise HTTPException(status_code=403, detail="Instructor role required.")
    return requester


def verify_grader_token(request: Request) -> None:
    """Authenticate grading-service callbacks against the shared secret."""
    expected = request.app.state.settings.grader_callback_token
    supplied = request.headers.get(GRADER_TOKEN_HEADER) or ""
    if not expected or not secrets.compare_digest(supplied, expected):
        raise HTTPException(status_code=401, detail="Unauthorized")
