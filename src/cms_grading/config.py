"""
Runtime configuration.

Values are read from the environment once by ``Settings.from_env()`` and then
handed explicitly to whatever needs them.  Nothing in the core looks the
environment up on its own.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_GRADER_URL = "http://localhost:4000/api/v1"
DEFAULT_GRADER_TIMEOUT_SECONDS = 10
MAX_GRADER_TIMEOUT_SECONDS = 300
DEFAULT_RECENT_LIMIT = 10
MAX_RECENT_LIMIT = 100


def _bounded_int(env: Mapping[str, str], name: str, default: int, maximum: int) -> int:
    raw = env.get(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except (ValueError, TypeError) as e:
        logger.warning(f"Invalid {name} value: {raw}. Error: {e}. Using default: {default}")
        return default
    if value <= 0:
        logger.warning(f"Invalid {name} value: {raw}. Must be positive. Using default: {default}")
        return default
    if value > maximum:
        logger.warning(
            f"{name} value {value} exceeds maximum ({maximum}). Using default: {default}"
        )
        return default
    return value


@dataclass(frozen=True)
class Settings:
    aws_region: str = "us-east-1"
    aws_endpoint_url: Optional[str] = None
    submissions_table: str = "submissions"
    assignments_table: str = "assignments"
    courses_table: str = "courses"
    users_table: str = "users"
    grader_url: str = DEFAULT_GRADER_URL
    grader_timeout_seconds: int = DEFAULT_GRADER_TIMEOUT_SECONDS
    grader_callback_token: Optional[str] = None
    recent_submissions_limit: int = DEFAULT_RECENT_LIMIT
    log_level: str = "INFO"
    cloudwatch_log_group: Optional[str] = None

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        return cls(
            aws_region=env.get("AWS_REGION", env.get("AWS_DEFAULT_REGION", "us-east-1")),
            aws_endpoint_url=env.get("AWS_ENDPOINT_URL") or None,
            submissions_table=env.get("DDB_TABLE_SUBMISSIONS", "submissions"),
            assignments_table=env.get("DDB_TABLE_ASSIGNMENTS", "assignments"),
            courses_table=env.get("DDB_TABLE_COURSES", "courses"),
            users_table=env.get("DDB_TABLE_USERS", "users"),
            grader_url=env.get("GRADER_URL", DEFAULT_GRADER_URL).rstrip("/"),
            grader_timeout_seconds=_bounded_int(
                env, "GRADER_TIMEOUT_SECONDS", DEFAULT_GRADER_TIMEOUT_SECONDS, MAX_GRADER_TIMEOUT_SECONDS
            ),
            grader_callback_token=env.get("GRADER_CALLBACK_TOKEN") or None,
            recent_submissions_limit=_bounded_int(
                env, "RECENT_SUBMISSIONS_LIMIT", DEFAULT_RECENT_LIMIT, MAX_RECENT_LIMIT
            ),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            cloudwatch_log_group=env.get("CLOUDWATCH_LOG_GROUP") or None,
        )
