"""
Read-only lookups into the course and user tables.

Only the pieces the assignment and submission views join against are exposed:
the course that lists an assignment (with rosters stripped) and a user's
public profile.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional

from botocore.exceptions import ClientError
from pydantic import ValidationError

from ..errors import DecodeError, StoreReadError
from ..schemas import CourseSummary, PublicProfile
from .dynamo import error_code, scan_all

logger = logging.getLogger(__name__)


class CourseStore:
    def __init__(self, table):
        self._table = table

    def find_for_assignment(self, assignment_id: str) -> Optional[CourseSummary]:
        try:
            items = scan_all(
                self._table,
                FilterExpression="contains(#assignments, :aid)",
                ExpressionAttributeNames={"#assignments": "assignments"},
                ExpressionAttributeValues={":aid": assignment_id},
            )
        except ClientError as e:
            logger.error(f"Failed to look up course of assignment {assignment_id}: {error_code(e)} - {e}")
            raise StoreReadError("Failed to read courses.") from e
        if not items:
            return None
        try:
            return CourseSummary.from_item(items[0])
        except ValidationError as e:
            raise DecodeError("Stored course is malformed.") from e


class UserStore:
    def __init__(self, table):
        self._table = table

    def get_public_profile(self, user_id: str) -> Optional[PublicProfile]:
        try:
            response = self._table.get_item(
                Key={"id": user_id},
                ProjectionExpression="#id, email, firstName, lastName",
                ExpressionAttributeNames={"#id": "id"},
            )
        except ClientError as e:
            logger.error(f"Failed to read user {user_id}: {error_code(e)} - {e}")
            raise StoreReadError("Failed to read user.") from e
        item = response.get("Item")
        if item is None:
            return None
        try:
            return PublicProfile.model_validate(item)
        except ValidationError as e:
            raise DecodeError("Stored user is malformed.") from e

    def get_public_profiles(self, user_ids: Iterable[str]) -> Dict[str, PublicProfile]:
        profiles: Dict[str, PublicProfile] = {}
        for user_id in dict.fromkeys(user_ids):
            profile = self.get_public_profile(user_id)
            if profile is not None:
                profiles[user_id] = profile
        return profiles
