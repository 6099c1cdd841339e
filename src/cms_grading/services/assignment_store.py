"""
DynamoDB storage for assignment records and their embedded submission roster.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional, Tuple

from botocore.exceptions import ClientError
from pydantic import ValidationError

from ..errors import ConcurrentUpdate, DecodeError, NotFoundError, StoreReadError, StoreWriteError
from ..schemas import Assignment, AssignmentFields, AssignmentSubmission, AssignmentUpdate
from .dynamo import error_code, is_conditional_failure

logger = logging.getLogger(__name__)

ROSTER_WRITE_ATTEMPTS = 3


def supporting_files_name(course_id: str, assignment_id: str) -> str:
    return f"{course_id}.{assignment_id}.supportingFiles.tar.gz"


def decode_assignment(item: Dict[str, Any]) -> Assignment:
    try:
        return Assignment.model_validate(item)
    except ValidationError as e:
        logger.error(f"Malformed assignment document {item.get('id')}: {e}")
        raise DecodeError("Stored assignment is malformed.") from e


class AssignmentStore:
    def __init__(self, table):
        self._table = table

    def create(self, fields: AssignmentFields, course_id: str) -> Assignment:
        assignment_id = uuid.uuid4().hex
        assignment = Assignment(
            id=assignment_id,
            supporting_files=supporting_files_name(course_id, assignment_id),
            published=False,
            submissions=[],
            **fields.model_dump(),
        )
        try:
            self._table.put_item(
                Item=assignment.to_item(),
                ConditionExpression="attribute_not_exists(id)",
            )
        except ClientError as e:
            logger.error(f"Failed to create assignment in course {course_id}: {error_code(e)} - {e}")
            raise StoreWriteError("Failed to create assignment.") from e
        logger.info(f"Created assignment {assignment_id} in course {course_id}")
        return assignment

    def get(self, assignment_id: str) -> Assignment:
        assignment = self.find(assignment_id)
        if assignment is None:
            raise NotFoundError("Assignment not found.")
        return assignment

    def find(self, assignment_id: str) -> Optional[Assignment]:
        try:
            response = self._table.get_item(Key={"id": assignment_id})
        except ClientError as e:
            logger.error(f"Failed to read assignment {assignment_id}: {error_code(e)} - {e}")
            raise StoreReadError("Failed to read assignment.") from e
        item = response.get("Item")
        return decode_assignment(item) if item is not None else None

    def update(self, assignment_id: str, changes: AssignmentUpdate) -> Assignment:
        """Replace the whitelisted fields present in ``changes``.

        The identifier, supporting-files reference and roster are not part of
        ``AssignmentUpdate`` and therefore can never be written here.
        """
        attributes = changes.changed_attributes()
        if not attributes:
            return self.get(assignment_id)

        names: Dict[str, str] = {}
        values: Dict[str, Any] = {}
        clauses = []
        for position, (attribute, value) in enumerate(sorted(attributes.items())):
            names[f"#f{position}"] = attribute
            values[f":v{position}"] = value
            clauses.append(f"#f{position} = :v{position}")

        try:
            self._table.update_item(
                Key={"id": assignment_id},
                UpdateExpression="SET " + ", ".join(clauses),
                ConditionExpression="attribute_exists(id)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
            )
        except ClientError as e:
            if is_conditional_failure(e):
                raise NotFoundError("Assignment not found.") from e
            logger.error(f"Failed to update assignment {assignment_id}: {error_code(e)} - {e}")
            raise StoreWriteError("Failed to update assignment.") from e
        logger.info(f"Updated assignment {assignment_id}: {', '.join(sorted(attributes))}")
        return self.get(assignment_id)

    def delete(self, assignment_id: str) -> None:
        try:
            self._table.delete_item(Key={"id": assignment_id})
        except ClientError as e:
            logger.error(f"Failed to delete assignment {assignment_id}: {error_code(e)} - {e}")
            raise StoreWriteError("Failed to delete assignment.") from e
        logger.info(f"Deleted assignment {assignment_id}")

    def append_submission_ref(
        self, assignment_id: str, user_id: str, submission_id: str, attempt: int
    ) -> None:
        ref = AssignmentSubmission(user_id=user_id, submission_id=submission_id, attempt_number=attempt)
        try:
            self._table.update_item(
                Key={"id": assignment_id},
                UpdateExpression="SET #submissions = list_append(if_not_exists(#submissions, :empty), :ref)",
                ConditionExpression="attribute_exists(id)",
                ExpressionAttributeNames={"#submissions": "submissions"},
                ExpressionAttributeValues={":empty": [], ":ref": [ref.to_item()]},
            )
        except ClientError as e:
            logger.error(
                f"Failed to add submission {submission_id} to assignment {assignment_id}: "
                f"{error_code(e)} - {e}"
            )
            raise StoreWriteError("Failed to record submission on assignment.") from e

    def remove_submission_ref(self, assignment_id: str, submission_id: str) -> None:
        """Drop ``submission_id`` from the roster; a no-op when it is not listed.

        The write is conditional on the roster read just before it, and is
        retried against a fresh read when a concurrent append wins the race.

        Raises:
            ConcurrentUpdate: the roster kept changing for every attempt.
            StoreWriteError: any other storage failure.
        """
        for attempt in range(1, ROSTER_WRITE_ATTEMPTS + 1):
            assignment = self.get(assignment_id)
            current = [ref.to_item() for ref in assignment.submissions]
            remaining = [ref for ref in current if ref["submissionID"] != submission_id]
            if len(remaining) == len(current):
                return
            try:
                self._table.update_item(
                    Key={"id": assignment_id},
                    UpdateExpression="SET #submissions = :remaining",
                    ConditionExpression="#submissions = :current",
                    ExpressionAttributeNames={"#submissions": "submissions"},
                    ExpressionAttributeValues={":remaining": remaining, ":current": current},
                )
                return
            except ClientError as e:
                if is_conditional_failure(e):
                    logger.warning(
                        f"Roster of assignment {assignment_id} changed while removing submission "
                        f"{submission_id} (attempt {attempt}/{ROSTER_WRITE_ATTEMPTS})"
                    )
                    continue
                logger.error(
                    f"Failed to remove submission {submission_id} from assignment {assignment_id}: "
                    f"{error_code(e)} - {e}"
                )
                raise StoreWriteError("Failed to update assignment roster.") from e
        raise ConcurrentUpdate("Assignment roster changed concurrently. Try again.")

    def latest_attempt(self, assignment_id: str, user_id: str) -> Tuple[Assignment, int]:
        assignment = self.get(assignment_id)
        return assignment, assignment.latest_attempt(user_id)
