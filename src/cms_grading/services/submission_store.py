"""
DynamoDB storage for submission records.

Status changes go through ``update_grade`` and ``update_error`` only; those
are the two ways a submission leaves the in-progress state.  Both use
conditional updates so a callback for a deleted submission never recreates
it.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError
from pydantic import ValidationError

from ..errors import DecodeError, NotFoundError, StoreReadError, StoreWriteError
from ..schemas import Role, Submission, WorkerResult
from .dynamo import error_code, is_conditional_failure, query_all

logger = logging.getLogger(__name__)

USER_INDEX = "userID-index"
ASSIGNMENT_INDEX = "assignmentID-index"


def decode_submission(item: Dict[str, Any]) -> Submission:
    try:
        return Submission.model_validate(item)
    except ValidationError as e:
        logger.error(f"Malformed submission document {item.get('id')}: {e}")
        raise DecodeError("Stored submission is malformed.") from e


class SubmissionStore:
    def __init__(self, table):
        self._table = table

    def create(self, submission: Submission) -> Submission:
        try:
            self._table.put_item(
                Item=submission.to_item(),
                ConditionExpression="attribute_not_exists(id)",
            )
        except ClientError as e:
            logger.error(f"Failed to create submission {submission.id}: {error_code(e)} - {e}")
            raise StoreWriteError("Failed to create submission.") from e
        logger.info(
            f"Created submission {submission.id} for user {submission.user_id} "
            f"on assignment {submission.assignment_id} (attempt {submission.attempt_number})"
        )
        return submission

    def get(self, submission_id: str, role: Role) -> Submission:
        """Fetch a submission; students only see student-facing results."""
        item = self._get_item(submission_id)
        if item is None:
            raise NotFoundError("Submission not found.")
        return decode_submission(item).for_role(role)

    def get_for_user(self, submission_id: str, user_id: str, role: Role = Role.STUDENT) -> Submission:
        submission = self.get(submission_id, role)
        if submission.user_id != user_id:
            raise NotFoundError("Submission not found.")
        return submission

    def find(self, submission_id: str) -> Optional[Submission]:
        item = self._get_item(submission_id)
        return decode_submission(item) if item is not None else None

    def delete(self, submission_id: str) -> None:
        # DeleteItem on a missing key succeeds, which keeps rollback idempotent.
        try:
            self._table.delete_item(Key={"id": submission_id})
        except ClientError as e:
            logger.error(f"Failed to delete submission {submission_id}: {error_code(e)} - {e}")
            raise StoreWriteError("Failed to delete submission.") from e
        logger.info(f"Deleted submission {submission_id}")

    def delete_by_assignment(self, assignment_id: str) -> int:
        items = self._query_index(ASSIGNMENT_INDEX, "assignmentID", assignment_id)
        try:
            with self._table.batch_writer() as batch:
                for item in items:
                    batch.delete_item(Key={"id": item["id"]})
        except ClientError as e:
            logger.error(
                f"Failed to delete submissions of assignment {assignment_id}: {error_code(e)} - {e}"
            )
            raise StoreWriteError("Failed to delete submissions.") from e
        logger.info(f"Deleted {len(items)} submission(s) of assignment {assignment_id}")
        return len(items)

    def update_grade(self, submission_id: str, results: List[WorkerResult]) -> None:
        self._update_status(
            submission_id,
            "SET #results = :results, #inProgress = :false, #errorTesting = :false",
            {"#results": "results", "#inProgress": "inProgress", "#errorTesting": "errorTesting"},
            {":results": [result.to_item() for result in results], ":false": False},
        )
        logger.info(f"Recorded {len(results)} result(s) for submission {submission_id}")

    def update_error(self, submission_id: str) -> None:
        self._update_status(
            submission_id,
            "SET #errorTesting = :true, #inProgress = :false",
            {"#errorTesting": "errorTesting", "#inProgress": "inProgress"},
            {":true": True, ":false": False},
        )
        logger.info(f"Marked submission {submission_id} as errored")

    def list_by_user(self, user_id: str) -> List[Submission]:
        items = self._query_index(USER_INDEX, "userID", user_id)
        return [decode_submission(item) for item in items]

    def list_by_assignment(self, assignment_id: str) -> List[Submission]:
        items = self._query_index(ASSIGNMENT_INDEX, "assignmentID", assignment_id)
        return [decode_submission(item) for item in items]

    def latest_attempt(self, assignment_id: str, user_id: str) -> int:
        """Highest attempt number this store holds for the user on the assignment, 0 if none."""
        return max(
            (
                submission.attempt_number
                for submission in self.list_by_user(user_id)
                if submission.assignment_id == assignment_id
            ),
            default=0,
        )

    def _get_item(self, submission_id: str) -> Optional[Dict[str, Any]]:
        try:
            response = self._table.get_item(Key={"id": submission_id})
        except ClientError as e:
            logger.error(f"Failed to read submission {submission_id}: {error_code(e)} - {e}")
            raise StoreReadError("Failed to read submission.") from e
        return response.get("Item")

    def _query_index(self, index: str, attribute: str, value: str) -> List[Dict[str, Any]]:
        try:
            return query_all(
                self._table,
                IndexName=index,
                KeyConditionExpression="#key = :value",
                ExpressionAttributeNames={"#key": attribute},
                ExpressionAttributeValues={":value": value},
            )
        except ClientError as e:
            logger.error(f"Failed to query {index} for {value}: {error_code(e)} - {e}")
            raise StoreReadError("Failed to read submissions.") from e

    def _update_status(
        self,
        submission_id: str,
        expression: str,
        names: Dict[str, str],
        values: Dict[str, Any],
    ) -> None:
        try:
            self._table.update_item(
                Key={"id": submission_id},
                UpdateExpression=expression,
                ConditionExpression="attribute_exists(id)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
            )
        except ClientError as e:
            if is_conditional_failure(e):
                raise NotFoundError("Submission not found.") from e
            logger.error(f"Failed to update submission {submission_id}: {error_code(e)} - {e}")
            raise StoreWriteError("Failed to update submission.") from e
