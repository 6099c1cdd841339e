"""
Hands submissions to the external grading service.

The submission record is written before the job is requested because the
grading service addresses jobs by submission id.  Any failure after that
point deletes the record again, so an in-progress submission always has a job
behind it.

Usage:
    dispatcher = GradingDispatcher(submission_store, "http://grader:4000/api/v1")
    job = dispatcher.dispatch(submission, assignment.tests, assignment.test_build_cmd, "python")
"""
from __future__ import annotations

import json
import logging
from typing import List

import requests

from ..errors import (
    CMSError,
    InvalidPayload,
    JobCreationFailed,
    ServiceUnreachable,
)
from ..schemas import AssignmentTest, Submission
from .submission_store import SubmissionStore

logger = logging.getLogger(__name__)


class GradingDispatcher:
    def __init__(self, submissions: SubmissionStore, base_url: str, timeout: int = 10):
        self._submissions = submissions
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def job_url(self, submission_id: str) -> str:
        return f"{self._base_url}/grader/{submission_id}/new"

    def dispatch(
        self,
        submission: Submission,
        tests: List[AssignmentTest],
        build_command: str,
        language: str,
    ) -> str:
        """Request a grading job and return its handle.

        Raises:
            InvalidPayload: the job body could not be serialized.
            ServiceUnreachable: no response from the grading service.
            JobCreationFailed: non-2xx status, or a 2xx without a ``job`` string.

        The submission record is deleted before any of these is raised.
        """
        url = self.job_url(submission.id)

        try:
            body = json.dumps(
                {
                    "submission": submission.to_item(),
                    "tests": [test.to_item() for test in tests],
                    "testBuildCMD": build_command,
                    "language": language,
                }
            )
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to serialize grading job for submission {submission.id}: {e}")
            self._rollback(submission.id)
            raise InvalidPayload() from e

        try:
            response = requests.post(
                url,
                data=body,
                headers={"Content-Type": "application/json"},
                timeout=self._timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.warning(f"Grading service unreachable for submission {submission.id}: {e}")
            self._rollback(submission.id)
            raise ServiceUnreachable() from e

        if response.status_code < 200 or response.status_code >= 300:
            logger.warning(
                f"Grading service rejected submission {submission.id} with status {response.status_code}"
            )
            self._rollback(submission.id)
            raise JobCreationFailed()

        try:
            data = response.json()
        except ValueError as e:
            # The remote side may have created a job we can no longer name.
            logger.error(
                f"Unreadable grading response for submission {submission.id}; "
                f"remote job may be orphaned: {e}"
            )
            self._rollback(submission.id)
            raise JobCreationFailed() from e

        job = data.get("job") if isinstance(data, dict) else None
        if not isinstance(job, str) or not job:
            logger.error(
                f"Grading response for submission {submission.id} has no job handle; "
                f"remote job may be orphaned: {data!r}"
            )
            self._rollback(submission.id)
            raise JobCreationFailed()

        logger.info(f"Dispatched submission {submission.id} as grading job {job}")
        return job

    def _rollback(self, submission_id: str) -> None:
        try:
            self._submissions.delete(submission_id)
        except CMSError as e:
            # Not escalated: the dispatch error is what the caller needs to see.
            logger.error(
                f"Compensating delete failed for submission {submission_id}; "
                f"record may be left in progress: {e}"
            )
        else:
            logger.info(f"Rolled back submission {submission_id} after failed dispatch")
