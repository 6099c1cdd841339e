"""
Submission lifecycle.

    [none] --create + dispatch ok------> [in progress]
    [none] --create + dispatch failed--> [none]          (compensating delete)
    [in progress] --results callback---> [graded]
    [in progress] --error callback-----> [error]

Attempt numbers are read then incremented without a lock, so two concurrent
submissions by the same user can be given the same attempt number.
"""
from __future__ import annotations

import logging
import uuid
from typing import List

from ..errors import AttemptLimitExceeded, CMSError, NotFoundError, StoreWriteError
from ..schemas import Role, Submission, SubmitResult, UploadedFile, WorkerResult, utcnow
from .assignment_store import AssignmentStore
from .grading_dispatcher import GradingDispatcher
from .submission_store import SubmissionStore

logger = logging.getLogger(__name__)


class SubmissionLifecycle:
    def __init__(
        self,
        assignments: AssignmentStore,
        submissions: SubmissionStore,
        dispatcher: GradingDispatcher,
    ):
        self._assignments = assignments
        self._submissions = submissions
        self._dispatcher = dispatcher

    def submit(self, assignment_id: str, user_id: str, upload: UploadedFile) -> SubmitResult:
        assignment, latest = self._assignments.latest_attempt(assignment_id, user_id)
        if not assignment.published:
            raise NotFoundError("Assignment not found.")
        attempt = latest + 1
        if attempt > assignment.num_attempts:
            logger.info(
                f"User {user_id} has used all {assignment.num_attempts} attempt(s) on assignment {assignment_id}"
            )
            raise AttemptLimitExceeded()

        submission = self._submissions.create(
            Submission(
                id=uuid.uuid4().hex,
                user_id=user_id,
                assignment_id=assignment_id,
                file_id=upload.file_id,
                file=upload.filename,
                attempt_number=attempt,
                submission_date=utcnow(),
                error_testing=False,
                results=None,
                in_progress=True,
            )
        )

        # On failure the dispatcher has already deleted the record.
        job = self._dispatcher.dispatch(
            submission, assignment.tests, assignment.test_build_cmd, assignment.language
        )

        try:
            self._assignments.append_submission_ref(assignment_id, user_id, submission.id, attempt)
        except StoreWriteError:
            logger.error(
                f"Grading job {job} for submission {submission.id} has no roster entry; "
                f"deleting the submission, the job needs manual reconciliation"
            )
            self._delete_quietly(submission.id)
            raise

        return SubmitResult(job=job, submission_id=submission.id, attempt_number=attempt)

    def record_results(self, submission_id: str, results: List[WorkerResult]) -> None:
        self._submissions.update_grade(submission_id, results)

    def record_error(self, submission_id: str) -> None:
        self._submissions.update_error(submission_id)

    def withdraw(self, submission_id: str, user_id: str) -> None:
        """Remove one of ``user_id``'s submissions.

        The roster entry is removed first. A record left by a failed delete is
        unreferenced, so it is neither shown nor counted as an attempt.
        """
        submission = self._submissions.get_for_user(submission_id, user_id, Role.STUDENT)
        self._assignments.remove_submission_ref(submission.assignment_id, submission.id)
        try:
            self._submissions.delete(submission.id)
        except StoreWriteError:
            logger.error(
                f"Submission {submission_id} was removed from assignment {submission.assignment_id} "
                f"but its record could not be deleted; it needs manual cleanup"
            )
            raise
        logger.info(f"User {user_id} withdrew submission {submission_id}")

    def delete_assignment(self, assignment_id: str) -> int:
        """Delete an assignment together with every submission it owns."""
        self._assignments.get(assignment_id)
        removed = self._submissions.delete_by_assignment(assignment_id)
        self._assignments.delete(assignment_id)
        return removed

    def _delete_quietly(self, submission_id: str) -> None:
        try:
            self._submissions.delete(submission_id)
        except CMSError as e:
            logger.error(f"Failed to delete submission {submission_id} during cleanup: {e}")
