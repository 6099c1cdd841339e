"""
Download formats for assignments, submissions and grade sheets.
"""
from __future__ import annotations

import csv
import io
import json
import logging
from typing import Dict, Tuple

from ..schemas import Role, Submission
from .assignment_store import AssignmentStore
from .directory_store import UserStore
from .submission_store import SubmissionStore

logger = logging.getLogger(__name__)

GRADE_COLUMNS = [
    "userID",
    "email",
    "firstName",
    "lastName",
    "attemptNumber",
    "submissionDate",
    "status",
    "passed",
    "total",
]

Export = Tuple[bytes, str, int]


def _as_export(payload: bytes, filename: str) -> Export:
    return payload, filename, len(payload)


class ExportService:
    def __init__(self, assignments: AssignmentStore, submissions: SubmissionStore, users: UserStore):
        self._assignments = assignments
        self._submissions = submissions
        self._users = users

    def assignment_as_file(self, assignment_id: str) -> Export:
        assignment = self._assignments.get(assignment_id)
        payload = json.dumps(assignment.to_item(), indent=2).encode("utf-8")
        return _as_export(payload, f"{assignment.name}.json")

    def submission_as_file(self, submission_id: str, role: Role) -> Export:
        submission = self._submissions.get(submission_id, role)
        payload = json.dumps(submission.to_item(), indent=2).encode("utf-8")
        return _as_export(payload, f"{submission.id}.json")

    def grades_as_csv(self, assignment_id: str) -> Export:
        """One row per student, describing their latest dispatched attempt."""
        assignment = self._assignments.get(assignment_id)
        roster = {ref.submission_id for ref in assignment.submissions}

        latest: Dict[str, Submission] = {}
        for submission in self._submissions.list_by_assignment(assignment_id):
            if submission.id not in roster:
                continue
            current = latest.get(submission.user_id)
            if current is None or submission.attempt_number > current.attempt_number:
                latest[submission.user_id] = submission

        profiles = self._users.get_public_profiles(sorted(latest))

        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=GRADE_COLUMNS)
        writer.writeheader()
        for user_id in sorted(latest):
            submission = latest[user_id]
            profile = profiles.get(user_id)
            results = submission.results or []
            writer.writerow(
                {
                    "userID": user_id,
                    "email": profile.email if profile else "",
                    "firstName": profile.first_name if profile else "",
                    "lastName": profile.last_name if profile else "",
                    "attemptNumber": submission.attempt_number,
                    "submissionDate": submission.submission_date.isoformat(),
                    "status": submission.status.value,
                    "passed": sum(1 for result in results if result.passed),
                    "total": len(results),
                }
            )
        logger.info(f"Exported grades for {len(latest)} student(s) on assignment {assignment_id}")
        return _as_export(buffer.getvalue().encode("utf-8"), f"{assignment.name}.csv")
