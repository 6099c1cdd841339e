"""
Role-filtered views joining assignments, submissions and grades.

Students only ever see published assignments, student-facing tests, their own
submissions and student-facing results.  Instructors see everything, grouped
per student and joined with the student's public profile.
"""
from __future__ import annotations

import logging
from itertools import groupby
from typing import Dict, List, Optional

from ..errors import AggregationError, CMSError
from ..schemas import (
    Assignment,
    AssignmentDetail,
    AssignmentSummary,
    AssignmentView,
    CourseSummary,
    RecentSubmission,
    Role,
    StudentSubmissions,
    Submission,
)
from .assignment_store import AssignmentStore
from .directory_store import CourseStore, UserStore
from .pipeline import Limit, Lookup, Match, Pipeline, Project, Sort
from .submission_store import SubmissionStore

logger = logging.getLogger(__name__)


class ViewAssembler:
    def __init__(
        self,
        assignments: AssignmentStore,
        submissions: SubmissionStore,
        courses: CourseStore,
        users: UserStore,
    ):
        self._assignments = assignments
        self._submissions = submissions
        self._courses = courses
        self._users = users

    def assemble_assignment_view(self, assignment_id: str, requester_id: str, role: Role) -> AssignmentView:
        """Build the assignment page for ``requester_id``.

        Returns an empty view (``is_empty``) when the assignment does not
        exist or a student asks for an unpublished one.
        """
        try:
            assignment = self._assignments.find(assignment_id)
        except CMSError as e:
            raise AggregationError("Failed to load assignment.") from e
        if assignment is None:
            return AssignmentView()
        if role.is_student and not assignment.published:
            logger.info(f"Student {requester_id} requested unpublished assignment {assignment_id}")
            return AssignmentView()

        try:
            submissions = self._submissions.list_by_assignment(assignment_id)
        except CMSError as e:
            raise AggregationError("Failed to load submissions.") from e

        # Only submissions recorded on the roster have been dispatched.
        roster = {ref.submission_id for ref in assignment.submissions}

        if role.is_student:
            own = (
                Pipeline()
                .then(Match(lambda s: s.id in roster and s.user_id == requester_id))
                .then(Project(lambda s: s.for_role(role)))
                .then(Sort(lambda s: s.submission_date))
                .run(submissions)
            )
            return AssignmentView(
                assignment=_detail(assignment, assignment.student_facing_tests()),
                submissions=own,
            )

        ordered = (
            Pipeline()
            .then(Match(lambda s: s.id in roster))
            .then(Sort(lambda s: (s.user_id, s.submission_date)))
            .run(submissions)
        )
        groups = [(user_id, list(items)) for user_id, items in groupby(ordered, key=lambda s: s.user_id)]
        students = (
            Pipeline()
            .then(Lookup(lambda group: self._users.get_public_profile(group[0])))
            .then(
                Project(
                    lambda pair: StudentSubmissions(
                        user_id=pair[0][0], user=pair[1], submissions=pair[0][1]
                    )
                )
            )
            .run(groups)
        )
        return AssignmentView(assignment=_detail(assignment, assignment.tests), students=students)

    def assemble_recent_submissions(self, user_id: str, limit: int) -> List[RecentSubmission]:
        """A user's most recent submissions on published assignments, newest first.

        Unpublished assignments are filtered out before ``limit`` is applied,
        so hidden submissions never take up slots in the result.
        """
        try:
            submissions = self._submissions.list_by_user(user_id)
        except CMSError as e:
            raise AggregationError("Failed to load submissions.") from e

        assignments: Dict[str, Optional[Assignment]] = {}
        courses: Dict[str, Optional[CourseSummary]] = {}

        def assignment_of(submission: Submission) -> Optional[Assignment]:
            if submission.assignment_id not in assignments:
                assignments[submission.assignment_id] = self._assignments.find(submission.assignment_id)
            return assignments[submission.assignment_id]

        def course_of(assignment_id: str) -> Optional[CourseSummary]:
            if assignment_id not in courses:
                courses[assignment_id] = self._courses.find_for_assignment(assignment_id)
            return courses[assignment_id]

        def project(pair) -> RecentSubmission:
            submission, assignment = pair
            visible = submission.for_role(Role.STUDENT)
            return RecentSubmission(
                id=visible.id,
                assignment_id=visible.assignment_id,
                submission_date=visible.submission_date,
                file=visible.file,
                error_testing=visible.error_testing,
                results=visible.results,
                attempt_number=visible.attempt_number,
                in_progress=visible.in_progress,
                course=course_of(assignment.id),
                assignment=AssignmentSummary.model_validate(
                    assignment.model_dump(exclude={"tests", "test_build_cmd", "submissions"})
                ),
            )

        return (
            Pipeline()
            .then(Lookup(assignment_of))
            .then(Match(lambda pair: pair[1] is not None and pair[1].published))
            .then(Sort(lambda pair: pair[0].submission_date, descending=True))
            .then(Limit(limit))
            .then(Project(project))
            .run(submissions)
        )


def _detail(assignment: Assignment, tests) -> AssignmentDetail:
    return AssignmentDetail.model_validate(
        {**assignment.model_dump(exclude={"submissions", "tests"}), "tests": list(tests)}
    )
