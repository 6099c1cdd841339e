from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Role(str, Enum):
    STUDENT = "student"
    ASSISTANT = "assistant"
    TEACHER = "teacher"

    @property
    def is_student(self) -> bool:
        return self is Role.STUDENT


class SubmissionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    GRADED = "graded"
    ERROR = "error"


class Document(BaseModel):
    """Base for records persisted with their camelCase attribute names."""

    model_config = ConfigDict(populate_by_name=True)

    def to_item(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- assignments -----------------------------------------------------------


class AssignmentTest(Document):
    name: str
    expected_output: str = Field(..., alias="expectedOutput")
    student_facing: bool = Field(..., alias="studentFacing")
    test_cmd: str = Field(..., alias="testCMD")


class AssignmentSubmission(Document):
    """Roster entry pointing from an assignment to one dispatched submission."""

    user_id: str = Field(..., alias="userID")
    submission_id: str = Field(..., alias="submissionID")
    attempt_number: int = Field(..., alias="attemptNumber", ge=1)


class Assignment(Document):
    id: str
    language: str
    version: str
    name: str
    num_attempts: int = Field(..., alias="numAttempts", ge=1)
    description: str
    due_date: datetime = Field(..., alias="dueDate")
    published: bool = False
    supporting_files: str = Field("", alias="supportingFiles")
    test_build_cmd: str = Field("", alias="testBuildCMD")
    tests: List[AssignmentTest] = Field(default_factory=list)
    submissions: List[AssignmentSubmission] = Field(default_factory=list)

    def latest_attempt(self, user_id: str) -> int:
        return max(
            (ref.attempt_number for ref in self.submissions if ref.user_id == user_id),
            default=0,
        )

    def student_facing_tests(self) -> List[AssignmentTest]:
        return [test for test in self.tests if test.student_facing]


class AssignmentFields(Document):
    """Instructor-supplied fields for a new assignment."""

    language: str = Field(..., min_length=1)
    version: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    num_attempts: int = Field(..., alias="numAttempts", ge=1)
    description: str
    due_date: datetime = Field(..., alias="dueDate")
    test_build_cmd: str = Field("", alias="testBuildCMD")
    tests: List[AssignmentTest] = Field(..., min_length=1)


class AssignmentUpdate(Document):
    """Whitelisted assignment fields an update may replace."""

    language: Optional[str] = None
    version: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[datetime] = Field(None, alias="dueDate")
    published: Optional[bool] = None
    test_build_cmd: Optional[str] = Field(None, alias="testBuildCMD")
    tests: Optional[List[AssignmentTest]] = None
    num_attempts: Optional[int] = Field(None, alias="numAttempts", ge=1)

    def changed_attributes(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_unset=True, exclude_none=True)


# --- submissions -----------------------------------------------------------


class WorkerResult(Document):
    id: int
    panicked: bool
    passed: bool
    student_facing: bool = Field(..., alias="studentFacing")
    output: str
    html: str
    test_cmd: str = Field(..., alias="testCMD")
    name: str


class Submission(Document):
    id: str
    user_id: str = Field(..., alias="userID")
    assignment_id: str = Field(..., alias="assignmentID")
    file_id: str = Field(..., alias="fileID")
    file: str
    attempt_number: int = Field(..., alias="attemptNumber", ge=1)
    submission_date: datetime = Field(default_factory=utcnow, alias="submissionDate")
    error_testing: bool = Field(False, alias="errorTesting")
    results: Optional[List[WorkerResult]] = None
    in_progress: bool = Field(False, alias="inProgress")

    @model_validator(mode="after")
    def _finished_submissions_have_an_outcome(self) -> "Submission":
        if not self.in_progress and not self.error_testing and self.results is None:
            raise ValueError("a finished submission must carry results or be marked as errored")
        return self

    @property
    def status(self) -> SubmissionStatus:
        if self.in_progress:
            return SubmissionStatus.IN_PROGRESS
        if self.error_testing:
            return SubmissionStatus.ERROR
        return SubmissionStatus.GRADED

    def for_role(self, role: Role) -> "Submission":
        """Copy with instructor-only results removed when ``role`` is a student."""
        if not role.is_student or self.results is None:
            return self
        visible = [result for result in self.results if result.student_facing]
        return self.model_copy(update={"results": visible})


class UploadedFile(Document):
    file_id: str = Field(..., alias="fileID", min_length=1)
    filename: str = Field(..., alias="file", min_length=1)


class SubmitResult(Document):
    job: str
    submission_id: str = Field(..., alias="submissionID")
    attempt_number: int = Field(..., alias="attemptNumber")


class GradingResults(Document):
    results: List[WorkerResult]


# --- joined records --------------------------------------------------------


class PublicProfile(Document):
    id: str
    email: str
    first_name: str = Field("", alias="firstName")
    last_name: str = Field("", alias="lastName")


COURSE_PRIVATE_FIELDS = ("professors", "assistants", "students", "assignments")


class CourseSummary(Document):
    """A course with its rosters and assignment list stripped."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    name: Optional[str] = None

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "CourseSummary":
        return cls.model_validate(
            {key: value for key, value in item.items() if key not in COURSE_PRIVATE_FIELDS}
        )


class AssignmentDetail(Document):
    """An assignment without its submission roster."""

    id: str
    language: str
    version: str
    name: str
    num_attempts: int = Field(..., alias="numAttempts")
    description: str
    due_date: datetime = Field(..., alias="dueDate")
    published: bool
    supporting_files: str = Field("", alias="supportingFiles")
    test_build_cmd: str = Field("", alias="testBuildCMD")
    tests: List[AssignmentTest] = Field(default_factory=list)


class AssignmentSummary(Document):
    """An assignment without tests, build command or roster."""

    id: str
    language: str
    version: str
    name: str
    num_attempts: int = Field(..., alias="numAttempts")
    description: str
    due_date: datetime = Field(..., alias="dueDate")
    published: bool
    supporting_files: str = Field("", alias="supportingFiles")


class StudentSubmissions(Document):
    user_id: str = Field(..., alias="userID")
    user: Optional[PublicProfile] = None
    submissions: List[Submission] = Field(default_factory=list)


class AssignmentView(Document):
    assignment: Optional[AssignmentDetail] = None
    submissions: List[Submission] = Field(default_factory=list)
    students: List[StudentSubmissions] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.assignment is None


class RecentSubmission(Document):
    id: str
    assignment_id: str = Field(..., alias="assignmentID")
    submission_date: datetime = Field(..., alias="submissionDate")
    file: str
    error_testing: bool = Field(False, alias="errorTesting")
    results: Optional[List[WorkerResult]] = None
    attempt_number: int = Field(..., alias="attemptNumber")
    in_progress: bool = Field(False, alias="inProgress")
    course: Optional[CourseSummary] = None
    assignment: AssignmentSummary


class MessageResponse(BaseModel):
    message: str
