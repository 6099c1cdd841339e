"""
Unit tests for the submission store
"""
import pytest

from cms_grading.errors import DecodeError, NotFoundError, StoreReadError, StoreWriteError
from cms_grading.schemas import Role, SubmissionStatus
from tests.factories import make_results, make_submission


class TestCreateAndGet:
    """Test create / get / get_for_user"""

    def test_create_makes_record_readable(self, submission_store, tables):
        submission = make_submission(in_progress=True, results=None)
        submission_store.create(submission)

        stored = submission_store.get("s1", Role.TEACHER)
        assert stored.id == "s1"
        assert stored.status is SubmissionStatus.IN_PROGRESS
        assert tables["submissions"].items["s1"]["inProgress"] is True
        assert tables["submissions"].items["s1"]["results"] is None

    def test_create_uses_camel_case_attributes(self, submission_store, tables):
        submission_store.create(make_submission())
        item = tables["submissions"].items["s1"]
        for attribute in ("userID", "assignmentID", "fileID", "attemptNumber", "submissionDate", "errorTesting"):
            assert attribute in item

    def test_create_storage_failure(self, submission_store, tables):
        tables["submissions"].fail("PutItem")
        with pytest.raises(StoreWriteError):
            submission_store.create(make_submission())

    def test_create_duplicate_id_is_write_error(self, submission_store):
        submission_store.create(make_submission())
        with pytest.raises(StoreWriteError):
            submission_store.create(make_submission())

    def test_get_missing_is_not_found(self, submission_store):
        with pytest.raises(NotFoundError):
            submission_store.get("missing", Role.STUDENT)

    def test_get_read_failure_is_distinct_from_missing(self, submission_store, tables):
        tables["submissions"].fail("GetItem")
        with pytest.raises(StoreReadError):
            submission_store.get("s1", Role.STUDENT)

    def test_get_malformed_document(self, submission_store, tables):
        tables["submissions"].seed({"id": "bad", "userID": "u1"})
        with pytest.raises(DecodeError):
            submission_store.get("bad", Role.TEACHER)

    def test_finished_document_without_outcome_is_malformed(self, submission_store, tables):
        item = make_submission().to_item()
        item.update(inProgress=False, errorTesting=False, results=None)
        tables["submissions"].seed(item)

        with pytest.raises(DecodeError):
            submission_store.get("s1", Role.TEACHER)

    def test_errored_document_without_results_is_valid(self, submission_store, tables):
        item = make_submission().to_item()
        item.update(inProgress=False, errorTesting=True, results=None)
        tables["submissions"].seed(item)

        assert submission_store.get("s1", Role.TEACHER).status is SubmissionStatus.ERROR

    def test_student_sees_only_student_facing_results(self, submission_store):
        submission_store.create(make_submission())
        student_view = submission_store.get("s1", Role.STUDENT)
        teacher_view = submission_store.get("s1", Role.TEACHER)
        assert [r.name for r in student_view.results] == ["t1"]
        assert [r.name for r in teacher_view.results] == ["t1", "t2"]

    def test_get_for_user_rejects_other_users(self, submission_store):
        submission_store.create(make_submission(user_id="u1"))
        assert submission_store.get_for_user("s1", "u1").user_id == "u1"
        with pytest.raises(NotFoundError):
            submission_store.get_for_user("s1", "u2")


class TestDelete:
    """Test delete and delete_by_assignment"""

    def test_delete_removes_record(self, submission_store, tables):
        submission_store.create(make_submission())
        submission_store.delete("s1")
        assert tables["submissions"].items == {}

    def test_delete_is_idempotent(self, submission_store):
        submission_store.delete("never-existed")
        submission_store.delete("never-existed")

    def test_delete_failure(self, submission_store, tables):
        tables["submissions"].fail("DeleteItem")
        with pytest.raises(StoreWriteError):
            submission_store.delete("s1")

    def test_delete_by_assignment_only_touches_that_assignment(self, submission_store, tables):
        submission_store.create(make_submission("s1", assignment_id="a1"))
        submission_store.create(make_submission("s2", assignment_id="a1", user_id="u2"))
        submission_store.create(make_submission("s3", assignment_id="a2"))

        removed = submission_store.delete_by_assignment("a1")

        assert removed == 2
        assert submission_store.list_by_assignment("a1") == []
        assert list(tables["submissions"].items) == ["s3"]

    def test_delete_by_assignment_failure(self, submission_store, tables):
        submission_store.create(make_submission())
        tables["submissions"].fail("BatchWriteItem")
        with pytest.raises(StoreWriteError):
            submission_store.delete_by_assignment("a1")


class TestStatusTransitions:
    """Test update_grade / update_error"""

    def test_update_grade_moves_to_graded(self, submission_store):
        submission_store.create(make_submission(in_progress=True, results=None))
        submission_store.update_grade("s1", make_results())

        graded = submission_store.get("s1", Role.TEACHER)
        assert graded.status is SubmissionStatus.GRADED
        assert graded.in_progress is False
        assert len(graded.results) == 2

    def test_update_error_moves_to_error(self, submission_store):
        submission_store.create(make_submission(in_progress=True, results=None))
        submission_store.update_error("s1")

        errored = submission_store.get("s1", Role.TEACHER)
        assert errored.status is SubmissionStatus.ERROR
        assert errored.in_progress is False
        assert errored.error_testing is True

    def test_grade_then_error_last_write_wins(self, submission_store):
        submission_store.create(make_submission(in_progress=True, results=None))
        submission_store.update_grade("s1", make_results())
        submission_store.update_error("s1")
        assert submission_store.get("s1", Role.TEACHER).status is SubmissionStatus.ERROR

    def test_error_then_grade_last_write_wins(self, submission_store):
        submission_store.create(make_submission(in_progress=True, results=None))
        submission_store.update_error("s1")
        submission_store.update_grade("s1", make_results())
        assert submission_store.get("s1", Role.TEACHER).status is SubmissionStatus.GRADED

    def test_callbacks_are_idempotent(self, submission_store):
        submission_store.create(make_submission(in_progress=True, results=None))
        submission_store.update_grade("s1", make_results())
        first = submission_store.get("s1", Role.TEACHER)
        submission_store.update_grade("s1", make_results())
        assert submission_store.get("s1", Role.TEACHER) == first

    def test_update_on_missing_submission_does_not_create_it(self, submission_store, tables):
        with pytest.raises(NotFoundError):
            submission_store.update_grade("ghost", make_results())
        with pytest.raises(NotFoundError):
            submission_store.update_error("ghost")
        assert tables["submissions"].items == {}

    def test_update_storage_failure(self, submission_store, tables):
        submission_store.create(make_submission(in_progress=True, results=None))
        tables["submissions"].fail("UpdateItem")
        with pytest.raises(StoreWriteError):
            submission_store.update_error("s1")


class TestQueries:
    """Test list_by_user / latest_attempt"""

    def test_list_by_user(self, submission_store):
        submission_store.create(make_submission("s1", user_id="u1"))
        submission_store.create(make_submission("s2", user_id="u2"))
        submission_store.create(make_submission("s3", user_id="u1", assignment_id="a2"))

        ids = sorted(s.id for s in submission_store.list_by_user("u1"))
        assert ids == ["s1", "s3"]

    def test_list_by_user_query_failure(self, submission_store, tables):
        tables["submissions"].fail("Query")
        with pytest.raises(StoreReadError):
            submission_store.list_by_user("u1")

    def test_latest_attempt_is_zero_without_submissions(self, submission_store):
        assert submission_store.latest_attempt("a1", "u1") == 0

    def test_latest_attempt_is_maximum_recorded(self, submission_store):
        for number in (1, 2, 4):
            submission_store.create(make_submission(f"s{number}", attempt=number))
        submission_store.create(make_submission("other", user_id="u2", attempt=9))
        submission_store.create(make_submission("elsewhere", assignment_id="a2", attempt=7))

        assert submission_store.latest_attempt("a1", "u1") == 4
