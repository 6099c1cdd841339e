"""
Pytest configuration and fixtures
"""
import copy
import re
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from cms_grading.app import build_services, create_app
from cms_grading.config import Settings
from cms_grading.services.assignment_store import AssignmentStore
from cms_grading.services.directory_store import CourseStore, UserStore
from cms_grading.services.export_service import ExportService
from cms_grading.services.grading_dispatcher import GradingDispatcher
from cms_grading.services.lifecycle import SubmissionLifecycle
from cms_grading.services.submission_store import SubmissionStore
from cms_grading.services.view_assembler import ViewAssembler

GRADER_URL = "http://grader.test/api/v1"
GRADER_TOKEN = "grader-secret"

_SET_CLAUSE = re.compile(
    r"(?P<target>#?\w+)\s*=\s*(?:"
    r"list_append\(if_not_exists\((?P<append_to>#?\w+),\s*(?P<default>:\w+)\),\s*(?P<addition>:\w+)\)"
    r"|(?P<value>:\w+))"
)


def client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": f"{code} (test)"}}, operation)


class FakeTable:
    """
    In-memory stand-in for a boto3 DynamoDB ``Table`` resource.

    Understands the handful of expressions the stores issue: ``SET`` updates
    (including ``list_append(if_not_exists(...))``), and single-clause
    ``attribute_exists``, ``attribute_not_exists``, ``contains`` and ``=``
    conditions.  ``fail("UpdateItem")`` makes calls of that operation raise a
    ``ClientError``.
    """

    def __init__(self, name: str, key: str = "id"):
        self.name = name
        self.key = key
        self.items: Dict[str, Dict[str, Any]] = {}
        self._failures: Dict[str, List[Any]] = {}

    # --- test helpers ---

    def seed(self, item: Dict[str, Any]) -> None:
        self.items[item[self.key]] = copy.deepcopy(item)

    def fail(self, operation: str, code: str = "InternalServerError", times: Optional[int] = None) -> None:
        """Fail the next ``times`` calls of ``operation``, or every call when ``times`` is None."""
        self._failures[operation] = [code, times]

    def recover(self, operation: Optional[str] = None) -> None:
        if operation is None:
            self._failures.clear()
        else:
            self._failures.pop(operation, None)

    # --- Table API ---

    def put_item(self, Item, ConditionExpression=None, ExpressionAttributeNames=None,
                 ExpressionAttributeValues=None, **kwargs):
        self._maybe_fail("PutItem")
        current = self.items.get(Item[self.key])
        self._check(current, ConditionExpression, ExpressionAttributeNames, ExpressionAttributeValues, "PutItem")
        self.items[Item[self.key]] = copy.deepcopy(Item)
        return {}

    def get_item(self, Key, **kwargs):
        self._maybe_fail("GetItem")
        item = self.items.get(Key[self.key])
        return {"Item": copy.deepcopy(item)} if item is not None else {}

    def delete_item(self, Key, **kwargs):
        self._maybe_fail("DeleteItem")
        self.items.pop(Key[self.key], None)
        return {}

    def update_item(self, Key, UpdateExpression, ConditionExpression=None, ExpressionAttributeNames=None,
                    ExpressionAttributeValues=None, **kwargs):
        self._maybe_fail("UpdateItem")
        names = ExpressionAttributeNames or {}
        values = ExpressionAttributeValues or {}
        current = self.items.get(Key[self.key])
        self._check(current, ConditionExpression, names, values, "UpdateItem")

        assert UpdateExpression.startswith("SET "), UpdateExpression
        item = copy.deepcopy(current) if current is not None else dict(Key)
        for clause in _SET_CLAUSE.finditer(UpdateExpression[4:]):
            target = names.get(clause.group("target"), clause.group("target"))
            if clause.group("append_to"):
                source = names.get(clause.group("append_to"), clause.group("append_to"))
                existing = item.get(source, values[clause.group("default")])
                item[target] = list(existing) + copy.deepcopy(list(values[clause.group("addition")]))
            else:
                item[target] = copy.deepcopy(values[clause.group("value")])
        self.items[Key[self.key]] = item
        return {}

    def query(self, KeyConditionExpression, ExpressionAttributeNames=None, ExpressionAttributeValues=None,
              **kwargs):
        self._maybe_fail("Query")
        return {"Items": self._select(KeyConditionExpression, ExpressionAttributeNames, ExpressionAttributeValues)}

    def scan(self, FilterExpression=None, ExpressionAttributeNames=None, ExpressionAttributeValues=None, **kwargs):
        self._maybe_fail("Scan")
        return {"Items": self._select(FilterExpression, ExpressionAttributeNames, ExpressionAttributeValues)}

    def batch_writer(self):
        return _BatchWriter(self)

    # --- internals ---

    def _maybe_fail(self, operation: str) -> None:
        if operation not in self._failures:
            return
        code, remaining = self._failures[operation]
        if remaining is not None:
            if remaining <= 1:
                del self._failures[operation]
            else:
                self._failures[operation][1] = remaining - 1
        raise client_error(code, operation)

    def _select(self, expression, names, values):
        return [
            copy.deepcopy(item)
            for item in self.items.values()
            if self._matches(item, expression, names or {}, values or {})
        ]

    def _check(self, current, expression, names, values, operation):
        if expression is not None and not self._matches(current, expression, names or {}, values or {}):
            raise client_error("ConditionalCheckFailedException", operation)

    @staticmethod
    def _matches(item, expression, names, values) -> bool:
        if expression is None:
            return True

        def attr(token: str) -> str:
            return names.get(token, token)

        found = re.fullmatch(r"attribute_exists\((#?\w+)\)", expression)
        if found:
            return item is not None and attr(found.group(1)) in item
        found = re.fullmatch(r"attribute_not_exists\((#?\w+)\)", expression)
        if found:
            return item is None or attr(found.group(1)) not in item
        found = re.fullmatch(r"contains\((#?\w+),\s*(:\w+)\)", expression)
        if found:
            return item is not None and values[found.group(2)] in item.get(attr(found.group(1)), [])
        found = re.fullmatch(r"(#?\w+)\s*=\s*(:\w+)", expression)
        if found:
            return item is not None and item.get(attr(found.group(1))) == values[found.group(2)]
        raise NotImplementedError(f"FakeTable does not understand {expression!r}")


class _BatchWriter:
    def __init__(self, table: FakeTable):
        self._table = table

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def delete_item(self, Key):
        self._table._maybe_fail("BatchWriteItem")
        self._table.items.pop(Key[self._table.key], None)

    def put_item(self, Item):
        self._table._maybe_fail("BatchWriteItem")
        self._table.items[Item[self._table.key]] = copy.deepcopy(Item)


def grader_response(status_code: int = 201, body: Any = None) -> MagicMock:
    """A stand-in for ``requests.Response`` as returned by ``requests.post``."""
    response = MagicMock()
    response.status_code = status_code
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = {"job": "job-123"} if body is None else body
    return response


@pytest.fixture
def settings():
    return Settings(grader_url=GRADER_URL, grader_timeout_seconds=5, grader_callback_token=GRADER_TOKEN)


@pytest.fixture
def tables():
    return {
        "submissions": FakeTable("submissions"),
        "assignments": FakeTable("assignments"),
        "courses": FakeTable("courses"),
        "users": FakeTable("users"),
    }


@pytest.fixture
def submission_store(tables):
    return SubmissionStore(tables["submissions"])


@pytest.fixture
def assignment_store(tables):
    return AssignmentStore(tables["assignments"])


@pytest.fixture
def course_store(tables):
    return CourseStore(tables["courses"])


@pytest.fixture
def user_store(tables):
    return UserStore(tables["users"])


@pytest.fixture
def dispatcher(submission_store):
    return GradingDispatcher(submission_store, GRADER_URL, timeout=5)


@pytest.fixture
def lifecycle(assignment_store, submission_store, dispatcher):
    return SubmissionLifecycle(assignment_store, submission_store, dispatcher)


@pytest.fixture
def views(assignment_store, submission_store, course_store, user_store):
    return ViewAssembler(assignment_store, submission_store, course_store, user_store)


@pytest.fixture
def exports(assignment_store, submission_store, user_store):
    return ExportService(assignment_store, submission_store, user_store)


@pytest.fixture
def app(settings, tables):
    return create_app(build_services(settings, tables))
