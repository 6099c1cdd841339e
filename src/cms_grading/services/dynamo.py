"""
Small helpers shared by the DynamoDB-backed stores.
"""
from typing import Any, Dict, List

from botocore.exceptions import ClientError


CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


def error_code(e: ClientError) -> str:
    return e.response.get("Error", {}).get("Code", "Unknown")


def is_conditional_failure(e: ClientError) -> bool:
    return error_code(e) == CONDITIONAL_CHECK_FAILED


def query_all(table, **kwargs) -> List[Dict[str, Any]]:
    """Run ``table.query`` following ``LastEvaluatedKey`` until exhausted."""
    items: List[Dict[str, Any]] = []
    response = table.query(**kwargs)
    items.extend(response.get("Items", []))
    while "LastEvaluatedKey" in response:
        response = table.query(ExclusiveStartKey=response["LastEvaluatedKey"], **kwargs)
        items.extend(response.get("Items", []))
    return items


def scan_all(table, **kwargs) -> List[Dict[str, Any]]:
    items: List[Dict[str, Any]] = []
    response = table.scan(**kwargs)
    items.extend(response.get("Items", []))
    while "LastEvaluatedKey" in response:
        response = table.scan(ExclusiveStartKey=response["LastEvaluatedKey"], **kwargs)
        items.extend(response.get("Items", []))
    return items
