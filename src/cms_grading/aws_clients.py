import boto3

from .config import Settings


def _kw(settings: Settings):
    k = {"region_name": settings.aws_region}
    if settings.aws_endpoint_url:
        k["endpoint_url"] = settings.aws_endpoint_url  # e.g. http://localhost:4566 for LocalStack
    return k


def dynamodb_resource(settings: Settings):
    return boto3.resource("dynamodb", **_kw(settings))


def logs_client(settings: Settings):
    return boto3.client("logs", **_kw(settings))


def tables(settings: Settings):
    """Table handles for every collection the service reads or writes."""
    dynamodb = dynamodb_resource(settings)
    return {
        "submissions": dynamodb.Table(settings.submissions_table),
        "assignments": dynamodb.Table(settings.assignments_table),
        "courses": dynamodb.Table(settings.courses_table),
        "users": dynamodb.Table(settings.users_table),
    }
