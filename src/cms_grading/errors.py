"""
Error taxonomy for the submission lifecycle.

Every failure the core reports is a ``CMSError`` subclass carrying a stable
machine-readable ``code`` and the HTTP status the web layer should answer
with.  Messages are safe to show to callers; underlying store or grading
service exceptions are chained with ``raise ... from`` and only logged.
"""
from __future__ import annotations


class CMSError(Exception):
    """Base class for errors raised by the grading core."""

    code = "INTERNAL_ERROR"
    status_code = 500
    default_message = "Internal error."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class StoreWriteError(CMSError):
    code = "STORE_WRITE_FAILED"
    default_message = "Failed to write to the database."


class StoreReadError(CMSError):
    code = "STORE_READ_FAILED"
    default_message = "Failed to read from the database."


class DecodeError(CMSError):
    code = "INVALID_DOCUMENT"
    default_message = "Stored document is malformed."


class NotFoundError(CMSError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found."


class AggregationError(CMSError):
    code = "AGGREGATION_FAILED"
    default_message = "Failed to assemble the requested view."


class InvalidPayload(CMSError):
    code = "INVALID_PAYLOAD"
    default_message = "Unable to serialize the grading job."


class ServiceUnreachable(CMSError):
    code = "GRADER_UNREACHABLE"
    status_code = 503
    default_message = "Unable to reach the grading service."


class JobCreationFailed(CMSError):
    code = "JOB_CREATION_FAILED"
    status_code = 502
    default_message = "The grading service did not create a job."


class AttemptLimitExceeded(CMSError):
    code = "ATTEMPT_LIMIT_EXCEEDED"
    status_code = 409
    default_message = "No attempts remaining for this assignment."


class PermissionDenied(CMSError):
    code = "FORBIDDEN"
    status_code = 403
    default_message = "Not permitted."


class ConcurrentUpdate(CMSError):
    code = "CONCURRENT_UPDATE"
    status_code = 409
    default_message = "The record changed while it was being updated. Try again."
