"""
Submission lifecycle and grading dispatch for the course-management backend.

Submissions are written to DynamoDB, handed to the external grading service,
and rolled back when that hand-off fails.  ``create_app`` exposes the whole
thing as a FastAPI application.
"""
