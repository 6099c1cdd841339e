"""
Application factory.

Every component is built here and handed its collaborators explicitly;
routers reach them through ``request.app.state.services``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from fastapi import FastAPI

from .config import Settings
from .errors import CMSError
from .middleware.error_handler import error_handler
from .middleware.request_logging import RequestLoggingMiddleware
from .routes import assignments, grader, submissions, system
from .services.assignment_store import AssignmentStore
from .services.directory_store import CourseStore, UserStore
from .services.export_service import ExportService
from .services.grading_dispatcher import GradingDispatcher
from .services.lifecycle import SubmissionLifecycle
from .services.submission_store import SubmissionStore
from .services.view_assembler import ViewAssembler


@dataclass
class Services:
    settings: Settings
    assignments: AssignmentStore
    submissions: SubmissionStore
    lifecycle: SubmissionLifecycle
    views: ViewAssembler
    exports: ExportService


def build_services(settings: Settings, tables: Mapping[str, Any]) -> Services:
    """Wire stores, dispatcher and assemblers over the given table handles."""
    submission_store = SubmissionStore(tables["submissions"])
    assignment_store = AssignmentStore(tables["assignments"])
    course_store = CourseStore(tables["courses"])
    user_store = UserStore(tables["users"])
    dispatcher = GradingDispatcher(
        submission_store, settings.grader_url, timeout=settings.grader_timeout_seconds
    )
    return Services(
        settings=settings,
        assignments=assignment_store,
        submissions=submission_store,
        lifecycle=SubmissionLifecycle(assignment_store, submission_store, dispatcher),
        views=ViewAssembler(assignment_store, submission_store, course_store, user_store),
        exports=ExportService(assignment_store, submission_store, user_store),
    )


def create_app(services: Services) -> FastAPI:
    app = FastAPI(title="Course Grading Service", version="1.0.0")
    app.state.services = services
    app.state.settings = services.settings

    app.add_exception_handler(CMSError, error_handler)
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(system.router)
    app.include_router(assignments.router)
    app.include_router(submissions.router)
    app.include_router(grader.router)
    return app
