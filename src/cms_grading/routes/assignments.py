from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Path, status
from fastapi.responses import Response

from ..errors import NotFoundError
from ..schemas import Assignment, AssignmentFields, AssignmentUpdate, AssignmentView
from ..utils.auth import Requester, get_requester, require_instructor
from .deps import download_response, get_services

router = APIRouter(tags=["Assignments"])


@router.post(
    "/courses/{course_id}/assignments",
    status_code=status.HTTP_201_CREATED,
    summary="Create an assignment",
)
def create_assignment(
    course_id: str = Path(..., description="Course the assignment belongs to."),
    payload: AssignmentFields = Body(...),
    requester: Requester = Depends(require_instructor),
    services=Depends(get_services),
) -> Dict[str, Any]:
    assignment = services.assignments.create(payload, course_id)
    return {"id": assignment.id, "supportingFiles": assignment.supporting_files}


@router.get(
    "/assignments/{assignment_id}",
    response_model=AssignmentView,
    summary="Assignment with the submissions visible to the caller",
)
def get_assignment(
    assignment_id: str = Path(...),
    requester: Requester = Depends(get_requester),
    services=Depends(get_services),
) -> AssignmentView:
    view = services.views.assemble_assignment_view(assignment_id, requester.user_id, requester.role)
    if view.is_empty:
        raise NotFoundError("Assignment not found.")
    return view


@router.patch(
    "/assignments/{assignment_id}",
    response_model=Assignment,
    summary="Update assignment fields",
)
def update_assignment(
    assignment_id: str = Path(...),
    payload: AssignmentUpdate = Body(...),
    requester: Requester = Depends(require_instructor),
    services=Depends(get_services),
) -> Assignment:
    return services.assignments.update(assignment_id, payload)


@router.delete("/assignments/{assignment_id}", summary="Delete an assignment and its submissions")
def delete_assignment(
    assignment_id: str = Path(...),
    requester: Requester = Depends(require_instructor),
    services=Depends(get_services),
) -> Dict[str, Any]:
    removed = services.lifecycle.delete_assignment(assignment_id)
    return {"message": "Assignment deleted.", "deletedSubmissions": removed}


@router.get("/assignments/{assignment_id}/download", summary="Download the assignment as JSON")
def download_assignment(
    assignment_id: str = Path(...),
    requester: Requester = Depends(require_instructor),
    services=Depends(get_services),
) -> Response:
    payload, filename, size = services.exports.assignment_as_file(assignment_id)
    return download_response(payload, filename, size, "application/json")


@router.get("/assignments/{assignment_id}/grades.csv", summary="Download grades as CSV")
def download_grades(
    assignment_id: str = Path(...),
    requester: Requester = Depends(require_instructor),
    services=Depends(get_services),
) -> Response:
    payload, filename, size = services.exports.grades_as_csv(assignment_id)
    return download_response(payload, filename, size, "text/csv")
