from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, status
from fastapi.responses import Response

from ..config import MAX_RECENT_LIMIT
from ..errors import PermissionDenied
from ..schemas import MessageResponse, RecentSubmission, Submission, SubmitResult, UploadedFile
from ..utils.auth import Requester, get_requester
from .deps import download_response, get_services

router = APIRouter(tags=["Submissions"])


@router.post(
    "/assignments/{assignment_id}/submit",
    status_code=status.HTTP_201_CREATED,
    response_model=SubmitResult,
    summary="Submit a solution for grading",
)
def submit(
    assignment_id: str = Path(...),
    payload: UploadedFile = Body(...),
    requester: Requester = Depends(get_requester),
    services=Depends(get_services),
) -> SubmitResult:
    if requester.is_instructor:
        raise PermissionDenied("Only students submit solutions.")
    return services.lifecycle.submit(assignment_id, requester.user_id, payload)


@router.get(
    "/submissions/recent",
    response_model=List[RecentSubmission],
    summary="The caller's most recent submissions",
)
def recent_submissions(
    limit: Optional[int] = Query(None, ge=1, le=MAX_RECENT_LIMIT),
    requester: Requester = Depends(get_requester),
    services=Depends(get_services),
) -> List[RecentSubmission]:
    limit = limit or services.settings.recent_submissions_limit
    return services.views.assemble_recent_submissions(requester.user_id, limit)


def _visible_submission(services, submission_id: str, requester: Requester) -> Submission:
    if requester.is_instructor:
        return services.submissions.get(submission_id, requester.role)
    return services.submissions.get_for_user(submission_id, requester.user_id, requester.role)


@router.get("/submissions/{submission_id}", response_model=Submission, summary="Get a submission")
def get_submission(
    submission_id: str = Path(...),
    requester: Requester = Depends(get_requester),
    services=Depends(get_services),
) -> Submission:
    return _visible_submission(services, submission_id, requester)


@router.delete(
    "/submissions/{submission_id}",
    response_model=MessageResponse,
    summary="Withdraw one of the caller's submissions",
)
def withdraw_submission(
    submission_id: str = Path(...),
    requester: Requester = Depends(get_requester),
    services=Depends(get_services),
) -> MessageResponse:
    services.lifecycle.withdraw(submission_id, requester.user_id)
    return MessageResponse(message="Submission deleted.")


@router.get("/submissions/{submission_id}/download", summary="Download a submission as JSON")
def download_submission(
    submission_id: str = Path(...),
    requester: Requester = Depends(get_requester),
    services=Depends(get_services),
) -> Response:
    submission = _visible_submission(services, submission_id, requester)
    payload, filename, size = services.exports.submission_as_file(submission.id, requester.role)
    return download_response(payload, filename, size, "application/json")
