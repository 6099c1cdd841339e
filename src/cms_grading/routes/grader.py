"""
Callbacks from the grading service.

A finished job posts its per-test results; a job that could not run posts to
the error endpoint.  Both move the submission out of the in-progress state.
"""
from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Path

from ..schemas import GradingResults, MessageResponse
from ..utils.auth import verify_grader_token
from .deps import get_services

router = APIRouter(prefix="/grader", tags=["Grader callbacks"], dependencies=[Depends(verify_grader_token)])


@router.post("/{submission_id}/results", response_model=MessageResponse, summary="Record grading results")
def record_results(
    submission_id: str = Path(...),
    payload: GradingResults = Body(...),
    services=Depends(get_services),
) -> MessageResponse:
    services.lifecycle.record_results(submission_id, payload.results)
    return MessageResponse(message="Results recorded.")


@router.post("/{submission_id}/error", response_model=MessageResponse, summary="Record a grading error")
def record_error(
    submission_id: str = Path(...),
    services=Depends(get_services),
) -> MessageResponse:
    services.lifecycle.record_error(submission_id)
    return MessageResponse(message="Error recorded.")
