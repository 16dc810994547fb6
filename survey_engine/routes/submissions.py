"""Respondent endpoints: visibility preview, submit, edit and repair."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Query

from survey_engine.logic import lifecycle
from survey_engine.models.response_types import SubmissionResult, SubmissionView, VisibilityPreview
from survey_engine.models.submission import EditRequest, SubmitRequest, Submission

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/surveys/{survey_id}/visibility",
    summary="Resolve which questions are visible for a partial answer map",
    operation_id="previewVisibility",
    response_model=VisibilityPreview,
)
def preview_visibility(survey_id: str, responses: Dict[str, Any] = Body({}, embed=True)) -> VisibilityPreview:
    return lifecycle.preview_visibility(survey_id, responses)


@router.post(
    "/surveys/{survey_id}/submissions",
    summary="Submit a completed answer set",
    operation_id="submitResponses",
    status_code=201,
    response_model=SubmissionResult,
)
def submit(survey_id: str, payload: SubmitRequest) -> SubmissionResult:
    return lifecycle.submit(survey_id, payload.respondent_id, payload.responses)


@router.get(
    "/surveys/{survey_id}/submissions",
    summary="List completed submissions, newest first",
    operation_id="listSubmissions",
    response_model=List[Submission],
)
def list_submissions(
    survey_id: str,
    month: Optional[str] = Query(None, description="Only submissions made in this YYYY-MM month"),
    respondent_id: Optional[str] = None,
) -> List[Submission]:
    return lifecycle.list_submissions(survey_id, month=month, respondent_id=respondent_id)


@router.get(
    "/submissions/{submission_id}",
    summary="Get a submission with its responses",
    operation_id="getSubmission",
    response_model=SubmissionView,
)
def get_submission(submission_id: str) -> SubmissionView:
    return lifecycle.get_submission_view(submission_id)


@router.put(
    "/submissions/{submission_id}",
    summary="Replace a submission's answers inside its edit window",
    operation_id="editSubmission",
    response_model=SubmissionResult,
)
def edit_submission(submission_id: str, payload: EditRequest) -> SubmissionResult:
    return lifecycle.edit(submission_id, payload.responses)


@router.post(
    "/submissions/{submission_id}/repair",
    summary="Re-run response replacement for an incomplete submission",
    operation_id="repairSubmission",
    response_model=SubmissionResult,
)
def repair_submission(submission_id: str, payload: EditRequest) -> SubmissionResult:
    logger.info("submission_repair_requested submission_id=%s", submission_id)
    return lifecycle.repair(submission_id, payload.responses)


__all__ = ["router"]
