"""Survey authoring endpoints: definitions, status changes and activity."""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Query, Response

from survey_engine.logic import authoring
from survey_engine.logic.events import list_activity
from survey_engine.logic.repository_surveys import list_surveys as _list_surveys
from survey_engine.models.response_types import ActivityEntry
from survey_engine.models.survey import (
    QuestionsReplace,
    StatusChange,
    SurveyCreate,
    SurveyDetail,
    SurveySettings,
    SurveySummary,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/surveys",
    summary="Create a draft survey with its questions",
    operation_id="createSurvey",
    status_code=201,
    response_model=SurveyDetail,
)
def create_survey(payload: SurveyCreate) -> SurveyDetail:
    return authoring.create_survey(payload)


@router.get(
    "/surveys",
    summary="List surveys with question and submission counts",
    operation_id="listSurveys",
    response_model=List[SurveySummary],
)
def list_surveys(status: Optional[str] = Query(None)) -> List[SurveySummary]:
    return _list_surveys(status)


@router.get(
    "/surveys/{survey_id}",
    summary="Get a survey and its ordered questions",
    operation_id="getSurvey",
    response_model=SurveyDetail,
)
def get_survey(survey_id: str) -> SurveyDetail:
    return authoring.get_survey_detail(survey_id)


@router.put(
    "/surveys/{survey_id}",
    summary="Update survey settings",
    operation_id="updateSurveySettings",
    response_model=SurveyDetail,
)
def update_survey(survey_id: str, settings: SurveySettings, performed_by: Optional[str] = Query(None)) -> SurveyDetail:
    return authoring.update_settings(survey_id, settings, performed_by)


@router.put(
    "/surveys/{survey_id}/questions",
    summary="Replace the question set of an unanswered survey",
    operation_id="replaceSurveyQuestions",
    response_model=SurveyDetail,
)
def replace_questions(survey_id: str, payload: QuestionsReplace) -> SurveyDetail:
    return authoring.replace_survey_questions(survey_id, payload.questions, payload.performed_by)


@router.post(
    "/surveys/{survey_id}/status",
    summary="Publish, close or reopen a survey",
    operation_id="changeSurveyStatus",
    response_model=SurveyDetail,
)
def change_status(survey_id: str, payload: StatusChange) -> SurveyDetail:
    return authoring.change_status(survey_id, payload.status, payload.performed_by)


@router.delete(
    "/surveys/{survey_id}",
    summary="Delete a survey without submissions",
    operation_id="deleteSurvey",
    status_code=204,
)
def delete_survey(survey_id: str) -> Response:
    authoring.delete_survey(survey_id)
    return Response(status_code=204)


@router.get(
    "/surveys/{survey_id}/activity",
    summary="List the survey's activity log",
    operation_id="listSurveyActivity",
    response_model=List[ActivityEntry],
)
def get_activity(survey_id: str) -> List[ActivityEntry]:
    authoring.get_survey_detail(survey_id)
    return list_activity(survey_id)


__all__ = ["router"]
