"""Read-only analytics endpoint."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query

from survey_engine.logic.analytics import analyze_survey
from survey_engine.models.response_types import SurveyAnalytics

router = APIRouter()


@router.get(
    "/surveys/{survey_id}/analytics",
    summary="Aggregate per-question statistics over completed submissions",
    operation_id="getSurveyAnalytics",
    response_model=SurveyAnalytics,
)
def get_analytics(survey_id: str, expected_respondents: Optional[int] = Query(None, ge=1)) -> SurveyAnalytics:
    return analyze_survey(survey_id, expected_respondents)


__all__ = ["router"]
