"""Pydantic models for API response bodies."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class SubmissionResult(BaseModel):
    submission_id: str
    score_raw: int
    score_max: int
    score_percentage: float
    # True when an existing submission was updated in place
    edited: bool = False


class SubmissionView(BaseModel):
    submission_id: str
    survey_id: str
    respondent_id: Optional[str] = None
    status: str
    score_raw: int
    score_max: int
    score_percentage: float
    responses_complete: bool
    submitted_at: datetime
    updated_at: datetime
    editable: bool = False
    responses: Dict[str, Any] = Field(default_factory=dict)


class VisibilityPreview(BaseModel):
    visible: List[str]
    hidden: List[str]


class QuestionStats(BaseModel):
    question_id: str
    question_text: str
    question_type: str
    stats: Dict[str, Any]


class SurveyAnalytics(BaseModel):
    survey_id: str
    total_responses: int
    responses_by_month: List[Dict[str, Any]]
    average_rating: float
    average_score_percentage: float
    completion_rate: Optional[float] = None
    questions: List[QuestionStats]


class ActivityEntry(BaseModel):
    activity_id: str
    survey_id: str
    action: str
    performed_by: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


__all__ = [
    "SubmissionResult",
    "SubmissionView",
    "VisibilityPreview",
    "QuestionStats",
    "SurveyAnalytics",
    "ActivityEntry",
]
