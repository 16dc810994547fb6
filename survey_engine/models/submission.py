"""Pydantic models for submissions, stored responses and scores."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from survey_engine.models.question_types import SubmissionStatus


class ScoreResult(BaseModel):
    score_raw: int = 0
    score_max: int = 0
    score_percentage: float = 0.0


class Submission(BaseModel):
    submission_id: str
    survey_id: str
    # None for anonymous surveys; the uniqueness key is kept server-side only
    respondent_id: Optional[str] = None
    status: str = SubmissionStatus.COMPLETED
    score_raw: int = 0
    score_max: int = 0
    score_percentage: float = 0.0
    responses_complete: bool = False
    submitted_at: datetime
    updated_at: datetime


class ResponseRecord(BaseModel):
    response_id: str
    submission_id: str
    question_id: str
    # Stored shape: {"value": str} or {"values": [str, ...]}; may be malformed
    response_value: Any = None


class SubmitRequest(BaseModel):
    respondent_id: Optional[str] = None
    # question_id -> {"value": ...} | {"values": [...]} | bare scalar
    responses: Dict[str, Any] = Field(default_factory=dict)


class EditRequest(BaseModel):
    responses: Dict[str, Any] = Field(default_factory=dict)


__all__ = [
    "ScoreResult",
    "Submission",
    "ResponseRecord",
    "SubmitRequest",
    "EditRequest",
]
