"""Pydantic models for surveys and their questions."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from survey_engine.models.question_types import QuestionType, ScoringMode, SurveyStatus


class QuestionOption(BaseModel):
    id: str
    text: str = ""


class PointsConfig(BaseModel):
    # option id (or "yes"/"no") -> points earned when selected
    options: Dict[str, int] = Field(default_factory=dict)
    max_points: int = Field(default=0, ge=0)

    def points_for(self, option_id: str) -> int:
        """Points for one selected option; unmapped ids score zero."""
        return int(self.options.get(option_id, 0) or 0)


class ShowIfAnswer(BaseModel):
    value: Optional[str] = None
    values: Optional[List[str]] = None

    def accepts(self, selected: List[str]) -> bool:
        """Return True if any of the parent's selected values satisfies the condition.

        `value` takes precedence over `values`; a condition with neither only
        requires the parent to be answered.
        """
        if self.value is not None and self.value != "":
            return self.value in selected
        if self.values:
            return any(v in self.values for v in selected)
        return True


class QuestionIn(BaseModel):
    """Authoring payload for a question; order is taken from list position."""

    question_id: Optional[str] = None
    question_text: str
    question_type: str
    is_required: bool = False
    options: List[QuestionOption] = Field(default_factory=list)
    points_config: Optional[PointsConfig] = None
    parent_question_id: Optional[str] = None
    show_if_answer: Optional[ShowIfAnswer] = None

    @field_validator("question_type")
    @classmethod
    def type_must_be_known(cls, v: str) -> str:
        if v not in QuestionType.ALL:
            raise ValueError(f"question_type must be one of {sorted(QuestionType.ALL)}")
        return v


class Question(QuestionIn):
    question_id: str
    survey_id: Optional[str] = None
    order_index: int = 0

    @property
    def option_ids(self) -> List[str]:
        return [o.id for o in self.options]


class SurveySettings(BaseModel):
    title: str
    description: Optional[str] = None
    is_anonymous: bool = False
    is_required: bool = False
    scoring_mode: str = ScoringMode.MANUAL_POINTS
    include_optional_in_scoring: bool = False
    allow_edits: bool = False
    edit_limit_hours: Optional[float] = Field(default=None, gt=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator("scoring_mode")
    @classmethod
    def mode_must_be_known(cls, v: str) -> str:
        if v not in ScoringMode.ALL:
            raise ValueError(f"scoring_mode must be one of {sorted(ScoringMode.ALL)}")
        return v

    @field_validator("title")
    @classmethod
    def title_must_be_non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("title must be a non-empty string")
        return v.strip()


class SurveyCreate(SurveySettings):
    created_by: Optional[str] = None
    questions: List[QuestionIn] = Field(default_factory=list)


class Survey(SurveySettings):
    survey_id: str
    status: str = SurveyStatus.DRAFT
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SurveyDetail(Survey):
    questions: List[Question] = Field(default_factory=list)


class SurveySummary(Survey):
    questions_count: int = 0
    submissions_count: int = 0


class StatusChange(BaseModel):
    status: str
    performed_by: Optional[str] = None

    @field_validator("status")
    @classmethod
    def status_must_be_known(cls, v: str) -> str:
        if v not in SurveyStatus.ALL:
            raise ValueError(f"status must be one of {sorted(SurveyStatus.ALL)}")
        return v


class QuestionsReplace(BaseModel):
    questions: List[QuestionIn]
    performed_by: Optional[str] = None


__all__ = [
    "QuestionOption",
    "PointsConfig",
    "ShowIfAnswer",
    "QuestionIn",
    "Question",
    "SurveySettings",
    "SurveyCreate",
    "Survey",
    "SurveyDetail",
    "SurveySummary",
    "StatusChange",
    "QuestionsReplace",
]
