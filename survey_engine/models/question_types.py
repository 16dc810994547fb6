"""Enumerations for the survey engine (question types, modes, statuses).

Provides simple constants containers instead of Enums so stored values,
request payloads and comparisons all use plain strings.
"""

from __future__ import annotations


class QuestionType:
    YES_NO = "yes_no"
    SINGLE_CHOICE = "single_choice"
    MULTIPLE_CHOICE = "multiple_choice"
    RATING = "rating"
    SCALE = "scale"
    NUMBER = "number"
    TEXT = "text"
    PARAGRAPH = "paragraph"
    DATE = "date"

    ALL = frozenset(
        {YES_NO, SINGLE_CHOICE, MULTIPLE_CHOICE, RATING, SCALE, NUMBER, TEXT, PARAGRAPH, DATE}
    )
    # Types whose answers are option ids declared on the question
    CHOICE = frozenset({SINGLE_CHOICE, MULTIPLE_CHOICE})
    # Types that can carry a points_config in manual_points surveys
    POINTED = frozenset({YES_NO, SINGLE_CHOICE, MULTIPLE_CHOICE})


YES_NO_VALUES = ("yes", "no")
RATING_RANGE = (1, 5)
SCALE_RANGE = (1, 10)


class ScoringMode:
    MANUAL_POINTS = "manual_points"
    REQUIRED_QUESTIONS = "required_questions"

    ALL = frozenset({MANUAL_POINTS, REQUIRED_QUESTIONS})


class SurveyStatus:
    DRAFT = "draft"
    ACTIVE = "active"
    CLOSED = "closed"

    ALL = frozenset({DRAFT, ACTIVE, CLOSED})


class SubmissionStatus:
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


__all__ = [
    "QuestionType",
    "ScoringMode",
    "SurveyStatus",
    "SubmissionStatus",
    "YES_NO_VALUES",
    "RATING_RANGE",
    "SCALE_RANGE",
]
