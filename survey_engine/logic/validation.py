"""Required-answer validation for a submission pass.

Runs before scoring and before persistence. The check is pure and fails
fast on the first visible required question (in survey order) that has no
well-formed answer.
"""

from __future__ import annotations

from typing import Iterable

from survey_engine.logic.answers import is_answered
from survey_engine.logic.errors import ValidationError
from survey_engine.models.answers import AnswerMap
from survey_engine.models.survey import Question


def validate_required_answers(visible: Iterable[Question], answers: AnswerMap) -> None:
    """Raise ValidationError for the first visible required question left unanswered."""
    for question in visible:
        if question.is_required and not is_answered(answers.get(question.question_id)):
            raise ValidationError(
                "required question has no answer",
                question_id=question.question_id,
                code="REQUIRED_ANSWER_MISSING",
            )


__all__ = ["validate_required_answers"]
