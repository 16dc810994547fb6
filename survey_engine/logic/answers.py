"""Type-aware parsing of answer payloads into answer variants.

Incoming payloads arrive as `{"value": ...}`, `{"values": [...]}` or a bare
scalar. `parse_answer` resolves them into the variant keyed by the question
type and raises ValidationError on a shape the type cannot carry. Empty
answers parse to an empty (not well-formed) variant so that "unanswered" is
decided by the validator, not here.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping

from survey_engine.logic.errors import ValidationError
from survey_engine.models.answers import AnswerMap, AnswerValue, MultiChoiceAnswer, ScalarAnswer
from survey_engine.models.question_types import RATING_RANGE, SCALE_RANGE, YES_NO_VALUES, QuestionType
from survey_engine.models.survey import Question

logger = logging.getLogger(__name__)

_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")


def _canon_scalar(raw: Any) -> str:
    """Return a stable string for a scalar payload value."""
    if raw is None:
        return ""
    if isinstance(raw, bool):
        return "yes" if raw else "no"
    if isinstance(raw, float) and raw.is_integer():
        return str(int(raw))
    return str(raw).strip()


def _unwrap(raw: Any) -> tuple[str, Any]:
    """Split a payload into ('value', x) or ('values', [...])."""
    if isinstance(raw, Mapping):
        if "values" in raw and raw.get("values") is not None:
            return "values", raw.get("values")
        return "value", raw.get("value")
    if isinstance(raw, (list, tuple)):
        return "values", list(raw)
    return "value", raw


def _int_in_range(text: str, bounds: tuple[int, int]) -> bool:
    try:
        n = int(text)
    except ValueError:
        return False
    return bounds[0] <= n <= bounds[1]


def _is_iso_date(text: str) -> bool:
    if not _ISO_DATE.fullmatch(text):
        return False
    try:
        date.fromisoformat(text)
    except ValueError:
        return False
    return True


def _check_scalar(question: Question, value: str) -> None:
    qtype = question.question_type
    qid = question.question_id
    if qtype == QuestionType.YES_NO and value not in YES_NO_VALUES:
        raise ValidationError("yes/no answer must be 'yes' or 'no'", question_id=qid, code="ANSWER_INVALID_CHOICE")
    if qtype == QuestionType.SINGLE_CHOICE and value not in question.option_ids:
        raise ValidationError("answer is not one of the question options", question_id=qid, code="ANSWER_INVALID_CHOICE")
    if qtype == QuestionType.RATING and not _int_in_range(value, RATING_RANGE):
        raise ValidationError("rating must be an integer from 1 to 5", question_id=qid, code="ANSWER_OUT_OF_RANGE")
    if qtype == QuestionType.SCALE and not _int_in_range(value, SCALE_RANGE):
        raise ValidationError("scale must be an integer from 1 to 10", question_id=qid, code="ANSWER_OUT_OF_RANGE")
    if qtype == QuestionType.NUMBER:
        try:
            number = float(value)
        except ValueError:
            number = math.nan
        if not math.isfinite(number):
            raise ValidationError("answer must be a finite number", question_id=qid, code="ANSWER_NOT_NUMERIC")
    if qtype == QuestionType.DATE and not _is_iso_date(value):
        raise ValidationError("date must be YYYY-MM-DD", question_id=qid, code="ANSWER_INVALID_DATE")


def parse_answer(question: Question, raw: Any) -> AnswerValue:
    """Parse one raw payload into the answer variant for `question`'s type."""
    shape, payload = _unwrap(raw)
    qid = question.question_id

    if question.question_type == QuestionType.MULTIPLE_CHOICE:
        if shape == "value":
            # A lone option id is accepted as a one-element selection
            single = _canon_scalar(payload)
            items: List[str] = [single] if single else []
        elif isinstance(payload, (list, tuple)):
            items = [_canon_scalar(v) for v in payload]
        else:
            raise ValidationError("multiple-choice answer must be a list", question_id=qid, code="ANSWER_SHAPE_INVALID")
        deduped: List[str] = []
        for item in items:
            if item and item not in deduped:
                deduped.append(item)
        unknown = [v for v in deduped if v not in question.option_ids]
        if unknown:
            raise ValidationError(
                "answer contains ids that are not question options",
                question_id=qid,
                code="ANSWER_INVALID_CHOICE",
                unknown=unknown,
            )
        return MultiChoiceAnswer(values=deduped)

    if shape == "values":
        raise ValidationError(
            f"{question.question_type} answer must be a single value",
            question_id=qid,
            code="ANSWER_SHAPE_INVALID",
        )
    if isinstance(payload, (dict, list, tuple)):
        raise ValidationError("answer value must be a scalar", question_id=qid, code="ANSWER_SHAPE_INVALID")
    value = _canon_scalar(payload)
    if value:
        _check_scalar(question, value)
    return ScalarAnswer(value=value)


def parse_answers(questions: Iterable[Question], raw_answers: Mapping[str, Any]) -> AnswerMap:
    """Parse a question_id -> payload mapping against the survey's questions.

    Raises ValidationError for ids that do not belong to the survey.
    """
    by_id: Dict[str, Question] = {q.question_id: q for q in questions}
    parsed: AnswerMap = {}
    for qid, raw in (raw_answers or {}).items():
        question = by_id.get(str(qid))
        if question is None:
            raise ValidationError("answer references an unknown question", question_id=str(qid), code="QUESTION_UNKNOWN")
        parsed[question.question_id] = parse_answer(question, raw)
    return parsed


def is_answered(answer: AnswerValue | None) -> bool:
    return answer is not None and answer.is_well_formed


def stored_values(raw: Any) -> List[str] | None:
    """Best-effort read of a stored response value for reporting.

    Returns the selected/entered strings, or None when the stored shape is
    unusable. Never raises.
    """
    try:
        shape, payload = _unwrap(raw)
        if shape == "values":
            if not isinstance(payload, (list, tuple)):
                return None
            out = [_canon_scalar(v) for v in payload if not isinstance(v, (dict, list, tuple))]
            return [v for v in out if v]
        if isinstance(payload, (dict, list, tuple)):
            return None
        text = _canon_scalar(payload)
        return [text] if text else []
    except Exception:
        logger.warning("stored_value_unreadable raw=%r", raw, exc_info=True)
        return None


__all__ = ["parse_answer", "parse_answers", "is_answered", "stored_values"]
