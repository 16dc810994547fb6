"""Scoring engine: two pure scoring modes behind one dispatch.

`compute_score` selects the mode from the survey settings and scores only
the visible questions; hidden questions contribute to neither the raw score
nor the maximum. Both modes are plain functions of (settings, visible
questions, answers) with no I/O, so each can be exercised on its own.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Dict, Sequence

from survey_engine.logic.answers import is_answered
from survey_engine.logic.visibility import visible_questions
from survey_engine.models.answers import AnswerMap
from survey_engine.models.question_types import QuestionType, ScoringMode
from survey_engine.models.submission import ScoreResult
from survey_engine.models.survey import Question, SurveySettings

logger = logging.getLogger(__name__)


def round2(value: float) -> float:
    """Round half-up to two decimals."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def percentage(score_raw: int, score_max: int) -> float:
    if score_max <= 0:
        return 0.0
    return round2(score_raw / score_max * 100)


def _counts_toward_max(question: Question, include_optional: bool) -> bool:
    return question.is_required or include_optional


def score_manual_points(visible: Sequence[Question], answers: AnswerMap, include_optional: bool) -> ScoreResult:
    """Accumulate configured option points over the countable visible questions."""
    score_raw = 0
    score_max = 0
    for question in visible:
        config = question.points_config
        if config is None or question.question_type not in QuestionType.POINTED:
            continue
        if not _counts_toward_max(question, include_optional):
            continue
        score_max += config.max_points
        answer = answers.get(question.question_id)
        if not is_answered(answer):
            continue
        # Multiple-choice sums every selected id; scalar types have exactly one
        score_raw += sum(config.points_for(option_id) for option_id in answer.selected())
    return ScoreResult(score_raw=score_raw, score_max=score_max, score_percentage=percentage(score_raw, score_max))


def score_required_questions(visible: Sequence[Question], answers: AnswerMap, include_optional: bool) -> ScoreResult:
    """Completion ratio: answered countable questions over countable questions."""
    countable = [q for q in visible if _counts_toward_max(q, include_optional)]
    score_max = len(countable)
    score_raw = sum(1 for q in countable if is_answered(answers.get(q.question_id)))
    if score_max == 0 and visible:
        # Nothing countable: reward participation instead of an undefined ratio
        score_max = 1
        score_raw = 1 if any(is_answered(answers.get(q.question_id)) for q in visible) else 0
    return ScoreResult(score_raw=score_raw, score_max=score_max, score_percentage=percentage(score_raw, score_max))


_SCORERS: Dict[str, Callable[[Sequence[Question], AnswerMap, bool], ScoreResult]] = {
    ScoringMode.MANUAL_POINTS: score_manual_points,
    ScoringMode.REQUIRED_QUESTIONS: score_required_questions,
}


def compute_score(survey: SurveySettings, questions: Sequence[Question], answers: AnswerMap) -> ScoreResult:
    """Score one answer pass under the survey's scoring mode."""
    scorer = _SCORERS.get(survey.scoring_mode)
    if scorer is None:
        raise ValueError(f"unknown scoring mode: {survey.scoring_mode}")
    visible = visible_questions(questions, answers)
    result = scorer(visible, answers, bool(survey.include_optional_in_scoring))
    logger.debug(
        "score_computed mode=%s visible=%s raw=%s max=%s",
        survey.scoring_mode,
        len(visible),
        result.score_raw,
        result.score_max,
    )
    return result


__all__ = [
    "round2",
    "percentage",
    "score_manual_points",
    "score_required_questions",
    "compute_score",
]
