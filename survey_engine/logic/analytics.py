"""Per-question analytics over a survey's completed submissions.

Aggregation is read-only and skip-and-count: a stored value that cannot be
read for its question type is left out of the statistics and counted in
`skipped`, never raised. Every stats dict carries `total` (responses seen
for the question) and `skipped`.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from survey_engine.logic.answers import stored_values
from survey_engine.logic.errors import NotFoundError
from survey_engine.logic.repository_questions import list_questions
from survey_engine.logic.repository_responses import responses_by_submission
from survey_engine.logic.repository_submissions import list_submissions
from survey_engine.logic.repository_surveys import get_survey
from survey_engine.logic.scoring import round2
from survey_engine.models.question_types import RATING_RANGE, SCALE_RANGE, YES_NO_VALUES, QuestionType
from survey_engine.models.response_types import QuestionStats, SurveyAnalytics
from survey_engine.models.survey import Question

logger = logging.getLogger(__name__)


def percent_int(part: int, whole: int) -> int:
    """Integer percentage, rounded half-up; 0 when `whole` is 0."""
    if whole <= 0:
        return 0
    return int((Decimal(part * 100) / Decimal(whole)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _mean(values: Sequence[float]) -> float:
    return round2(sum(values) / len(values)) if values else 0.0


def _single(raw: Any) -> Optional[str]:
    """The one value of a scalar response, or None when unusable."""
    values = stored_values(raw)
    if not values or len(values) != 1:
        return None
    return values[0]


def _int_in(text: Optional[str], bounds: tuple[int, int]) -> Optional[int]:
    if text is None:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    if not number.is_integer() or not bounds[0] <= number <= bounds[1]:
        return None
    return int(number)


def _yes_no(question: Question, raws: Sequence[Any]) -> Dict[str, Any]:
    counts = Counter()
    for raw in raws:
        value = _single(raw)
        if value in YES_NO_VALUES:
            counts[value] += 1
    answered = counts["yes"] + counts["no"]
    return {
        "yes": counts["yes"],
        "no": counts["no"],
        "yesPercent": percent_int(counts["yes"], answered),
        "noPercent": percent_int(counts["no"], answered),
        "skipped": len(raws) - answered,
    }


def _choice(question: Question, raws: Sequence[Any]) -> Dict[str, Any]:
    counts: Counter = Counter()
    skipped = 0
    multi = question.question_type == QuestionType.MULTIPLE_CHOICE
    for raw in raws:
        values = stored_values(raw)
        if not values or (not multi and len(values) != 1):
            skipped += 1
            continue
        # One submission contributes at most once to each option
        for option_id in dict.fromkeys(values):
            counts[option_id] += 1
    declared = question.option_ids
    ordered = {option_id: counts.get(option_id, 0) for option_id in declared}
    for option_id in sorted(k for k in counts if k not in ordered):
        ordered[option_id] = counts[option_id]
    return {"counts": ordered, "skipped": skipped}


def _rating(question: Question, raws: Sequence[Any]) -> Dict[str, Any]:
    ratings = [r for r in (_int_in(_single(raw), RATING_RANGE) for raw in raws) if r is not None]
    distribution = {str(n): 0 for n in range(RATING_RANGE[0], RATING_RANGE[1] + 1)}
    for rating in ratings:
        distribution[str(rating)] += 1
    return {
        "average": _mean(ratings),
        "count": len(ratings),
        "distribution": distribution,
        "skipped": len(raws) - len(ratings),
    }


def _scale(question: Question, raws: Sequence[Any]) -> Dict[str, Any]:
    points = [r for r in (_int_in(_single(raw), SCALE_RANGE) for raw in raws) if r is not None]
    return {"average": _mean(points), "count": len(points), "skipped": len(raws) - len(points)}


def _number(question: Question, raws: Sequence[Any]) -> Dict[str, Any]:
    numbers: List[float] = []
    for raw in raws:
        text = _single(raw)
        if text is None:
            continue
        try:
            number = float(text)
        except ValueError:
            continue
        # inf and nan would poison sum, mean and the JSON encoder
        if math.isfinite(number):
            numbers.append(number)
    if not numbers:
        return {"sum": 0, "average": 0.0, "min": None, "max": None, "count": 0, "skipped": len(raws)}
    return {
        "sum": round2(sum(numbers)),
        "average": _mean(numbers),
        "min": min(numbers),
        "max": max(numbers),
        "count": len(numbers),
        "skipped": len(raws) - len(numbers),
    }


def _collection(question: Question, raws: Sequence[Any]) -> Dict[str, Any]:
    collected = [v for v in (_single(raw) for raw in raws) if v]
    return {"responses": collected, "skipped": len(raws) - len(collected)}


def _count_only(question: Question, raws: Sequence[Any]) -> Dict[str, Any]:
    return {"skipped": 0}


_AGGREGATORS: Dict[str, Callable[[Question, Sequence[Any]], Dict[str, Any]]] = {
    QuestionType.YES_NO: _yes_no,
    QuestionType.SINGLE_CHOICE: _choice,
    QuestionType.MULTIPLE_CHOICE: _choice,
    QuestionType.RATING: _rating,
    QuestionType.SCALE: _scale,
    QuestionType.NUMBER: _number,
    QuestionType.TEXT: _collection,
    QuestionType.PARAGRAPH: _collection,
    QuestionType.DATE: _collection,
}


def aggregate_question(question: Question, raw_values: Iterable[Any]) -> Dict[str, Any]:
    """Aggregate every stored response to `question` into type-keyed stats."""
    raws = list(raw_values)
    aggregator = _AGGREGATORS.get(question.question_type, _count_only)
    stats = aggregator(question, raws)
    if stats.get("skipped"):
        logger.info(
            "analytics_values_skipped question_id=%s skipped=%s total=%s",
            question.question_id,
            stats["skipped"],
            len(raws),
        )
    return {"total": len(raws), **stats}


def analyze_survey(survey_id: str, expected_respondents: Optional[int] = None) -> SurveyAnalytics:
    """Build the analytics report for a survey's completed submissions."""
    survey = get_survey(survey_id)
    if survey is None:
        raise NotFoundError("survey not found", code="SURVEY_NOT_FOUND", survey_id=survey_id)
    questions = list_questions(survey_id)
    submissions = list_submissions(survey_id)
    stored = responses_by_submission(survey_id)

    by_month: Counter = Counter(s.submitted_at.strftime("%Y-%m") for s in submissions)
    question_stats: List[QuestionStats] = []
    rating_means: List[float] = []
    for question in questions:
        raws = [
            stored[s.submission_id][question.question_id]
            for s in submissions
            if question.question_id in stored.get(s.submission_id, {})
        ]
        stats = aggregate_question(question, raws)
        if question.question_type == QuestionType.RATING and stats["count"]:
            rating_means.append(stats["average"])
        question_stats.append(
            QuestionStats(
                question_id=question.question_id,
                question_text=question.question_text,
                question_type=question.question_type,
                stats=stats,
            )
        )

    completion_rate = None
    if expected_respondents:
        completion_rate = round2(len(submissions) / expected_respondents * 100)
    report = SurveyAnalytics(
        survey_id=survey_id,
        total_responses=len(submissions),
        responses_by_month=[{"month": month, "count": by_month[month]} for month in sorted(by_month)],
        average_rating=_mean(rating_means),
        average_score_percentage=_mean([s.score_percentage for s in submissions]),
        completion_rate=completion_rate,
        questions=question_stats,
    )
    logger.info("analytics_built survey_id=%s submissions=%s questions=%s", survey_id, len(submissions), len(questions))
    return report


__all__ = ["percent_int", "aggregate_question", "analyze_survey"]
