"""Submission lifecycle: submit, time-boxed edit and response-set repair.

Every write runs the same pass: parse the payload, resolve visibility,
validate required answers, score, write the submission row, then replace
the response set. The submission row and the response set are written in
separate transactions; when the second one fails the submission is left
with `responses_complete = false` and an InconsistencyError is raised so
the caller can `repair` against the existing id instead of resubmitting.

One submission per (survey, respondent) is enforced by the unique
`(survey_id, respondent_key)` constraint, where the key is a SHA-256 digest
of the survey and respondent ids. Anonymous surveys store only the key.
"""

from __future__ import annotations

import hashlib
import logging
import re
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from survey_engine.config import load_config
from survey_engine.logic import events
from survey_engine.logic.answers import is_answered, parse_answers
from survey_engine.logic.errors import (
    InconsistencyError,
    NotFoundError,
    PolicyError,
    ValidationError,
)
from survey_engine.logic.repository_questions import list_questions
from survey_engine.logic.repository_responses import list_responses, replace_responses
from survey_engine.logic.repository_submissions import (
    find_submission_for_respondent,
    get_submission,
    insert_submission,
    list_submissions as _list_submission_rows,
    update_submission_scores,
)
from survey_engine.logic.repository_surveys import get_survey
from survey_engine.logic.scoring import compute_score
from survey_engine.logic.timestamps import ensure_utc, utcnow
from survey_engine.logic.validation import validate_required_answers
from survey_engine.logic.visibility import resolve_visibility
from survey_engine.models.question_types import SubmissionStatus, SurveyStatus
from survey_engine.models.response_types import SubmissionResult, SubmissionView, VisibilityPreview
from survey_engine.models.submission import ScoreResult, Submission
from survey_engine.models.survey import Question, Survey

logger = logging.getLogger(__name__)
_MONTH = re.compile(r"\d{4}-(0[1-9]|1[0-2])")


def respondent_key(survey_id: str, respondent_id: Optional[str]) -> Optional[str]:
    """Server-side uniqueness key for a respondent; None when there is no identity."""
    if not respondent_id:
        return None
    digest = hashlib.sha256(f"{survey_id}:{respondent_id}".encode("utf-8"))
    return digest.hexdigest()


def edit_limit_hours(survey: Survey, default_hours: Optional[float] = None) -> float:
    """The survey's edit window length, falling back to the configured default."""
    if survey.edit_limit_hours is not None:
        return float(survey.edit_limit_hours)
    if default_hours is not None:
        return float(default_hours)
    return load_config().submissions.default_edit_limit_hours


def is_within_edit_window(submitted_at: datetime, limit_hours: float, now: datetime) -> bool:
    """True while strictly less than `limit_hours` have elapsed since `submitted_at`."""
    elapsed = ensure_utc(now) - ensure_utc(submitted_at)
    return elapsed < timedelta(hours=limit_hours)


def can_edit(
    survey: Survey,
    submission: Submission,
    now: Optional[datetime] = None,
    default_hours: Optional[float] = None,
) -> bool:
    if not survey.allow_edits or submission.status != SubmissionStatus.COMPLETED:
        return False
    return is_within_edit_window(
        submission.submitted_at,
        edit_limit_hours(survey, default_hours),
        ensure_utc(now or utcnow()),
    )


def is_open(survey: Survey, now: datetime) -> bool:
    """True when the survey accepts answers at `now`."""
    if survey.status != SurveyStatus.ACTIVE:
        return False
    if survey.start_date is not None and now < survey.start_date:
        return False
    if survey.end_date is not None and now > survey.end_date:
        return False
    return True


def _require_survey(survey_id: str) -> Survey:
    survey = get_survey(survey_id)
    if survey is None:
        raise NotFoundError("survey not found", code="SURVEY_NOT_FOUND", survey_id=survey_id)
    return survey


def _require_submission(submission_id: str) -> Submission:
    submission = get_submission(submission_id)
    if submission is None:
        raise NotFoundError("submission not found", code="SUBMISSION_NOT_FOUND", submission_id=submission_id)
    return submission


def _ensure_open(survey: Survey, now: datetime) -> None:
    if not is_open(survey, now):
        raise PolicyError(
            "survey is not accepting responses",
            code="SURVEY_NOT_OPEN",
            survey_id=survey.survey_id,
            status=survey.status,
        )


def _evaluate(survey: Survey, questions: Sequence[Question], raw: Mapping[str, Any]) -> Tuple[ScoreResult, Dict[str, dict]]:
    """Parse, validate and score one answer pass.

    Returns the score and the response records to store: one per question
    with a well-formed answer. Answers to hidden questions are stored too;
    scoring and validation only ever read the visible ones.
    """
    answers = parse_answers(questions, raw)
    visibility = resolve_visibility(questions, answers)
    visible = [q for q in questions if visibility.get(q.question_id)]
    validate_required_answers(visible, answers)
    score = compute_score(survey, questions, answers)
    records = {
        q.question_id: answers[q.question_id].to_record()
        for q in questions
        if is_answered(answers.get(q.question_id))
    }
    return score, records


def _write_responses(submission_id: str, records: Mapping[str, dict]) -> int:
    try:
        return replace_responses(submission_id, records)
    except SQLAlchemyError as exc:
        logger.error("responses_replace_failed submission_id=%s", submission_id, exc_info=True)
        raise InconsistencyError(
            "submission was saved but its responses could not be stored",
            submission_id=submission_id,
        ) from exc


def _record_activity(survey: Survey, action: str, performed_by: Optional[str], details: Dict[str, Any]) -> None:
    """Append to the activity log after the answers are committed.

    The submission is already durable at this point, so a failed log write
    is reported in the service log instead of failing the call.
    """
    try:
        events.publish(survey.survey_id, action, performed_by=performed_by, details=details)
    except SQLAlchemyError:
        logger.error(
            "activity_record_failed survey_id=%s action=%s details=%s",
            survey.survey_id,
            action,
            details,
            exc_info=True,
        )


def _result(submission_id: str, score: ScoreResult, *, edited: bool) -> SubmissionResult:
    return SubmissionResult(
        submission_id=submission_id,
        score_raw=score.score_raw,
        score_max=score.score_max,
        score_percentage=score.score_percentage,
        edited=edited,
    )


def _apply_edit(
    survey: Survey,
    questions: Sequence[Question],
    submission: Submission,
    raw: Mapping[str, Any],
    now: datetime,
    action: str = events.SUBMISSION_EDITED,
) -> SubmissionResult:
    score, records = _evaluate(survey, questions, raw)
    update_submission_scores(submission.submission_id, score, now)
    count = _write_responses(submission.submission_id, records)
    _record_activity(
        survey,
        action,
        None if survey.is_anonymous else submission.respondent_id,
        {"submission_id": submission.submission_id, "responses": count},
    )
    logger.info(
        "submission_updated submission_id=%s action=%s raw=%s max=%s",
        submission.submission_id,
        action,
        score.score_raw,
        score.score_max,
    )
    return _result(submission.submission_id, score, edited=True)


def submit(
    survey_id: str,
    respondent_id: Optional[str],
    responses: Mapping[str, Any],
    *,
    now: Optional[datetime] = None,
    default_edit_hours: Optional[float] = None,
) -> SubmissionResult:
    """Record a completed submission for `respondent_id`.

    A repeat submit by the same respondent edits the existing submission
    while its edit window is open and is rejected as a duplicate otherwise.
    """
    now = ensure_utc(now or utcnow())
    survey = _require_survey(survey_id)
    _ensure_open(survey, now)
    if not survey.is_anonymous and not respondent_id:
        raise ValidationError("respondent_id is required for this survey", code="RESPONDENT_REQUIRED")

    questions = list_questions(survey_id)
    key = respondent_key(survey_id, respondent_id)
    existing = find_submission_for_respondent(survey_id, key) if key else None
    if existing is not None:
        if can_edit(survey, existing, now, default_edit_hours):
            return _apply_edit(survey, questions, existing, responses, now)
        raise PolicyError(
            "respondent already has a completed submission",
            code="DUPLICATE_SUBMISSION",
            submission_id=existing.submission_id,
        )

    score, records = _evaluate(survey, questions, responses)
    submission_id = str(uuid.uuid4())
    try:
        insert_submission(
            submission_id=submission_id,
            survey_id=survey_id,
            respondent_id=None if survey.is_anonymous else respondent_id,
            respondent_key=key,
            score=score,
            submitted_at=now,
        )
    except IntegrityError as exc:
        # Concurrent first submit by the same respondent
        raise PolicyError(
            "respondent already has a completed submission",
            code="DUPLICATE_SUBMISSION",
            survey_id=survey_id,
        ) from exc
    count = _write_responses(submission_id, records)
    _record_activity(
        survey,
        events.SUBMISSION_CREATED,
        None if survey.is_anonymous else respondent_id,
        {"submission_id": submission_id, "responses": count},
    )
    logger.info(
        "submission_created survey_id=%s submission_id=%s raw=%s max=%s pct=%s",
        survey_id,
        submission_id,
        score.score_raw,
        score.score_max,
        score.score_percentage,
    )
    return _result(submission_id, score, edited=False)


def edit(
    submission_id: str,
    responses: Mapping[str, Any],
    *,
    now: Optional[datetime] = None,
    default_edit_hours: Optional[float] = None,
) -> SubmissionResult:
    """Replace a completed submission's answers inside its edit window."""
    now = ensure_utc(now or utcnow())
    submission = _require_submission(submission_id)
    survey = _require_survey(submission.survey_id)
    if not survey.allow_edits:
        raise PolicyError("edits are not allowed for this survey", code="EDITS_DISALLOWED", submission_id=submission_id)
    if not can_edit(survey, submission, now, default_edit_hours):
        raise PolicyError("edit window has expired", code="EDIT_WINDOW_EXPIRED", submission_id=submission_id)
    _ensure_open(survey, now)
    return _apply_edit(survey, list_questions(survey.survey_id), submission, responses, now)


def repair(submission_id: str, responses: Mapping[str, Any], *, now: Optional[datetime] = None) -> SubmissionResult:
    """Re-run scoring and response replacement for an incomplete submission."""
    now = ensure_utc(now or utcnow())
    submission = _require_submission(submission_id)
    if submission.responses_complete:
        raise PolicyError(
            "submission responses are already complete",
            code="SUBMISSION_NOT_REPAIRABLE",
            submission_id=submission_id,
        )
    survey = _require_survey(submission.survey_id)
    return _apply_edit(
        survey,
        list_questions(survey.survey_id),
        submission,
        responses,
        now,
        action=events.SUBMISSION_REPAIRED,
    )


def _masked(survey: Survey, submission: Submission) -> Submission:
    if survey.is_anonymous and submission.respondent_id is not None:
        return submission.model_copy(update={"respondent_id": None})
    return submission


def get_submission_view(
    submission_id: str,
    *,
    now: Optional[datetime] = None,
    default_edit_hours: Optional[float] = None,
) -> SubmissionView:
    """Return a submission with its responses and whether it can still be edited."""
    now = ensure_utc(now or utcnow())
    submission = _require_submission(submission_id)
    survey = _require_survey(submission.survey_id)
    editable = can_edit(survey, submission, now, default_edit_hours) and is_open(survey, now)
    return SubmissionView(
        **_masked(survey, submission).model_dump(),
        editable=editable,
        responses={r.question_id: r.response_value for r in list_responses(submission_id)},
    )


def list_submissions(
    survey_id: str,
    *,
    month: Optional[str] = None,
    respondent_id: Optional[str] = None,
) -> List[Submission]:
    """List completed submissions, optionally for one `YYYY-MM` month or respondent.

    Respondent filtering is refused on anonymous surveys.
    """
    survey = _require_survey(survey_id)
    if month and not _MONTH.fullmatch(month):
        raise ValidationError("month must be YYYY-MM", code="MONTH_INVALID", month=month)
    key = None
    if respondent_id:
        if survey.is_anonymous:
            raise ValidationError(
                "submissions to an anonymous survey cannot be filtered by respondent",
                code="RESPONDENT_FILTER_UNAVAILABLE",
            )
        key = respondent_key(survey_id, respondent_id)
    rows = _list_submission_rows(survey_id, month=month, respondent_key=key)
    return [_masked(survey, s) for s in rows]


def preview_visibility(survey_id: str, responses: Mapping[str, Any]) -> VisibilityPreview:
    """Resolve which questions are live for a partial answer map."""
    _require_survey(survey_id)
    questions = list_questions(survey_id)
    visibility = resolve_visibility(questions, parse_answers(questions, responses))
    return VisibilityPreview(
        visible=[q.question_id for q in questions if visibility[q.question_id]],
        hidden=[q.question_id for q in questions if not visibility[q.question_id]],
    )


__all__ = [
    "respondent_key",
    "edit_limit_hours",
    "is_within_edit_window",
    "can_edit",
    "is_open",
    "submit",
    "edit",
    "repair",
    "get_submission_view",
    "list_submissions",
    "preview_visibility",
]
