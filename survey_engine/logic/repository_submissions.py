"""Submission data access helpers.

One row per (survey, respondent). The storage layer enforces that pair
through the unique `(survey_id, respondent_key)` constraint; callers map the
resulting IntegrityError to a policy rejection.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from survey_engine.db.base import connection_scope
from survey_engine.logic.timestamps import format_ts, parse_ts
from survey_engine.models.question_types import SubmissionStatus
from survey_engine.models.submission import ScoreResult, Submission

logger = logging.getLogger(__name__)

_SUBMISSION_COLUMNS = (
    "submission_id, survey_id, respondent_id, status, score_raw, score_max, "
    "score_percentage, responses_complete, submitted_at, updated_at"
)


def _row_to_submission(row: Mapping[str, Any]) -> Submission:
    return Submission(
        submission_id=str(row["submission_id"]),
        survey_id=str(row["survey_id"]),
        respondent_id=row["respondent_id"],
        status=str(row["status"]),
        score_raw=int(row["score_raw"] or 0),
        score_max=int(row["score_max"] or 0),
        score_percentage=float(row["score_percentage"] or 0),
        responses_complete=bool(row["responses_complete"]),
        submitted_at=parse_ts(row["submitted_at"]),
        updated_at=parse_ts(row["updated_at"]),
    )


def insert_submission(
    *,
    submission_id: str,
    survey_id: str,
    respondent_id: Optional[str],
    respondent_key: Optional[str],
    score: ScoreResult,
    submitted_at,
    conn: Connection | None = None,
) -> None:
    """Insert a completed submission whose response set is not yet written."""
    ts = format_ts(submitted_at)
    with connection_scope(conn) as c:
        c.execute(
            sql_text(
                """
                INSERT INTO survey_submissions (
                    submission_id, survey_id, respondent_id, respondent_key, status,
                    score_raw, score_max, score_percentage, responses_complete,
                    submitted_at, updated_at
                ) VALUES (
                    :id, :sid, :respondent_id, :respondent_key, :status,
                    :raw, :max, :pct, :complete, :ts, :ts
                )
                """
            ),
            {
                "id": submission_id,
                "sid": str(survey_id),
                "respondent_id": respondent_id,
                "respondent_key": respondent_key,
                "status": SubmissionStatus.COMPLETED,
                "raw": score.score_raw,
                "max": score.score_max,
                "pct": score.score_percentage,
                "complete": False,
                "ts": ts,
            },
        )


def update_submission_scores(submission_id: str, score: ScoreResult, updated_at, conn: Connection | None = None) -> None:
    """Write new score fields and mark the response set as pending replacement."""
    with connection_scope(conn) as c:
        c.execute(
            sql_text(
                """
                UPDATE survey_submissions
                   SET score_raw = :raw, score_max = :max, score_percentage = :pct,
                       responses_complete = :complete, updated_at = :ts
                 WHERE submission_id = :id
                """
            ),
            {
                "raw": score.score_raw,
                "max": score.score_max,
                "pct": score.score_percentage,
                "complete": False,
                "ts": format_ts(updated_at),
                "id": str(submission_id),
            },
        )


def get_submission(submission_id: str, conn: Connection | None = None) -> Optional[Submission]:
    with connection_scope(conn) as c:
        row = c.execute(
            sql_text(f"SELECT {_SUBMISSION_COLUMNS} FROM survey_submissions WHERE submission_id = :id"),
            {"id": str(submission_id)},
        ).mappings().fetchone()
    return _row_to_submission(row) if row else None


def find_submission_for_respondent(survey_id: str, respondent_key: str, conn: Connection | None = None) -> Optional[Submission]:
    with connection_scope(conn) as c:
        row = c.execute(
            sql_text(
                f"SELECT {_SUBMISSION_COLUMNS} FROM survey_submissions "
                "WHERE survey_id = :sid AND respondent_key = :key"
            ),
            {"sid": str(survey_id), "key": respondent_key},
        ).mappings().fetchone()
    return _row_to_submission(row) if row else None


def list_submissions(
    survey_id: str,
    status: str = SubmissionStatus.COMPLETED,
    *,
    month: Optional[str] = None,
    respondent_key: Optional[str] = None,
) -> List[Submission]:
    """List submissions for a survey, newest first.

    `month` (YYYY-MM) matches the prefix of the stored ISO `submitted_at`.
    """
    clauses = ["survey_id = :sid", "status = :status"]
    params: dict = {"sid": str(survey_id), "status": status}
    if month:
        clauses.append("substr(submitted_at, 1, 7) = :month")
        params["month"] = month
    if respondent_key:
        clauses.append("respondent_key = :key")
        params["key"] = respondent_key
    with connection_scope() as c:
        rows = c.execute(
            sql_text(
                f"SELECT {_SUBMISSION_COLUMNS} FROM survey_submissions "
                f"WHERE {' AND '.join(clauses)} "
                "ORDER BY submitted_at DESC, submission_id ASC"
            ),
            params,
        ).mappings().all()
    return [_row_to_submission(r) for r in rows]


def count_submissions(survey_id: str, conn: Connection | None = None) -> int:
    with connection_scope(conn) as c:
        row = c.execute(
            sql_text("SELECT COUNT(*) FROM survey_submissions WHERE survey_id = :sid"),
            {"sid": str(survey_id)},
        ).fetchone()
    return int(row[0]) if row and row[0] is not None else 0


__all__ = [
    "insert_submission",
    "update_submission_scores",
    "get_submission",
    "find_submission_for_respondent",
    "list_submissions",
    "count_submissions",
]
