"""Response data access helpers.

Responses are never patched field by field. `replace_responses` swaps a
submission's whole response set and flips its `responses_complete` flag in
one transaction, so a reader sees either the previous set or the new one.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Dict, List, Mapping

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from survey_engine.db.base import connection_scope
from survey_engine.logic.timestamps import format_ts
from survey_engine.models.question_types import SubmissionStatus
from survey_engine.models.submission import ResponseRecord

logger = logging.getLogger(__name__)


def _decode(text: Any) -> Any:
    """Decode a stored response value; unreadable JSON is returned as-is."""
    if isinstance(text, (dict, list)) or text is None:
        return text
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        logger.warning("response_value_undecodable value=%r", text)
        return text


def replace_responses(submission_id: str, records: Mapping[str, dict], conn: Connection | None = None) -> int:
    """Replace the submission's response set with `records` (question_id -> value).

    Returns the number of rows written.
    """
    now = format_ts()
    with connection_scope(conn) as c:
        c.execute(
            sql_text("DELETE FROM survey_responses WHERE submission_id = :id"),
            {"id": str(submission_id)},
        )
        for question_id, value in records.items():
            c.execute(
                sql_text(
                    """
                    INSERT INTO survey_responses (response_id, submission_id, question_id, response_value_json, created_at)
                    VALUES (:rid, :sid, :qid, :value, :now)
                    """
                ),
                {
                    "rid": str(uuid.uuid4()),
                    "sid": str(submission_id),
                    "qid": str(question_id),
                    "value": json.dumps(value, ensure_ascii=False),
                    "now": now,
                },
            )
        c.execute(
            sql_text("UPDATE survey_submissions SET responses_complete = :complete WHERE submission_id = :id"),
            {"complete": True, "id": str(submission_id)},
        )
    logger.info("responses_replaced submission_id=%s count=%s", submission_id, len(records))
    return len(records)


def list_responses(submission_id: str, conn: Connection | None = None) -> List[ResponseRecord]:
    with connection_scope(conn) as c:
        rows = c.execute(
            sql_text(
                "SELECT response_id, submission_id, question_id, response_value_json "
                "FROM survey_responses WHERE submission_id = :id ORDER BY question_id ASC"
            ),
            {"id": str(submission_id)},
        ).fetchall()
    return [
        ResponseRecord(
            response_id=str(r[0]),
            submission_id=str(r[1]),
            question_id=str(r[2]),
            response_value=_decode(r[3]),
        )
        for r in rows
    ]


def responses_by_submission(survey_id: str) -> Dict[str, Dict[str, Any]]:
    """Return submission_id -> {question_id -> stored value} for completed submissions."""
    with connection_scope() as c:
        rows = c.execute(
            sql_text(
                """
                SELECT r.submission_id, r.question_id, r.response_value_json
                FROM survey_responses r
                JOIN survey_submissions s ON s.submission_id = r.submission_id
                WHERE s.survey_id = :sid AND s.status = :status
                ORDER BY r.submission_id ASC, r.question_id ASC
                """
            ),
            {"sid": str(survey_id), "status": SubmissionStatus.COMPLETED},
        ).fetchall()
    grouped: Dict[str, Dict[str, Any]] = {}
    for submission_id, question_id, raw in rows:
        grouped.setdefault(str(submission_id), {})[str(question_id)] = _decode(raw)
    return grouped


__all__ = ["replace_responses", "list_responses", "responses_by_submission"]
