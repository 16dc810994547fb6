"""Question-related repository helpers.

Questions are written as a whole set per survey (delete-then-insert inside
one transaction) and read back in `order_index` order. Structured fields
(options, points_config, show_if_answer) are stored as JSON text.
"""

from __future__ import annotations

import json
import logging
from typing import Any, List, Mapping, Sequence

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from survey_engine.db.base import connection_scope
from survey_engine.models.survey import PointsConfig, Question, QuestionOption, ShowIfAnswer

logger = logging.getLogger(__name__)


def _dump(model) -> str | None:
    if model is None:
        return None
    if isinstance(model, list):
        return json.dumps([m.model_dump() for m in model], ensure_ascii=False) if model else None
    return json.dumps(model.model_dump(exclude_none=True), ensure_ascii=False)


def _load(text: Any) -> Any:
    if text is None or text == "":
        return None
    if isinstance(text, (dict, list)):
        return text
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        logger.error("question_json_column_unreadable value=%r", text, exc_info=True)
        return None


def _row_to_question(row: Mapping[str, Any]) -> Question:
    options = _load(row["options_json"]) or []
    points = _load(row["points_config_json"])
    show_if = _load(row["show_if_answer_json"])
    return Question(
        question_id=str(row["question_id"]),
        survey_id=str(row["survey_id"]),
        order_index=int(row["order_index"]),
        question_text=str(row["question_text"]),
        question_type=str(row["question_type"]),
        is_required=bool(row["is_required"]),
        options=[QuestionOption(**o) for o in options if isinstance(o, dict)],
        points_config=PointsConfig(**points) if isinstance(points, dict) else None,
        parent_question_id=row["parent_question_id"],
        show_if_answer=ShowIfAnswer(**show_if) if isinstance(show_if, dict) else None,
    )


def replace_questions(survey_id: str, questions: Sequence[Question], conn: Connection | None = None) -> int:
    """Replace the survey's whole question set and return the number written."""
    with connection_scope(conn) as c:
        c.execute(sql_text("DELETE FROM survey_questions WHERE survey_id = :sid"), {"sid": str(survey_id)})
        for q in questions:
            c.execute(
                sql_text(
                    """
                    INSERT INTO survey_questions (
                        question_id, survey_id, order_index, question_text, question_type,
                        is_required, options_json, points_config_json, parent_question_id,
                        show_if_answer_json
                    ) VALUES (
                        :qid, :sid, :order_index, :text, :qtype,
                        :required, :options, :points, :parent, :show_if
                    )
                    """
                ),
                {
                    "qid": q.question_id,
                    "sid": str(survey_id),
                    "order_index": int(q.order_index),
                    "text": q.question_text,
                    "qtype": q.question_type,
                    "required": bool(q.is_required),
                    "options": _dump(list(q.options)),
                    "points": _dump(q.points_config),
                    "parent": q.parent_question_id,
                    "show_if": _dump(q.show_if_answer),
                },
            )
    logger.info("questions_replaced survey_id=%s count=%s", survey_id, len(questions))
    return len(questions)


def list_questions(survey_id: str, conn: Connection | None = None) -> List[Question]:
    with connection_scope(conn) as c:
        rows = c.execute(
            sql_text(
                """
                SELECT question_id, survey_id, order_index, question_text, question_type,
                       is_required, options_json, points_config_json, parent_question_id,
                       show_if_answer_json
                FROM survey_questions
                WHERE survey_id = :sid
                ORDER BY order_index ASC, question_id ASC
                """
            ),
            {"sid": str(survey_id)},
        ).mappings().all()
    return [_row_to_question(r) for r in rows]


__all__ = ["replace_questions", "list_questions"]
