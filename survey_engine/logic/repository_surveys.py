"""Survey data access helpers.

Encapsulates survey row reads and writes so route handlers and lifecycle
code stay free of inline SQL.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from survey_engine.db.base import connection_scope
from survey_engine.logic.timestamps import format_ts, parse_ts
from survey_engine.models.survey import Survey, SurveySettings, SurveySummary

logger = logging.getLogger(__name__)

_SURVEY_COLUMNS = (
    "survey_id, title, description, status, is_anonymous, is_required, scoring_mode, "
    "include_optional_in_scoring, allow_edits, edit_limit_hours, start_date, end_date, "
    "created_by, created_at, updated_at"
)


def _opt_ts(value: Any) -> Optional[str]:
    return format_ts(value) if value is not None else None


def _row_to_survey(row: Mapping[str, Any]) -> Survey:
    return Survey(
        survey_id=str(row["survey_id"]),
        title=str(row["title"]),
        description=row["description"],
        status=str(row["status"]),
        is_anonymous=bool(row["is_anonymous"]),
        is_required=bool(row["is_required"]),
        scoring_mode=str(row["scoring_mode"]),
        include_optional_in_scoring=bool(row["include_optional_in_scoring"]),
        allow_edits=bool(row["allow_edits"]),
        edit_limit_hours=float(row["edit_limit_hours"]) if row["edit_limit_hours"] is not None else None,
        start_date=parse_ts(row["start_date"]),
        end_date=parse_ts(row["end_date"]),
        created_by=row["created_by"],
        created_at=parse_ts(row["created_at"]),
        updated_at=parse_ts(row["updated_at"]),
    )


def _settings_params(settings: SurveySettings) -> dict:
    return {
        "title": settings.title,
        "description": settings.description,
        "is_anonymous": bool(settings.is_anonymous),
        "is_required": bool(settings.is_required),
        "scoring_mode": settings.scoring_mode,
        "include_optional": bool(settings.include_optional_in_scoring),
        "allow_edits": bool(settings.allow_edits),
        "edit_limit_hours": settings.edit_limit_hours,
        "start_date": _opt_ts(settings.start_date),
        "end_date": _opt_ts(settings.end_date),
    }


def insert_survey(
    survey_id: str,
    settings: SurveySettings,
    *,
    status: str,
    created_by: Optional[str],
    conn: Connection | None = None,
) -> None:
    now = format_ts()
    with connection_scope(conn) as c:
        c.execute(
            sql_text(
                """
                INSERT INTO surveys (
                    survey_id, title, description, status, is_anonymous, is_required,
                    scoring_mode, include_optional_in_scoring, allow_edits, edit_limit_hours,
                    start_date, end_date, created_by, created_at, updated_at
                ) VALUES (
                    :survey_id, :title, :description, :status, :is_anonymous, :is_required,
                    :scoring_mode, :include_optional, :allow_edits, :edit_limit_hours,
                    :start_date, :end_date, :created_by, :now, :now
                )
                """
            ),
            {
                **_settings_params(settings),
                "survey_id": survey_id,
                "status": status,
                "created_by": created_by,
                "now": now,
            },
        )


def get_survey(survey_id: str, conn: Connection | None = None) -> Optional[Survey]:
    with connection_scope(conn) as c:
        row = c.execute(
            sql_text(f"SELECT {_SURVEY_COLUMNS} FROM surveys WHERE survey_id = :id"),
            {"id": str(survey_id)},
        ).mappings().fetchone()
    return _row_to_survey(row) if row else None


def list_surveys(status: Optional[str] = None) -> List[SurveySummary]:
    """List surveys newest first with question and completed-submission counts.

    `questions_count` counts top-level questions only, matching what a
    respondent sees before any conditional follow-ups open.
    """
    where = "WHERE s.status = :status" if status else ""
    with connection_scope() as c:
        rows = c.execute(
            sql_text(
                f"""
                SELECT {", ".join("s." + col.strip() for col in _SURVEY_COLUMNS.split(","))},
                       (SELECT COUNT(*) FROM survey_questions q
                         WHERE q.survey_id = s.survey_id AND q.parent_question_id IS NULL) AS questions_count,
                       (SELECT COUNT(*) FROM survey_submissions sub
                         WHERE sub.survey_id = s.survey_id AND sub.status = 'completed') AS submissions_count
                FROM surveys s
                {where}
                ORDER BY s.created_at DESC, s.survey_id ASC
                """
            ),
            {"status": status} if status else {},
        ).mappings().all()
    result: List[SurveySummary] = []
    for row in rows:
        base = _row_to_survey(row)
        result.append(
            SurveySummary(
                **base.model_dump(),
                questions_count=int(row["questions_count"] or 0),
                submissions_count=int(row["submissions_count"] or 0),
            )
        )
    return result


def update_survey_status(survey_id: str, status: str, conn: Connection | None = None) -> None:
    with connection_scope(conn) as c:
        c.execute(
            sql_text("UPDATE surveys SET status = :status, updated_at = :now WHERE survey_id = :id"),
            {"status": status, "now": format_ts(), "id": str(survey_id)},
        )


def update_survey_settings(survey_id: str, settings: SurveySettings, conn: Connection | None = None) -> None:
    with connection_scope(conn) as c:
        c.execute(
            sql_text(
                """
                UPDATE surveys
                   SET title = :title, description = :description, is_anonymous = :is_anonymous,
                       is_required = :is_required, scoring_mode = :scoring_mode,
                       include_optional_in_scoring = :include_optional, allow_edits = :allow_edits,
                       edit_limit_hours = :edit_limit_hours, start_date = :start_date,
                       end_date = :end_date, updated_at = :now
                 WHERE survey_id = :id
                """
            ),
            {**_settings_params(settings), "now": format_ts(), "id": str(survey_id)},
        )


def delete_survey(survey_id: str, conn: Connection | None = None) -> None:
    """Physically delete a survey and its questions.

    Callers must ensure no submission references the survey first.
    """
    with connection_scope(conn) as c:
        c.execute(sql_text("DELETE FROM survey_questions WHERE survey_id = :id"), {"id": str(survey_id)})
        c.execute(sql_text("DELETE FROM survey_activity_log WHERE survey_id = :id"), {"id": str(survey_id)})
        c.execute(sql_text("DELETE FROM surveys WHERE survey_id = :id"), {"id": str(survey_id)})
    logger.info("survey_deleted survey_id=%s", survey_id)


__all__ = [
    "insert_survey",
    "get_survey",
    "list_surveys",
    "update_survey_status",
    "update_survey_settings",
    "delete_survey",
]
