"""Survey activity events.

Defines the activity action constants and a `publish()` callable used by the
authoring and submission flows. Each event is logged for observability and
appended to the `survey_activity_log` table.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from survey_engine.db.base import connection_scope
from survey_engine.logic.timestamps import format_ts, parse_ts
from survey_engine.models.response_types import ActivityEntry

logger = logging.getLogger(__name__)

SURVEY_CREATED = "created"
SURVEY_EDITED = "edited"
SURVEY_PUBLISHED = "published"
SURVEY_CLOSED = "closed"
SUBMISSION_CREATED = "submission_created"
SUBMISSION_EDITED = "submission_edited"
SUBMISSION_REPAIRED = "submission_repaired"


def publish(
    survey_id: str,
    action: str,
    *,
    performed_by: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    conn: Connection | None = None,
) -> str:
    """Record an activity event and return its id."""
    activity_id = str(uuid.uuid4())
    logger.info("event_publish survey_id=%s action=%s details=%s", survey_id, action, details or {})
    with connection_scope(conn) as c:
        c.execute(
            sql_text(
                """
                INSERT INTO survey_activity_log (activity_id, survey_id, action, performed_by, details_json, created_at)
                VALUES (:id, :sid, :action, :by, :details, :now)
                """
            ),
            {
                "id": activity_id,
                "sid": str(survey_id),
                "action": action,
                "by": performed_by,
                "details": json.dumps(details or {}, ensure_ascii=False),
                "now": format_ts(),
            },
        )
    return activity_id


def list_activity(survey_id: str) -> List[ActivityEntry]:
    """Return the survey's activity entries, oldest first."""
    with connection_scope() as c:
        rows = c.execute(
            sql_text(
                "SELECT activity_id, survey_id, action, performed_by, details_json, created_at "
                "FROM survey_activity_log WHERE survey_id = :sid ORDER BY created_at ASC, activity_id ASC"
            ),
            {"sid": str(survey_id)},
        ).mappings().all()
    entries: List[ActivityEntry] = []
    for row in rows:
        try:
            details = json.loads(row["details_json"] or "{}")
        except ValueError:
            logger.error("activity_details_unreadable activity_id=%s", row["activity_id"], exc_info=True)
            details = {}
        entries.append(
            ActivityEntry(
                activity_id=str(row["activity_id"]),
                survey_id=str(row["survey_id"]),
                action=str(row["action"]),
                performed_by=row["performed_by"],
                details=details if isinstance(details, dict) else {},
                created_at=parse_ts(row["created_at"]),
            )
        )
    return entries


__all__ = [
    "SURVEY_CREATED",
    "SURVEY_EDITED",
    "SURVEY_PUBLISHED",
    "SURVEY_CLOSED",
    "SUBMISSION_CREATED",
    "SUBMISSION_EDITED",
    "SUBMISSION_REPAIRED",
    "publish",
    "list_activity",
]
