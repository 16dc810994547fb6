"""Timestamp helpers shared by repositories and the lifecycle manager.

Stored timestamps are ISO-8601 UTC strings with microseconds so that
lexical ordering matches chronological ordering on every dialect.
"""

from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_ts(dt: datetime | None = None) -> str:
    return ensure_utc(dt or utcnow()).isoformat(timespec="microseconds")


def parse_ts(text: str | datetime | None) -> datetime | None:
    if text is None or text == "":
        return None
    if isinstance(text, datetime):
        return ensure_utc(text)
    return ensure_utc(datetime.fromisoformat(str(text).replace("Z", "+00:00")))


__all__ = ["utcnow", "ensure_utc", "format_ts", "parse_ts"]
