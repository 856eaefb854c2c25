"""Datetime helpers shared by the cache, snapshot, and conversion routing."""

from __future__ import annotations

from datetime import UTC, date, datetime


def ensure_utc(value: datetime) -> datetime:
    """Return a timezone-aware datetime in UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_date(value: date | datetime) -> date:
    """Calendar date of ``value``; aware datetimes are read in local time."""

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    return value


def is_today(value: date | datetime, today: date | None = None) -> bool:
    return as_date(value) == (today or date.today())
