"""Timestamps: platform dates in, UTC stamps out."""

from __future__ import annotations

from datetime import datetime, timezone

import pendulum

# Compact UTC stamp used in branch names and commit titles.
STAMP_FORMAT = "%Y%m%d%H%M%S%f"


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp as GitHub reports it, e.g. ``2026-02-02T22:21:29Z``.

    Raises ValueError for anything that is not a full date and time.
    """
    parsed = pendulum.parse(value, exact=True)
    if not isinstance(parsed, pendulum.DateTime):
        msg = f"Not a timestamp: {value!r}"
        raise ValueError(msg)
    return parsed


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(dt: datetime) -> datetime:
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt.astimezone(timezone.utc)


def format_iso(dt: datetime) -> str:
    """ISO 8601 in UTC, as stored in the state table."""
    return _as_utc(dt).isoformat()


def format_stamp(dt: datetime) -> str:
    """Compact UTC stamp, e.g. ``20260202222129975359``."""
    return _as_utc(dt).strftime(STAMP_FORMAT)
