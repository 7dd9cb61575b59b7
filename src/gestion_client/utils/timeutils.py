"""UTC time helpers shared across the client."""

from __future__ import annotations

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(UTC).replace(tzinfo=None)


def utc_isoformat(moment: datetime | None = None) -> str:
    """Format a UTC moment the way the backend's browser clients did.

    ``2026-03-01T09:30:00.123Z`` (millisecond precision, ``Z`` suffix).
    """
    moment = moment or utcnow()
    if moment.tzinfo is not None:
        moment = moment.astimezone(UTC).replace(tzinfo=None)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"
