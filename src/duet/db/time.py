# src/duet/db/time.py
"""UTC timestamps for rows and the comparisons made on them.

SQLite hands ``DateTime(timezone=True)`` columns back without tzinfo while
freshly assigned values are aware, so any comparison between a loaded value
and a new one goes through :func:`as_utc`.
"""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime, treating naive values as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def latest(current: datetime | None, candidate: datetime) -> datetime:
    """Return whichever timestamp is later; ``current`` may be unset."""
    if current is None or as_utc(candidate) >= as_utc(current):
        return candidate
    return current
