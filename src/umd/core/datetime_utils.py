"""UTC datetime utilities.

All persisted timestamps are timezone-aware UTC values serialized as
ISO-8601 strings.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_iso(value: datetime | None) -> str | None:
    """Serialize a datetime to ISO-8601, passing None through."""
    if value is None:
        return None
    return value.isoformat()


def parse_iso_timestamp(timestamp: str) -> datetime:
    """Parse ISO-8601 timestamp, handling both Z and +00:00 suffixes.

    Args:
        timestamp: ISO-8601 timestamp string (e.g., "2024-01-15T10:30:00Z").

    Returns:
        Timezone-aware datetime object (always UTC if no offset specified).

    Note:
        Browsers and the JSON files written by older releases use a Z
        suffix, so it is normalized to +00:00 before parsing. Naive
        datetime strings (no timezone) are assumed to be UTC.
    """
    normalized = timestamp.replace("Z", "+00:00")
    dt = datetime.fromisoformat(normalized)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def calculate_duration_seconds(
    started_at: datetime | None, completed_at: datetime | None
) -> float | None:
    """Calculate seconds elapsed between two datetimes.

    Args:
        started_at: Start timestamp.
        completed_at: End timestamp.

    Returns:
        Duration in seconds, or None if either bound is missing.
    """
    if started_at is None or completed_at is None:
        return None
    return (completed_at - started_at).total_seconds()
