"""Timestamp utilities.

Two string forms are used throughout:
- decision timestamps: ``2025-01-15T12:00:00.000Z`` (milliseconds)
- policy declaration timestamps: ``2024-11-15T09:00:00Z`` (seconds)

Both are UTC. Their precisions differ, so compare parsed values, never
the strings.
"""

from datetime import datetime, timezone

# Accepted on input, tried in order
_PARSE_FORMATS = (
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S.%fZ",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f%z",
)


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def _as_utc(dt: datetime) -> datetime:
    # naive values are taken as UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """Format a decision timestamp with millisecond precision.

    Args:
        dt: Datetime to format

    Returns:
        String such as ``2025-01-15T12:00:00.000Z``
    """
    dt = _as_utc(dt)
    return f"{dt.strftime('%Y-%m-%dT%H:%M:%S')}.{dt.microsecond // 1000:03d}Z"


def format_declaration_time(dt: datetime) -> str:
    """Format a policy declaration time with second precision."""
    return _as_utc(dt).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_timestamp(value: str) -> datetime:
    """Parse either timestamp form, or an offset ISO string, into UTC.

    Raises:
        ValueError: If the string matches none of the accepted forms
    """
    for fmt in _PARSE_FORMATS:
        try:
            return _as_utc(datetime.strptime(value, fmt))
        except ValueError:
            continue

    raise ValueError(f"Could not parse timestamp: {value}")
