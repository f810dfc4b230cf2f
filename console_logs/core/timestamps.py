"""Timestamp helpers.

Timestamps are stored as fixed-width ISO-8601 UTC strings
(``2026-01-01T12:00:00.000000Z``) so string order is chronological order.
"""

from datetime import UTC, datetime, timedelta

from console_logs.core.errors import ValidationError


def format_timestamp(value: datetime) -> str:
    """Format a datetime in the stored timestamp format."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    value = value.astimezone(UTC)
    return value.strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def utc_now() -> str:
    return format_timestamp(datetime.now(UTC))


def hours_ago(hours: float) -> str:
    return format_timestamp(datetime.now(UTC) - timedelta(hours=hours))


def normalize_timestamp(value: str) -> str:
    """Parse a caller-supplied ISO-8601 string into the stored format.

    Naive values are taken as UTC.

    Raises:
        ValidationError: If the value is not ISO-8601
    """
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except (AttributeError, ValueError) as e:
        raise ValidationError(f"Invalid timestamp: {value!r}") from e
    return format_timestamp(parsed)


def parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))
