from __future__ import annotations

from datetime import datetime, timezone
from typing import Tuple


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_start(start_date: str, start_time: str) -> datetime:
    """
    Combine ``YYYY-MM-DD`` and ``HH:MM`` into a UTC instant.

    Raises:
        ValueError: If either part does not parse or the date is impossible.
    """
    parsed = datetime.strptime(f"{start_date.strip()}T{start_time.strip()}", "%Y-%m-%dT%H:%M")
    return parsed.replace(tzinfo=timezone.utc)


def split_start(value: datetime) -> Tuple[str, str]:
    """Return ``(YYYY-MM-DD, HH:MM)`` for an instant, in UTC."""
    value = as_utc(value)
    return value.strftime("%Y-%m-%d"), value.strftime("%H:%M")


def iso_utc(value: datetime) -> str:
    """ISO-8601 with millisecond precision and a ``Z`` suffix."""
    value = as_utc(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"
