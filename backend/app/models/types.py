"""Custom column types."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Float
from sqlalchemy.types import TypeDecorator


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class EpochTimestamp(TypeDecorator):
    """Timezone-aware datetime stored as epoch seconds.

    Naive datetimes are taken to be UTC.  Values always come back as aware
    UTC datetimes regardless of the backend's native timestamp support.
    """

    impl = Float
    cache_ok = True

    def process_bind_param(self, value, dialect):  # type: ignore[no-untyped-def]
        if value is None:
            return None
        if isinstance(value, (int, float)):
            return float(value)
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()

    def process_result_value(self, value, dialect):  # type: ignore[no-untyped-def]
        if value is None:
            return None
        return datetime.fromtimestamp(value, tz=timezone.utc)
