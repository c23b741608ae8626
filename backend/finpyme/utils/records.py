"""Uniform access to transaction-like records.

The computation core accepts ORM rows, pydantic models and plain dicts
interchangeably.
"""

from datetime import date, datetime, time, timezone


def field_value(record, name: str, default=None):
    if isinstance(record, dict):
        return record.get(name, default)
    return getattr(record, name, default)


def to_naive_utc(value) -> datetime | None:
    """Normalize datetimes, dates and ISO strings to naive UTC datetimes.

    SQLite hands back naive datetimes while PostgreSQL returns aware ones;
    both compare safely once normalized. Unparseable values give None.
    """
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    return None


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)
