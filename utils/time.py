from datetime import date, datetime, time, timezone

from pydantic import TypeAdapter

_datetime = TypeAdapter(datetime)


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column in the ledger stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_range_end(raw: str | None) -> datetime | None:
    """
    Upper bound of a date filter. A bare `YYYY-MM-DD` covers that whole day;
    anything else must be a full timestamp. Raises ValueError otherwise.
    """
    if raw is None:
        return None
    if len(raw) == 10:
        return datetime.combine(date.fromisoformat(raw), time.max)
    return to_naive_utc(_datetime.validate_python(raw))
