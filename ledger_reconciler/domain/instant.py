"""
Instant normalization.

Dates reach the engine as plain strings ("2025-07-01", "Mon Aug 04 2025"),
native date/datetime objects, and store timestamp objects carrying
seconds/nanoseconds fields. Everything is converted once, here, into an
Instant: a timezone-aware UTC datetime. Internal logic only ever sees
Instants.
"""

from datetime import date, datetime, time, timedelta, timezone

from ledger_reconciler.errors import ValidationError

Instant = datetime

UTC = timezone.utc

# Free-text date layouts seen in imported history.
_TEXT_FORMATS = (
    "%a %b %d %Y",
    "%b %d %Y",
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%d/%m/%Y",
    "%Y-%m-%d %H:%M:%S",
)


def _from_epoch(seconds, nanoseconds=0) -> Instant:
    base = datetime.fromtimestamp(int(seconds), tz=UTC)
    return base + timedelta(microseconds=int(nanoseconds) // 1000)


def _from_text(text: str) -> Instant:
    value = text.strip()
    if not value:
        raise ValidationError("empty date string")

    iso = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        parsed = datetime.fromisoformat(iso)
    except ValueError:
        parsed = None

    if parsed is None:
        for fmt in _TEXT_FORMATS:
            try:
                parsed = datetime.strptime(value, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        raise ValidationError(f"unrecognized date: {text!r}")
    return to_instant(parsed)


def to_instant(value) -> Instant:
    """
    Convert any supported date representation into an Instant.

    Naive datetimes are taken to already be UTC (that is how they
    are stored). Plain dates become midnight UTC. Raises
    ValidationError for anything that can't be read as a date;
    callers must never substitute a default.
    """
    if value is None:
        raise ValidationError("missing date")

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=UTC)

    if isinstance(value, str):
        return _from_text(value)

    if isinstance(value, dict):
        for sec_key, ns_key in (("seconds", "nanoseconds"), ("_seconds", "_nanoseconds")):
            if sec_key in value:
                return _from_epoch(value[sec_key], value.get(ns_key, 0))
        raise ValidationError(f"unrecognized timestamp mapping: {sorted(value)}")

    seconds = getattr(value, "seconds", None)
    if seconds is not None:
        return _from_epoch(seconds, getattr(value, "nanoseconds", 0))

    raise ValidationError(f"unsupported date type: {type(value).__name__}")


def to_storage(instant: Instant) -> datetime:
    """Naive UTC datetime for DateTime columns."""
    return to_instant(instant).replace(tzinfo=None)


def end_of_day(day: date) -> Instant:
    """Last representable millisecond of a calendar day."""
    return datetime.combine(day, time.min, tzinfo=UTC) + timedelta(days=1, milliseconds=-1)


def utc_now() -> Instant:
    return datetime.now(UTC)
