from datetime import datetime, time, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_utc_naive(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        raise ValueError("datetime must be timezone-aware")
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def utc_naive_to_aware(dt: datetime) -> datetime:
    return dt.replace(tzinfo=timezone.utc)


def parse_time_of_day(value: time | str) -> time:
    """Accept a ``time`` or an ``HH:MM`` string with an optional ``Z`` suffix."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0, tzinfo=None)
    text = value.strip().upper().removesuffix("Z")
    try:
        parsed = datetime.strptime(text, "%H:%M")
    except ValueError as exc:
        raise ValueError(f"invalid time of day: {value!r}") from exc
    return parsed.time()


def format_slot_label(value: time | datetime) -> str:
    return f"{value:%H:%M}Z"
