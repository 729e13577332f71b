from __future__ import annotations

from datetime import date, datetime, time, timedelta

from ..utils.time import format_slot_label, parse_time_of_day
from .entities import Event
from .errors import InvalidWindowError


def generate_slots(
    date_: date,
    start_time: time | str,
    end_time: time | str,
    slot_duration_minutes: int,
) -> list[str]:
    """
    Return the Zulu slot labels in the half-open window [start_time, end_time).
    Pure: equal arguments always give an equal list. Raises InvalidWindowError
    for a non-positive duration or an empty/reversed window.
    """
    if slot_duration_minutes <= 0:
        raise InvalidWindowError("slot duration must be positive")
    try:
        start = datetime.combine(date_, parse_time_of_day(start_time))
        end = datetime.combine(date_, parse_time_of_day(end_time))
    except ValueError as exc:
        raise InvalidWindowError(str(exc)) from exc
    if end <= start:
        raise InvalidWindowError("end time must be later than start time")

    step = timedelta(minutes=slot_duration_minutes)
    if step >= end - start:
        return []

    labels: list[str] = []
    cursor = start
    while cursor < end:
        labels.append(format_slot_label(cursor))
        cursor += step
    return labels


def event_slots(event: Event) -> list[str]:
    return generate_slots(event.date, event.start_time, event.end_time, event.slot_duration_minutes)


def available_slot_labels(event: Event) -> list[str]:
    """Slots of the event not held by a pending or confirmed registration, in order."""
    taken = {r.selected_time for r in event.registrations if r.is_active}
    return [label for label in event_slots(event) if label not in taken]
