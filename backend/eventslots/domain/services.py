from dataclasses import dataclass

from .entities import EventStatus, RegistrationStatus
from .errors import (
    CapacityExhaustedError,
    EventNotBookableError,
    InvalidStatusTransitionError,
    RegistrantBannedError,
    SlotUnavailableError,
)

_ALLOWED_TRANSITIONS: dict[RegistrationStatus, frozenset[RegistrationStatus]] = {
    RegistrationStatus.PENDING: frozenset({RegistrationStatus.CONFIRMED, RegistrationStatus.CANCELLED}),
    RegistrationStatus.CONFIRMED: frozenset({RegistrationStatus.CANCELLED}),
    RegistrationStatus.CANCELLED: frozenset(),
}


@dataclass(frozen=True)
class EventSnapshot:
    status: EventStatus
    open_slots: tuple[str, ...]
    available_slots: int
    registrant_banned: bool


def validate_registration(snapshot: EventSnapshot, *, selected_time: str) -> int:
    """
    Pure validation in admission order: event bookable, slot still open,
    registrant not banned, stored counter positive.
    Returns the counter value after booking if OK. Raises domain errors otherwise.
    """
    if snapshot.status != EventStatus.UPCOMING:
        raise EventNotBookableError(f"event is {snapshot.status}")
    if selected_time not in snapshot.open_slots:
        raise SlotUnavailableError(f"slot {selected_time} is not available")
    if snapshot.registrant_banned:
        raise RegistrantBannedError("registrant is banned")
    if snapshot.available_slots <= 0:
        raise CapacityExhaustedError("no slots left for this event")
    return snapshot.available_slots - 1


def validate_status_transition(current: RegistrationStatus, target: RegistrationStatus) -> bool:
    """Return False for a no-op transition, True when it must be applied."""
    if current == target:
        return False
    if target not in _ALLOWED_TRANSITIONS[current]:
        raise InvalidStatusTransitionError(f"cannot move registration from {current} to {target}")
    return True
