"""Domain errors for event slots and registrations."""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    INVALID_WINDOW = "invalid_window"
    EVENT_NOT_FOUND = "event_not_found"
    EVENT_NOT_BOOKABLE = "event_not_bookable"
    SLOT_UNAVAILABLE = "slot_unavailable"
    REGISTRANT_BANNED = "registrant_banned"
    CAPACITY_EXHAUSTED = "capacity_exhausted"
    REGISTRATION_NOT_FOUND = "registration_not_found"
    INVALID_STATUS_TRANSITION = "invalid_status_transition"
    BAN_NOT_FOUND = "ban_not_found"
    STALE_EVENT = "stale_event"
    PERSISTENCE = "persistence_error"


class DomainError(Exception):
    code: ErrorCode

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidWindowError(DomainError):
    """Slot window parameters cannot produce slots (caller error)."""

    code = ErrorCode.INVALID_WINDOW


class EventNotFoundError(DomainError):
    code = ErrorCode.EVENT_NOT_FOUND

    def __init__(self, event_id: str) -> None:
        super().__init__("event not found")
        self.event_id = event_id


class EventNotBookableError(DomainError):
    code = ErrorCode.EVENT_NOT_BOOKABLE


class SlotUnavailableError(DomainError):
    """The requested slot is taken or unknown; re-fetch availability and retry."""

    code = ErrorCode.SLOT_UNAVAILABLE


class RegistrantBannedError(DomainError):
    code = ErrorCode.REGISTRANT_BANNED


class CapacityExhaustedError(DomainError):
    code = ErrorCode.CAPACITY_EXHAUSTED


class RegistrationNotFoundError(DomainError):
    code = ErrorCode.REGISTRATION_NOT_FOUND


class InvalidStatusTransitionError(DomainError):
    code = ErrorCode.INVALID_STATUS_TRANSITION


class BanNotFoundError(DomainError):
    code = ErrorCode.BAN_NOT_FOUND


class StaleEventError(DomainError):
    """Conditional write lost against a concurrent writer."""

    code = ErrorCode.STALE_EVENT


class PersistenceError(DomainError):
    code = ErrorCode.PERSISTENCE
