"""Domain representations of events, registrations and bans.

These are plain immutable values; storage rows live in ``eventslots.models``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from enum import StrEnum
from typing import Optional


class EventStatus(StrEnum):
    UPCOMING = "upcoming"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RegistrationStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Route:
    origin_icao: str
    destination_icao: str
    aircraft: str
    flight_level: Optional[str] = None
    estimated_duration: Optional[str] = None


@dataclass(frozen=True)
class RegistrationDraft:
    """What a registrant submits for a slot."""

    name: str
    vatsim_cid: str
    email: str
    aircraft_type: str
    route: str
    selected_time: str
    notes: Optional[str] = None


@dataclass(frozen=True)
class Registration:
    id: str
    event_id: str
    name: str
    vatsim_cid: str
    email: str
    aircraft_type: str
    route: str
    selected_time: str
    registered_at: datetime
    status: RegistrationStatus = RegistrationStatus.PENDING
    notes: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status != RegistrationStatus.CANCELLED


@dataclass(frozen=True)
class Event:
    id: str
    title: str
    description: str
    date: date
    start_time: time
    end_time: time
    slot_duration_minutes: int
    route: Route
    status: EventStatus
    created_at: datetime
    total_slots: int
    available_slots: int
    location: str = ""
    image_url: Optional[str] = None
    registrations: tuple[Registration, ...] = ()
    version: int = 1

    @property
    def active_registrations(self) -> tuple[Registration, ...]:
        return tuple(r for r in self.registrations if r.is_active)

    def derived_available_slots(self) -> int:
        """Counter value implied by the registration list."""
        return max(self.total_slots - len(self.active_registrations), 0)


@dataclass(frozen=True)
class EventDraft:
    """Admin input for a new event; numeric fields are coerced by the ledger."""

    title: str
    date: date
    start_time: time
    end_time: time
    route: Route
    description: str = ""
    slot_duration_minutes: Optional[object] = None
    total_slots: Optional[object] = None
    location: str = ""
    image_url: Optional[str] = None


@dataclass(frozen=True)
class BannedUser:
    id: str
    vatsim_cid: str
    reason: str
    banned_at: datetime
    name: str = ""
    email: str = ""
    banned_until: Optional[datetime] = None

    def is_active(self, now: datetime) -> bool:
        return self.banned_until is None or self.banned_until > now

