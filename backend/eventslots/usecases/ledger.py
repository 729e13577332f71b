from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Mapping, Optional
from uuid import uuid4

from ..domain.entities import (
    Event,
    EventDraft,
    EventStatus,
    Registration,
    RegistrationDraft,
    RegistrationStatus,
)
from ..domain.errors import (
    EventNotFoundError,
    RegistrationNotFoundError,
    SlotUnavailableError,
    StaleEventError,
)
from ..domain.repositories import EventRepository
from ..domain.services import EventSnapshot, validate_registration, validate_status_transition
from ..domain.slots import available_slot_labels, event_slots, generate_slots
from ..infrastructure.cache import EventCache
from ..utils.time import parse_time_of_day, utc_now

logger = logging.getLogger(__name__)

_EVENT_FIELDS = frozenset(
    {"title", "description", "location", "image_url", "date", "start_time", "end_time", "status"}
)
_ROUTE_FIELDS = frozenset(
    {"origin_icao", "destination_icao", "aircraft", "flight_level", "estimated_duration"}
)
_NUMERIC_FIELDS = frozenset({"total_slots", "slot_duration_minutes"})


def coerce_positive_int(value: object, default: int) -> int:
    """Positive integer from loose admin input; anything else falls back to ``default``."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = int(str(value).strip())
    except ValueError:
        return default
    return number if number > 0 else default


def _sort_key(event: Event) -> tuple[Any, ...]:
    return (event.date, event.start_time, event.created_at)


def _with_derived_counter(event: Event) -> Event:
    return replace(event, available_slots=event.derived_available_slots())


class EventLedger:
    """
    Single mutation point for events and their registrations.

    Writes go through ``EventRepository.update`` as conditional writes keyed on
    the event version, serialized per event id inside this process. The cache is
    touched only after the store confirmed a write.
    """

    def __init__(
        self,
        repository: EventRepository,
        cache: EventCache,
        *,
        commit_attempts: int = 3,
        default_total_slots: int = 20,
        default_slot_duration_minutes: int = 2,
    ) -> None:
        self.repository = repository
        self.cache = cache
        self.commit_attempts = commit_attempts
        self.default_total_slots = default_total_slots
        self.default_slot_duration_minutes = default_slot_duration_minutes
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, event_id: str) -> asyncio.Lock:
        return self._locks.setdefault(event_id, asyncio.Lock())

    async def list_events(self) -> list[Event]:
        cached = self.cache.all()
        if cached is not None:
            return sorted(cached, key=_sort_key)
        events = await self.repository.list_all()
        self.cache.replace_all(events)
        return sorted(events, key=_sort_key)

    async def get_event(self, event_id: str) -> Event:
        cached = self.cache.get(event_id)
        if cached is not None:
            return cached
        event = await self._load(event_id)
        self.cache.put(event)
        return event

    async def get_available_slots(self, event_id: str) -> list[str]:
        return available_slot_labels(await self.get_event(event_id))

    async def create_event(self, draft: EventDraft, *, now: Optional[datetime] = None) -> Event:
        total_slots = coerce_positive_int(draft.total_slots, self.default_total_slots)
        duration = coerce_positive_int(draft.slot_duration_minutes, self.default_slot_duration_minutes)
        generate_slots(draft.date, draft.start_time, draft.end_time, duration)

        event = Event(
            id=uuid4().hex,
            title=draft.title,
            description=draft.description,
            date=draft.date,
            start_time=parse_time_of_day(draft.start_time),
            end_time=parse_time_of_day(draft.end_time),
            slot_duration_minutes=duration,
            route=draft.route,
            status=EventStatus.UPCOMING,
            created_at=now or utc_now(),
            total_slots=total_slots,
            available_slots=total_slots,
            location=draft.location,
            image_url=draft.image_url,
        )
        stored = await self.repository.create(event)
        self.cache.put(stored)
        return stored

    async def update_event(self, event_id: str, changes: Mapping[str, Any]) -> Event:
        """Apply only the supplied fields. A supplied ``available_slots`` is ignored."""
        unknown = set(changes) - _EVENT_FIELDS - _ROUTE_FIELDS - _NUMERIC_FIELDS - {"available_slots"}
        if unknown:
            raise ValueError(f"unknown event fields: {sorted(unknown)}")

        def apply(current: Event) -> Event:
            values = {k: v for k, v in changes.items() if k in _EVENT_FIELDS}
            for name in ("start_time", "end_time"):
                if name in values:
                    values[name] = parse_time_of_day(values[name])
            if "status" in values:
                values["status"] = EventStatus(values["status"])
            for name in _NUMERIC_FIELDS & set(changes):
                values[name] = coerce_positive_int(changes[name], getattr(current, name))
            route_values = {k: v for k, v in changes.items() if k in _ROUTE_FIELDS}
            if route_values:
                values["route"] = replace(current.route, **route_values)

            updated = replace(current, **values)
            event_slots(updated)
            return _with_derived_counter(updated)

        return await self._mutate(event_id, apply)

    async def set_event_status(self, event_id: str, status: EventStatus) -> Event:
        return await self._mutate(event_id, lambda current: replace(current, status=status))

    async def delete_event(self, event_id: str) -> None:
        async with self._lock_for(event_id):
            deleted = await self.repository.delete(event_id)
            self._locks.pop(event_id, None)
            if not deleted:
                raise EventNotFoundError(event_id)
            self.cache.evict(event_id)

    async def commit_registration(
        self,
        event_id: str,
        draft: RegistrationDraft,
        *,
        registrant_banned: bool,
        now: Optional[datetime] = None,
    ) -> Registration:
        registration = Registration(
            id=uuid4().hex,
            event_id=event_id,
            name=draft.name,
            vatsim_cid=draft.vatsim_cid,
            email=draft.email,
            aircraft_type=draft.aircraft_type,
            route=draft.route,
            notes=draft.notes,
            selected_time=draft.selected_time,
            registered_at=now or utc_now(),
            status=RegistrationStatus.PENDING,
        )

        def admit(current: Event) -> Event:
            snapshot = EventSnapshot(
                status=current.status,
                open_slots=tuple(available_slot_labels(current)),
                available_slots=current.available_slots,
                registrant_banned=registrant_banned,
            )
            validate_registration(snapshot, selected_time=draft.selected_time)
            updated = replace(current, registrations=current.registrations + (registration,))
            return _with_derived_counter(updated)

        try:
            await self._mutate(event_id, admit)
        except StaleEventError as exc:
            raise SlotUnavailableError("event changed during admission; refresh availability") from exc
        return registration

    async def set_registration_status(
        self,
        event_id: str,
        registration_id: str,
        status: RegistrationStatus,
    ) -> tuple[Registration, RegistrationStatus]:
        """Returns the registration after the transition and its previous status."""
        outcome: dict[str, Any] = {}

        def transition(current: Event) -> Event:
            for index, registration in enumerate(current.registrations):
                if registration.id == registration_id:
                    break
            else:
                raise RegistrationNotFoundError("registration not found")
            outcome["previous"] = registration.status
            outcome["registration"] = registration
            if not validate_status_transition(registration.status, status):
                return current
            changed = replace(registration, status=status)
            outcome["registration"] = changed
            registrations = list(current.registrations)
            registrations[index] = changed
            return _with_derived_counter(replace(current, registrations=tuple(registrations)))

        await self._mutate(event_id, transition)
        return outcome["registration"], outcome["previous"]

    async def _load(self, event_id: str) -> Event:
        event = await self.repository.get(event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    async def _mutate(self, event_id: str, mutate: Callable[[Event], Event]) -> Event:
        """
        Read fresh state, apply ``mutate`` and write it back conditionally.
        Domain errors raised by ``mutate`` propagate without writing. Lost races
        are retried against fresh state up to ``commit_attempts`` times.
        Unknown ids fail before a lock is allocated for them.
        """
        await self._load(event_id)
        async with self._lock_for(event_id):
            for attempt in range(1, self.commit_attempts + 1):
                try:
                    current = await self._load(event_id)
                except EventNotFoundError:
                    self._locks.pop(event_id, None)
                    raise
                updated = mutate(current)
                if updated is current:
                    self.cache.put(current)
                    return current
                try:
                    stored = await self.repository.update(updated, expected_version=current.version)
                except StaleEventError:
                    logger.warning("conflicting write on event %s (attempt %d)", event_id, attempt)
                    continue
                self.cache.put(stored)
                return stored
        raise StaleEventError(f"event {event_id} kept changing; gave up after {self.commit_attempts} attempts")
