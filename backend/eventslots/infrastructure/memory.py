from __future__ import annotations

import asyncio
from dataclasses import replace

from ..domain.entities import BannedUser, Event
from ..domain.errors import EventNotFoundError, StaleEventError


class InMemoryEventRepository:
    """Process-local event store with compare-and-set updates."""

    def __init__(self, events: list[Event] | None = None) -> None:
        self._events: dict[str, Event] = {event.id: event for event in events or []}
        self._lock = asyncio.Lock()

    async def list_all(self) -> list[Event]:
        return sorted(self._events.values(), key=lambda e: (e.date, e.start_time, e.created_at))

    async def get(self, event_id: str) -> Event | None:
        return self._events.get(event_id)

    async def create(self, event: Event) -> Event:
        async with self._lock:
            if event.id in self._events:
                raise ValueError(f"event {event.id} already exists")
            self._events[event.id] = event
        return event

    async def update(self, event: Event, *, expected_version: int) -> Event:
        async with self._lock:
            current = self._events.get(event.id)
            if current is None:
                raise EventNotFoundError(event.id)
            if current.version != expected_version:
                raise StaleEventError(f"event {event.id} changed concurrently")
            stored = replace(event, version=expected_version + 1)
            self._events[event.id] = stored
        return stored

    async def delete(self, event_id: str) -> bool:
        async with self._lock:
            return self._events.pop(event_id, None) is not None


class InMemoryBanRepository:
    def __init__(self, bans: list[BannedUser] | None = None) -> None:
        self._bans: dict[str, BannedUser] = {ban.id: ban for ban in bans or []}

    async def list_all(self) -> list[BannedUser]:
        return sorted(self._bans.values(), key=lambda b: b.banned_at)

    async def list_for_cid(self, vatsim_cid: str) -> list[BannedUser]:
        return [ban for ban in self._bans.values() if ban.vatsim_cid == vatsim_cid]

    async def create(self, ban: BannedUser) -> BannedUser:
        self._bans[ban.id] = ban
        return ban

    async def delete(self, ban_id: str) -> bool:
        return self._bans.pop(ban_id, None) is not None
