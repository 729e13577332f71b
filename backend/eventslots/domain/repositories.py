from __future__ import annotations

from typing import Protocol

from .entities import BannedUser, Event


class EventRepository(Protocol):
    async def list_all(self) -> list[Event]: ...

    async def get(self, event_id: str) -> Event | None: ...

    async def create(self, event: Event) -> Event: ...

    async def update(self, event: Event, *, expected_version: int) -> Event:
        """
        Conditional write: store ``event`` only if the stored version still equals
        ``expected_version``. Returns the stored event with its bumped version.
        Raises StaleEventError on a version mismatch, EventNotFoundError if gone.
        """
        ...

    async def delete(self, event_id: str) -> bool: ...


class BanRepository(Protocol):
    async def list_all(self) -> list[BannedUser]: ...

    async def list_for_cid(self, vatsim_cid: str) -> list[BannedUser]: ...

    async def create(self, ban: BannedUser) -> BannedUser: ...

    async def delete(self, ban_id: str) -> bool: ...


class BanGate(Protocol):
    async def is_banned(self, vatsim_cid: str) -> bool: ...
