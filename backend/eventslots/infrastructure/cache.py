from __future__ import annotations

import time
from typing import Callable

from ..domain.entities import Event


class EventCache:
    """
    Read cache for events, written through by the ledger after confirmed writes.

    Entries older than ``ttl_seconds`` are stale and ignored. The full listing is
    served only when a complete load happened within the TTL; single-entry puts
    keep an existing fresh listing current but never create one.
    """

    def __init__(self, ttl_seconds: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, Event]] = {}
        self._listing_loaded_at: float | None = None

    def _fresh(self, stamp: float) -> bool:
        return self._clock() - stamp < self.ttl_seconds

    def get(self, event_id: str) -> Event | None:
        entry = self._entries.get(event_id)
        if entry is None or not self._fresh(entry[0]):
            return None
        return entry[1]

    def all(self) -> list[Event] | None:
        if self._listing_loaded_at is None or not self._fresh(self._listing_loaded_at):
            return None
        return [event for _, event in self._entries.values()]

    def put(self, event: Event) -> None:
        self._entries[event.id] = (self._clock(), event)

    def replace_all(self, events: list[Event]) -> None:
        now = self._clock()
        self._entries = {event.id: (now, event) for event in events}
        self._listing_loaded_at = now

    def evict(self, event_id: str) -> None:
        self._entries.pop(event_id, None)

    def invalidate(self) -> None:
        self._entries.clear()
        self._listing_loaded_at = None
