from dataclasses import dataclass

from ..domain.slots import available_slot_labels, event_slots
from .ledger import EventLedger


@dataclass(frozen=True)
class SlotAvailability:
    event_id: str
    slots: list[str]
    available: list[str]
    available_slots: int
    total_slots: int


async def list_availability(ledger: EventLedger, *, event_id: str) -> SlotAvailability:
    event = await ledger.get_event(event_id)
    return SlotAvailability(
        event_id=event.id,
        slots=event_slots(event),
        available=available_slot_labels(event),
        available_slots=event.available_slots,
        total_slots=event.total_slots,
    )
