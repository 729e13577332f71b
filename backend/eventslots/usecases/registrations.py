from datetime import datetime
from typing import Optional

from ..domain.entities import Registration, RegistrationDraft, RegistrationStatus
from ..domain.repositories import BanGate
from .ledger import EventLedger


async def register(
    ledger: EventLedger,
    ban_gate: BanGate,
    *,
    event_id: str,
    draft: RegistrationDraft,
    now: Optional[datetime] = None,
) -> Registration:
    """
    Admit a registration for one slot. Availability and capacity are checked
    against the event as stored at commit time, never against what the client saw.
    """
    banned = await ban_gate.is_banned(draft.vatsim_cid)
    return await ledger.commit_registration(event_id, draft, registrant_banned=banned, now=now)


async def change_registration_status(
    ledger: EventLedger,
    *,
    event_id: str,
    registration_id: str,
    status: RegistrationStatus,
) -> tuple[Registration, RegistrationStatus]:
    return await ledger.set_registration_status(event_id, registration_id, status)
