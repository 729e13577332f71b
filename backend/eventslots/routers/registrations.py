from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status

from ..deps import get_ban_registry, get_current_admin, get_ledger
from ..domain.errors import DomainError
from ..schemas import RegistrationCreate, RegistrationRead, RegistrationStatusUpdate
from ..usecases import registrations as registration_usecase
from ..usecases.bans import BanRegistry
from ..usecases.ledger import EventLedger
from ..utils.audit_log import emit_audit_log
from .errors import to_http_exception

router = APIRouter(prefix="/events", tags=["registrations"])


def _audit(**kwargs: Any) -> None:
    try:
        emit_audit_log(**kwargs)
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed") from exc


@router.post(
    "/{event_id}/registrations",
    response_model=RegistrationRead,
    status_code=status.HTTP_201_CREATED,
)
async def submit_registration(
    event_id: str,
    payload: RegistrationCreate,
    ledger: EventLedger = Depends(get_ledger),
    ban_gate: BanRegistry = Depends(get_ban_registry),
) -> RegistrationRead:
    try:
        registration = await registration_usecase.register(
            ledger,
            ban_gate,
            event_id=event_id,
            draft=payload.to_draft(),
        )
    except DomainError as exc:
        raise to_http_exception(exc) from exc

    _audit(
        action="registration.created",
        initiator="registrant",
        event_id=event_id,
        registration_id=registration.id,
        vatsim_cid=registration.vatsim_cid,
        selected_time=registration.selected_time,
        status_to=registration.status,
    )
    return RegistrationRead.from_domain(registration)


@router.post("/{event_id}/registrations/{registration_id}/status", response_model=RegistrationRead)
async def set_registration_status(
    event_id: str,
    registration_id: str,
    payload: RegistrationStatusUpdate,
    ledger: EventLedger = Depends(get_ledger),
    admin: str = Depends(get_current_admin),
) -> RegistrationRead:
    try:
        registration, previous = await registration_usecase.change_registration_status(
            ledger,
            event_id=event_id,
            registration_id=registration_id,
            status=payload.status,
        )
    except DomainError as exc:
        raise to_http_exception(exc) from exc

    if previous != registration.status:
        _audit(
            action="registration.status_changed",
            initiator="admin",
            event_id=event_id,
            registration_id=registration.id,
            vatsim_cid=registration.vatsim_cid,
            selected_time=registration.selected_time,
            status_from=previous,
            status_to=registration.status,
            extra={"admin": admin},
        )
    return RegistrationRead.from_domain(registration)
