from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException, Response, status

from ..deps import get_current_admin, get_ledger
from ..domain.entities import EventDraft, Route
from ..domain.errors import DomainError
from ..schemas import EventCreate, EventRead, EventStatusUpdate, EventUpdate, SlotsRead
from ..usecases import slots as slot_usecase
from ..usecases.ledger import EventLedger
from ..utils.audit_log import emit_audit_log
from .errors import to_http_exception

router = APIRouter(prefix="/events", tags=["events"])

_NULLABLE_FIELDS = frozenset({"flight_level", "estimated_duration", "image_url"})


def _audit(**kwargs: Any) -> None:
    try:
        emit_audit_log(**kwargs)
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed") from exc


@router.get("", response_model=List[EventRead])
async def list_events(ledger: EventLedger = Depends(get_ledger)) -> list[EventRead]:
    try:
        events = await ledger.list_events()
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return [EventRead.from_domain(event) for event in events]


@router.get("/{event_id}", response_model=EventRead)
async def get_event(event_id: str, ledger: EventLedger = Depends(get_ledger)) -> EventRead:
    try:
        event = await ledger.get_event(event_id)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return EventRead.from_domain(event)


@router.get("/{event_id}/slots", response_model=SlotsRead)
async def get_available_slots(event_id: str, ledger: EventLedger = Depends(get_ledger)) -> SlotsRead:
    try:
        availability = await slot_usecase.list_availability(ledger, event_id=event_id)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return SlotsRead.from_usecase(availability)


@router.post("", response_model=EventRead, status_code=status.HTTP_201_CREATED)
async def create_event(
    payload: EventCreate,
    ledger: EventLedger = Depends(get_ledger),
    admin: str = Depends(get_current_admin),
) -> EventRead:
    draft = EventDraft(
        title=payload.title,
        description=payload.description,
        location=payload.location,
        image_url=payload.image_url,
        date=payload.date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        slot_duration_minutes=payload.slot_duration_minutes,
        total_slots=payload.total_slots,
        route=Route(
            origin_icao=payload.origin_icao,
            destination_icao=payload.destination_icao,
            aircraft=payload.aircraft,
            flight_level=payload.flight_level,
            estimated_duration=payload.estimated_duration,
        ),
    )
    try:
        event = await ledger.create_event(draft)
    except DomainError as exc:
        raise to_http_exception(exc) from exc

    _audit(
        action="event.created",
        initiator="admin",
        event_id=event.id,
        status_to=event.status,
        available_slots=event.available_slots,
        extra={"admin": admin},
    )
    return EventRead.from_domain(event)


@router.patch("/{event_id}", response_model=EventRead)
async def update_event(
    event_id: str,
    payload: EventUpdate,
    ledger: EventLedger = Depends(get_ledger),
    admin: str = Depends(get_current_admin),
) -> EventRead:
    changes = {
        key: value
        for key, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or key in _NULLABLE_FIELDS
    }
    try:
        event = await ledger.update_event(event_id, changes)
    except DomainError as exc:
        raise to_http_exception(exc) from exc

    _audit(
        action="event.updated",
        initiator="admin",
        event_id=event.id,
        available_slots=event.available_slots,
        extra={"admin": admin, "fields": sorted(changes)},
    )
    return EventRead.from_domain(event)


@router.post("/{event_id}/status", response_model=EventRead)
async def set_event_status(
    event_id: str,
    payload: EventStatusUpdate,
    ledger: EventLedger = Depends(get_ledger),
    admin: str = Depends(get_current_admin),
) -> EventRead:
    try:
        previous = await ledger.get_event(event_id)
        event = await ledger.set_event_status(event_id, payload.status)
    except DomainError as exc:
        raise to_http_exception(exc) from exc

    _audit(
        action="event.status_changed",
        initiator="admin",
        event_id=event.id,
        status_from=previous.status,
        status_to=event.status,
        extra={"admin": admin},
    )
    return EventRead.from_domain(event)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_id: str,
    ledger: EventLedger = Depends(get_ledger),
    admin: str = Depends(get_current_admin),
) -> Response:
    try:
        await ledger.delete_event(event_id)
    except DomainError as exc:
        raise to_http_exception(exc) from exc

    _audit(action="event.deleted", initiator="admin", event_id=event_id, extra={"admin": admin})
    return Response(status_code=status.HTTP_204_NO_CONTENT)
