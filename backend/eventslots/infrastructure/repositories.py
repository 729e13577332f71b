from __future__ import annotations

from dataclasses import replace
from typing import Any, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..domain.entities import BannedUser, Event, Registration, Route
from ..domain.errors import EventNotFoundError, PersistenceError, StaleEventError
from ..domain.repositories import BanRepository, EventRepository
from ..models import BannedUserRow, EventRow, RegistrationRow
from ..utils.time import to_utc_naive, utc_naive_to_aware


class SqlAlchemyEventRepository(EventRepository):
    """Each call runs in its own session; writes are single transactions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def list_all(self) -> List[Event]:
        stmt = select(EventRow).order_by(EventRow.date, EventRow.start_time, EventRow.created_at)
        try:
            async with self.session_factory() as session:
                rows = (await session.scalars(stmt)).all()
                return [_to_event(row) for row in rows]
        except SQLAlchemyError as exc:
            raise PersistenceError("failed to load events") from exc

    async def get(self, event_id: str) -> Optional[Event]:
        try:
            async with self.session_factory() as session:
                row = await session.scalar(select(EventRow).where(EventRow.id == event_id))
                return _to_event(row) if isinstance(row, EventRow) else None
        except SQLAlchemyError as exc:
            raise PersistenceError("failed to load event") from exc

    async def create(self, event: Event) -> Event:
        row = EventRow(id=event.id, version=event.version, **_event_values(event))
        row.registrations = [_to_registration_row(r, i) for i, r in enumerate(event.registrations)]
        try:
            async with self.session_factory.begin() as session:
                session.add(row)
        except SQLAlchemyError as exc:
            raise PersistenceError("failed to create event") from exc
        return event

    async def update(self, event: Event, *, expected_version: int) -> Event:
        stmt = (
            update(EventRow)
            .where(EventRow.id == event.id, EventRow.version == expected_version)
            .values(version=expected_version + 1, **_event_values(event))
            .execution_options(synchronize_session=False)
        )
        try:
            async with self.session_factory.begin() as session:
                result = await session.execute(stmt)
                if result.rowcount == 0:
                    exists = await session.scalar(select(EventRow.id).where(EventRow.id == event.id))
                    if exists is None:
                        raise EventNotFoundError(event.id)
                    raise StaleEventError(f"event {event.id} changed concurrently")
                # Registrations are rewritten in the same transaction as the counter.
                await session.execute(delete(RegistrationRow).where(RegistrationRow.event_id == event.id))
                for position, registration in enumerate(event.registrations):
                    session.add(_to_registration_row(registration, position))
        except SQLAlchemyError as exc:
            raise PersistenceError("failed to update event") from exc
        return replace(event, version=expected_version + 1)

    async def delete(self, event_id: str) -> bool:
        try:
            async with self.session_factory.begin() as session:
                await session.execute(delete(RegistrationRow).where(RegistrationRow.event_id == event_id))
                result = await session.execute(delete(EventRow).where(EventRow.id == event_id))
                return result.rowcount > 0
        except SQLAlchemyError as exc:
            raise PersistenceError("failed to delete event") from exc


class SqlAlchemyBanRepository(BanRepository):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def list_all(self) -> List[BannedUser]:
        try:
            async with self.session_factory() as session:
                rows = (await session.scalars(select(BannedUserRow).order_by(BannedUserRow.banned_at))).all()
                return [_to_ban(row) for row in rows]
        except SQLAlchemyError as exc:
            raise PersistenceError("failed to load bans") from exc

    async def list_for_cid(self, vatsim_cid: str) -> List[BannedUser]:
        stmt = select(BannedUserRow).where(BannedUserRow.vatsim_cid == vatsim_cid)
        try:
            async with self.session_factory() as session:
                return [_to_ban(row) for row in (await session.scalars(stmt)).all()]
        except SQLAlchemyError as exc:
            raise PersistenceError("failed to load bans") from exc

    async def create(self, ban: BannedUser) -> BannedUser:
        row = BannedUserRow(
            id=ban.id,
            vatsim_cid=ban.vatsim_cid,
            name=ban.name,
            email=ban.email,
            reason=ban.reason,
            banned_at=to_utc_naive(ban.banned_at),
            banned_until=to_utc_naive(ban.banned_until) if ban.banned_until else None,
        )
        try:
            async with self.session_factory.begin() as session:
                session.add(row)
        except SQLAlchemyError as exc:
            raise PersistenceError("failed to create ban") from exc
        return ban

    async def delete(self, ban_id: str) -> bool:
        try:
            async with self.session_factory.begin() as session:
                result = await session.execute(delete(BannedUserRow).where(BannedUserRow.id == ban_id))
                return result.rowcount > 0
        except SQLAlchemyError as exc:
            raise PersistenceError("failed to delete ban") from exc


def _event_values(event: Event) -> dict[str, Any]:
    return {
        "title": event.title,
        "description": event.description,
        "location": event.location,
        "image_url": event.image_url,
        "date": event.date,
        "start_time": event.start_time,
        "end_time": event.end_time,
        "slot_duration_minutes": event.slot_duration_minutes,
        "origin_icao": event.route.origin_icao,
        "destination_icao": event.route.destination_icao,
        "aircraft": event.route.aircraft,
        "flight_level": event.route.flight_level,
        "estimated_duration": event.route.estimated_duration,
        "status": event.status,
        "total_slots": event.total_slots,
        "available_slots": event.available_slots,
        "created_at": to_utc_naive(event.created_at),
    }


def _to_event(row: EventRow) -> Event:
    return Event(
        id=row.id,
        title=row.title,
        description=row.description,
        location=row.location,
        image_url=row.image_url,
        date=row.date,
        start_time=row.start_time,
        end_time=row.end_time,
        slot_duration_minutes=row.slot_duration_minutes,
        route=Route(
            origin_icao=row.origin_icao,
            destination_icao=row.destination_icao,
            aircraft=row.aircraft,
            flight_level=row.flight_level,
            estimated_duration=row.estimated_duration,
        ),
        status=row.status,
        created_at=utc_naive_to_aware(row.created_at),
        total_slots=row.total_slots,
        available_slots=row.available_slots,
        registrations=tuple(_to_registration(r) for r in row.registrations),
        version=row.version,
    )


def _to_registration_row(registration: Registration, position: int) -> RegistrationRow:
    return RegistrationRow(
        id=registration.id,
        event_id=registration.event_id,
        position=position,
        name=registration.name,
        vatsim_cid=registration.vatsim_cid,
        email=registration.email,
        aircraft_type=registration.aircraft_type,
        route=registration.route,
        notes=registration.notes,
        selected_time=registration.selected_time,
        status=registration.status,
        registered_at=to_utc_naive(registration.registered_at),
    )


def _to_registration(row: RegistrationRow) -> Registration:
    return Registration(
        id=row.id,
        event_id=row.event_id,
        name=row.name,
        vatsim_cid=row.vatsim_cid,
        email=row.email,
        aircraft_type=row.aircraft_type,
        route=row.route,
        notes=row.notes,
        selected_time=row.selected_time,
        registered_at=utc_naive_to_aware(row.registered_at),
        status=row.status,
    )


def _to_ban(row: BannedUserRow) -> BannedUser:
    return BannedUser(
        id=row.id,
        vatsim_cid=row.vatsim_cid,
        name=row.name,
        email=row.email,
        reason=row.reason,
        banned_at=utc_naive_to_aware(row.banned_at),
        banned_until=utc_naive_to_aware(row.banned_until) if row.banned_until else None,
    )
