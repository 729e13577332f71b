from dataclasses import replace
from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import AsyncIterator

import pytest
import pytest_asyncio
from eventslots.domain.entities import (
    BannedUser,
    Event,
    EventStatus,
    Registration,
    RegistrationDraft,
    RegistrationStatus,
    Route,
)
from eventslots.domain.errors import EventNotFoundError, StaleEventError
from eventslots.infrastructure.cache import EventCache
from eventslots.infrastructure.repositories import SqlAlchemyBanRepository, SqlAlchemyEventRepository
from eventslots.models import Base, RegistrationRow
from eventslots.usecases.ledger import EventLedger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

CREATED = datetime(2025, 6, 1, 8, 30, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def session_factory(tmp_path: Path) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'events.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    finally:
        await engine.dispose()


def _registration(selected_time: str, cid: str) -> Registration:
    return Registration(
        id=f"reg{cid}",
        event_id="evt1",
        name="Jane Pilot",
        vatsim_cid=cid,
        email=f"{cid}@example.com",
        aircraft_type="A320",
        route="OBOKA UZ29 TORNO",
        selected_time=selected_time,
        registered_at=CREATED,
        notes="heavy",
    )


def _event(registrations: tuple[Registration, ...] = ()) -> Event:
    return Event(
        id="evt1",
        title="Frankfurt Fun",
        description="Summer shuttle",
        date=date(2025, 6, 14),
        start_time=time(6, 0),
        end_time=time(7, 30),
        slot_duration_minutes=30,
        route=Route(origin_icao="EDDF", destination_icao="LEPA", aircraft="A320", flight_level="310"),
        status=EventStatus.UPCOMING,
        created_at=CREATED,
        total_slots=3,
        available_slots=3 - len(registrations),
        location="Frankfurt Main",
        image_url="/images/eddf.jpg",
        registrations=registrations,
    )


def _draft(selected_time: str, cid: str) -> RegistrationDraft:
    return RegistrationDraft(
        name="Jane Pilot",
        vatsim_cid=cid,
        email=f"{cid}@example.com",
        aircraft_type="A320",
        route="OBOKA UZ29 TORNO",
        selected_time=selected_time,
    )


async def _registration_rows(session_factory: async_sessionmaker[AsyncSession]) -> int:
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(RegistrationRow)) or 0


@pytest.mark.asyncio
async def test_create_and_get_round_trip(session_factory: async_sessionmaker[AsyncSession]) -> None:
    repo = SqlAlchemyEventRepository(session_factory)
    event = _event((_registration("06:00Z", "1000001"),))
    await repo.create(event)

    assert await repo.get("evt1") == event
    assert [e.id for e in await repo.list_all()] == ["evt1"]
    assert await repo.get("missing") is None


@pytest.mark.asyncio
async def test_update_requires_matching_version(session_factory: async_sessionmaker[AsyncSession]) -> None:
    repo = SqlAlchemyEventRepository(session_factory)
    await repo.create(_event())

    stored = await repo.update(replace(_event(), title="First"), expected_version=1)
    assert stored.version == 2
    with pytest.raises(StaleEventError):
        await repo.update(replace(_event(), title="Second"), expected_version=1)

    current = await repo.get("evt1")
    assert current is not None
    assert current.title == "First"
    assert current.version == 2


@pytest.mark.asyncio
async def test_update_missing_event(session_factory: async_sessionmaker[AsyncSession]) -> None:
    repo = SqlAlchemyEventRepository(session_factory)
    with pytest.raises(EventNotFoundError):
        await repo.update(_event(), expected_version=1)


@pytest.mark.asyncio
async def test_update_rewrites_registrations_with_counter(
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    repo = SqlAlchemyEventRepository(session_factory)
    await repo.create(_event((_registration("06:00Z", "1000001"),)))

    rewritten = _event((_registration("06:30Z", "1000002"), _registration("07:00Z", "1000003")))
    await repo.update(rewritten, expected_version=1)

    current = await repo.get("evt1")
    assert current is not None
    assert [r.selected_time for r in current.registrations] == ["06:30Z", "07:00Z"]
    assert current.available_slots == 1
    assert await _registration_rows(session_factory) == 2


@pytest.mark.asyncio
async def test_ledger_cancel_and_rebook_on_sql_store(session_factory: async_sessionmaker[AsyncSession]) -> None:
    repo = SqlAlchemyEventRepository(session_factory)
    ledger = EventLedger(repo, EventCache(ttl_seconds=0))
    await repo.create(_event())

    first = await ledger.commit_registration("evt1", _draft("06:00Z", "1000001"), registrant_banned=False)
    await ledger.commit_registration("evt1", _draft("06:30Z", "1000002"), registrant_banned=False)
    await ledger.set_registration_status("evt1", first.id, RegistrationStatus.CANCELLED)
    await ledger.commit_registration("evt1", _draft("06:00Z", "1000003"), registrant_banned=False)

    current = await repo.get("evt1")
    assert current is not None
    assert current.version == 5
    assert current.available_slots == 1
    assert [(r.selected_time, r.status) for r in current.registrations] == [
        ("06:00Z", RegistrationStatus.CANCELLED),
        ("06:30Z", RegistrationStatus.PENDING),
        ("06:00Z", RegistrationStatus.PENDING),
    ]
    assert await ledger.get_available_slots("evt1") == ["07:00Z"]


@pytest.mark.asyncio
async def test_delete_removes_event_and_registrations(session_factory: async_sessionmaker[AsyncSession]) -> None:
    repo = SqlAlchemyEventRepository(session_factory)
    await repo.create(_event((_registration("06:00Z", "1000001"),)))

    assert await repo.delete("evt1") is True
    assert await repo.delete("evt1") is False
    assert await repo.get("evt1") is None
    assert await _registration_rows(session_factory) == 0


@pytest.mark.asyncio
async def test_ban_repository_round_trip(session_factory: async_sessionmaker[AsyncSession]) -> None:
    repo = SqlAlchemyBanRepository(session_factory)
    ban = BannedUser(
        id="ban1",
        vatsim_cid="1234567",
        reason="no show",
        banned_at=CREATED,
        banned_until=datetime(2025, 7, 1, tzinfo=timezone.utc),
    )
    await repo.create(ban)

    assert await repo.list_for_cid("1234567") == [ban]
    assert await repo.list_for_cid("7654321") == []
    assert await repo.delete("ban1") is True
    assert await repo.list_all() == []
