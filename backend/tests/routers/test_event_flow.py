from typing import Any, AsyncIterator

import pytest
import pytest_asyncio
from eventslots.config import Settings, get_settings
from eventslots.deps import get_ban_registry, get_ledger
from eventslots.infrastructure.cache import EventCache
from eventslots.infrastructure.memory import InMemoryBanRepository, InMemoryEventRepository
from eventslots.main import app
from eventslots.routers import bans as bans_router
from eventslots.routers import events as events_router
from eventslots.routers import registrations as registrations_router
from eventslots.usecases.bans import BanRegistry
from eventslots.usecases.ledger import EventLedger
from httpx import ASGITransport, AsyncClient

EVENT_BODY = {
    "title": "Frankfurt Fun",
    "description": "Summer shuttle",
    "date": "2025-06-14",
    "start_time": "06:00Z",
    "end_time": "07:30Z",
    "slot_duration_minutes": "30",
    "total_slots": 3,
    "origin_icao": "eddf",
    "destination_icao": "lepa",
    "aircraft": "A320",
    "location": "Frankfurt Main",
    "image_url": "/images/eddf.jpg",
}


def _registration_body(selected_time: str, cid: str = "1234567") -> dict[str, Any]:
    return {
        "name": "Jane Pilot",
        "vatsim_cid": cid,
        "email": f"{cid}@example.com",
        "aircraft_type": "A320",
        "route": "OBOKA UZ29 TORNO",
        "selected_time": selected_time,
    }


@pytest.fixture
def audit_calls(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    calls: list[dict[str, Any]] = []

    def fake_emit(**kwargs: Any) -> None:
        calls.append(kwargs)

    monkeypatch.setattr(events_router, "emit_audit_log", fake_emit)
    monkeypatch.setattr(registrations_router, "emit_audit_log", fake_emit)
    monkeypatch.setattr(bans_router, "emit_audit_log", fake_emit)
    return calls


@pytest_asyncio.fixture
async def client() -> AsyncIterator[AsyncClient]:
    settings = Settings(auth_secret="testsecret", admin_username="ops", admin_password="pw")
    ledger = EventLedger(InMemoryEventRepository(), EventCache(ttl_seconds=30))
    registry = BanRegistry(InMemoryBanRepository())
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_ledger] = lambda: ledger
    app.dependency_overrides[get_ban_registry] = lambda: registry
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


async def _admin_headers(client: AsyncClient) -> dict[str, str]:
    resp = await client.post("/admin/login", json={"username": "ops", "password": "pw"})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


async def _create_event(client: AsyncClient) -> dict[str, Any]:
    resp = await client.post("/events", json=EVENT_BODY, headers=await _admin_headers(client))
    assert resp.status_code == 201
    return resp.json()


@pytest.mark.asyncio
async def test_login_rejects_wrong_password(client: AsyncClient) -> None:
    resp = await client.post("/admin/login", json={"username": "ops", "password": "nope"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_create_event_requires_admin(client: AsyncClient, audit_calls: list[dict[str, Any]]) -> None:
    resp = await client.post("/events", json=EVENT_BODY)
    assert resp.status_code == 401
    assert audit_calls == []


@pytest.mark.asyncio
async def test_create_event_and_list_slots(client: AsyncClient, audit_calls: list[dict[str, Any]]) -> None:
    event = await _create_event(client)

    assert event["origin_icao"] == "EDDF"
    assert event["start_time"] == "06:00Z"
    assert event["slot_duration_minutes"] == 30
    assert event["available_slots"] == 3
    assert event["location"] == "Frankfurt Main"
    assert event["image_url"] == "/images/eddf.jpg"
    assert event["status"] == "upcoming"
    assert audit_calls[0]["action"] == "event.created"
    assert audit_calls[0]["extra"] == {"admin": "ops"}

    resp = await client.get(f"/events/{event['event_id']}/slots")
    assert resp.status_code == 200
    assert resp.json()["available"] == ["06:00Z", "06:30Z", "07:00Z"]


@pytest.mark.asyncio
async def test_create_event_with_empty_window_is_rejected(client: AsyncClient, audit_calls: list[dict[str, Any]]) -> None:
    body = {**EVENT_BODY, "end_time": "05:00Z"}
    resp = await client.post("/events", json=body, headers=await _admin_headers(client))
    assert resp.status_code == 422
    assert resp.json()["detail"]["code"] == "invalid_window"


@pytest.mark.asyncio
async def test_register_then_duplicate_slot_conflicts(client: AsyncClient, audit_calls: list[dict[str, Any]]) -> None:
    event = await _create_event(client)
    url = f"/events/{event['event_id']}/registrations"

    resp = await client.post(url, json=_registration_body("06:30", "1000001"))
    assert resp.status_code == 201
    body = resp.json()
    assert body["selected_time"] == "06:30Z"
    assert body["status"] == "pending"
    assert audit_calls[-1]["action"] == "registration.created"

    resp = await client.post(url, json=_registration_body("06:30Z", "1000002"))
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "slot_unavailable"

    resp = await client.get(f"/events/{event['event_id']}")
    assert resp.json()["available_slots"] == 2


@pytest.mark.asyncio
async def test_register_for_unknown_event_is_404(client: AsyncClient, audit_calls: list[dict[str, Any]]) -> None:
    resp = await client.post("/events/missing/registrations", json=_registration_body("06:00"))
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "event_not_found"


@pytest.mark.asyncio
async def test_banned_pilot_is_forbidden(client: AsyncClient, audit_calls: list[dict[str, Any]]) -> None:
    event = await _create_event(client)
    headers = await _admin_headers(client)
    resp = await client.post("/bans", json={"vatsim_cid": "1234567", "reason": "no show"}, headers=headers)
    assert resp.status_code == 201
    ban_id = resp.json()["ban_id"]

    url = f"/events/{event['event_id']}/registrations"
    resp = await client.post(url, json=_registration_body("06:00"))
    assert resp.status_code == 403
    assert resp.json()["detail"]["code"] == "registrant_banned"

    resp = await client.delete(f"/bans/{ban_id}", headers=headers)
    assert resp.status_code == 204
    resp = await client.post(url, json=_registration_body("06:00"))
    assert resp.status_code == 201


@pytest.mark.asyncio
async def test_registration_status_change_is_audited_once(
    client: AsyncClient, audit_calls: list[dict[str, Any]]
) -> None:
    event = await _create_event(client)
    headers = await _admin_headers(client)
    resp = await client.post(f"/events/{event['event_id']}/registrations", json=_registration_body("07:00"))
    registration_id = resp.json()["registration_id"]
    url = f"/events/{event['event_id']}/registrations/{registration_id}/status"

    resp = await client.post(url, json={"status": "cancelled"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"
    resp = await client.post(url, json={"status": "cancelled"}, headers=headers)
    assert resp.status_code == 200
    status_changes = [c for c in audit_calls if c["action"] == "registration.status_changed"]
    assert len(status_changes) == 1

    resp = await client.post(url, json={"status": "confirmed"}, headers=headers)
    assert resp.status_code == 422
    assert resp.json()["detail"]["code"] == "invalid_status_transition"

    resp = await client.get(f"/events/{event['event_id']}/slots")
    assert "07:00Z" in resp.json()["available"]


@pytest.mark.asyncio
async def test_audit_failure_returns_500(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
    def broken_emit(**kwargs: Any) -> None:
        raise RuntimeError("log failed")

    monkeypatch.setattr(events_router, "emit_audit_log", broken_emit)
    resp = await client.post("/events", json=EVENT_BODY, headers=await _admin_headers(client))
    assert resp.status_code == 500


@pytest.mark.asyncio
async def test_patch_ignores_client_supplied_counter(client: AsyncClient, audit_calls: list[dict[str, Any]]) -> None:
    event = await _create_event(client)
    resp = await client.patch(
        f"/events/{event['event_id']}",
        json={"available_slots": 99, "total_slots": 5, "title": "Renamed"},
        headers=await _admin_headers(client),
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["title"] == "Renamed"
    assert body["total_slots"] == 5
    assert body["available_slots"] == 5


@pytest.mark.asyncio
async def test_delete_event(client: AsyncClient, audit_calls: list[dict[str, Any]]) -> None:
    event = await _create_event(client)
    headers = await _admin_headers(client)
    resp = await client.delete(f"/events/{event['event_id']}", headers=headers)
    assert resp.status_code == 204
    resp = await client.get(f"/events/{event['event_id']}")
    assert resp.status_code == 404
    resp = await client.delete(f"/events/{event['event_id']}", headers=headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_health(client: AsyncClient) -> None:
    resp = await client.get("/health")
    assert resp.json() == {"status": "ok"}
