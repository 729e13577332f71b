from functools import lru_cache

from fastapi import Depends, Header, HTTPException, status

from .config import Settings, get_settings
from .database import get_sessionmaker
from .domain.repositories import BanRepository, EventRepository
from .infrastructure.cache import EventCache
from .infrastructure.memory import InMemoryBanRepository, InMemoryEventRepository
from .infrastructure.repositories import SqlAlchemyBanRepository, SqlAlchemyEventRepository
from .usecases.bans import BanRegistry
from .usecases.ledger import EventLedger
from .utils.auth import decode_access_token


@lru_cache
def get_event_repository() -> EventRepository:
    if get_settings().store_backend == "memory":
        return InMemoryEventRepository()
    return SqlAlchemyEventRepository(get_sessionmaker())


@lru_cache
def get_ban_repository() -> BanRepository:
    if get_settings().store_backend == "memory":
        return InMemoryBanRepository()
    return SqlAlchemyBanRepository(get_sessionmaker())


@lru_cache
def get_ledger() -> EventLedger:
    settings = get_settings()
    return EventLedger(
        get_event_repository(),
        EventCache(settings.event_cache_ttl_seconds),
        commit_attempts=settings.commit_attempts,
        default_total_slots=settings.default_total_slots,
        default_slot_duration_minutes=settings.default_slot_duration_minutes,
    )


@lru_cache
def get_ban_registry() -> BanRegistry:
    return BanRegistry(get_ban_repository())


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_admin(
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> str:
    if not settings.auth_secret:
        raise _unauthorized("admin access is disabled")
    if authorization is None:
        raise _unauthorized("Authorization header required")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise _unauthorized("Bearer token required")
    try:
        return decode_access_token(
            token.strip(),
            secret=settings.auth_secret,
            algorithms=[settings.auth_algorithm],
        )
    except ValueError as exc:
        raise _unauthorized("invalid token") from exc
