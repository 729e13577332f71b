from __future__ import annotations

from contextvars import ContextVar
from uuid import uuid4

REQUEST_ID_HEADER = "X-Request-ID"

_current_request_id: ContextVar[str | None] = ContextVar("eventslots_request_id", default=None)


def generate_request_id() -> str:
    return uuid4().hex


def set_request_id(request_id: str | None) -> None:
    _current_request_id.set(request_id)


def get_request_id() -> str | None:
    """Request id of the HTTP request being served, if any."""
    return _current_request_id.get()
