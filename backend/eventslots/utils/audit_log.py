from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Mapping, Optional

from .request_id import get_request_id

AuditAction = Literal[
    "event.created",
    "event.updated",
    "event.deleted",
    "event.status_changed",
    "registration.created",
    "registration.status_changed",
    "ban.created",
    "ban.removed",
]
AuditInitiator = Literal["registrant", "admin", "system"]


def _build_audit_logger() -> logging.Logger:
    logger = logging.getLogger("audit")
    logger.setLevel(logging.INFO)
    logger.propagate = False
    if not logger.handlers:
        stream = logging.StreamHandler()
        stream.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(stream)
    return logger


_audit_logger = _build_audit_logger()


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def emit_audit_log(
    *,
    action: AuditAction,
    initiator: AuditInitiator,
    event_id: Optional[str],
    registration_id: Optional[str] = None,
    vatsim_cid: Optional[str] = None,
    selected_time: Optional[str] = None,
    status_from: Any = None,
    status_to: Any = None,
    available_slots: Optional[int] = None,
    message: Optional[str] = None,
    extra: Optional[Mapping[str, Any]] = None,
) -> None:
    """
    Write one JSON line to the ``audit`` logger for a committed mutation.

    Unset fields are left out. A failed write is re-raised as ``RuntimeError``.
    """
    fields = {
        "event_id": event_id,
        "registration_id": registration_id,
        "vatsim_cid": vatsim_cid,
        "selected_time": selected_time,
        "status_from": _plain(status_from),
        "status_to": _plain(status_to),
        "available_slots": available_slots,
        "message": message,
        **(extra or {}),
    }
    record = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "action": action,
        "initiator": initiator,
        "request_id": get_request_id(),
        **fields,
    }
    line = json.dumps(
        {key: value for key, value in record.items() if value is not None},
        separators=(",", ":"),
        default=str,
    )
    try:
        _audit_logger.info(line)
    except Exception as exc:
        raise RuntimeError(f"audit log write failed for {action}") from exc
