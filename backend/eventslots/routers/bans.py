from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status

from ..deps import get_ban_registry, get_current_admin
from ..domain.errors import DomainError
from ..schemas import BanCreate, BanRead
from ..usecases.bans import BanRegistry
from ..utils.audit_log import emit_audit_log
from .errors import to_http_exception

router = APIRouter(prefix="/bans", tags=["bans"], dependencies=[Depends(get_current_admin)])


@router.get("", response_model=List[BanRead])
async def list_bans(registry: BanRegistry = Depends(get_ban_registry)) -> list[BanRead]:
    try:
        bans = await registry.list_bans()
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return [BanRead.from_domain(ban) for ban in bans]


@router.post("", response_model=BanRead, status_code=status.HTTP_201_CREATED)
async def ban_user(payload: BanCreate, registry: BanRegistry = Depends(get_ban_registry)) -> BanRead:
    try:
        ban = await registry.ban_user(
            vatsim_cid=payload.vatsim_cid,
            reason=payload.reason,
            name=payload.name,
            email=payload.email,
            banned_until=payload.banned_until,
        )
        emit_audit_log(
            action="ban.created",
            initiator="admin",
            event_id=None,
            vatsim_cid=ban.vatsim_cid,
            extra={"ban_id": ban.id},
        )
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed") from exc
    return BanRead.from_domain(ban)


@router.delete("/{ban_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unban_user(ban_id: str, registry: BanRegistry = Depends(get_ban_registry)) -> Response:
    try:
        await registry.unban_user(ban_id)
        emit_audit_log(action="ban.removed", initiator="admin", event_id=None, extra={"ban_id": ban_id})
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed") from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
