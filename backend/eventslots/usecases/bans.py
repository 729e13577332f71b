from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional
from uuid import uuid4

from ..domain.entities import BannedUser
from ..domain.errors import BanNotFoundError
from ..domain.repositories import BanGate, BanRepository
from ..utils.time import utc_now


class BanRegistry(BanGate):
    def __init__(self, repository: BanRepository, *, clock: Callable[[], datetime] = utc_now) -> None:
        self.repository = repository
        self._clock = clock

    async def is_banned(self, vatsim_cid: str) -> bool:
        """A ban without expiry is permanent; otherwise it holds until ``banned_until``."""
        now = self._clock()
        bans = await self.repository.list_for_cid(vatsim_cid)
        return any(ban.is_active(now) for ban in bans)

    async def list_bans(self) -> list[BannedUser]:
        return await self.repository.list_all()

    async def ban_user(
        self,
        *,
        vatsim_cid: str,
        reason: str,
        name: str = "",
        email: str = "",
        banned_until: Optional[datetime] = None,
    ) -> BannedUser:
        ban = BannedUser(
            id=uuid4().hex,
            vatsim_cid=vatsim_cid,
            name=name,
            email=email,
            reason=reason,
            banned_at=self._clock(),
            banned_until=banned_until,
        )
        return await self.repository.create(ban)

    async def unban_user(self, ban_id: str) -> None:
        if not await self.repository.delete(ban_id):
            raise BanNotFoundError("ban not found")
