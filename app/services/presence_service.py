"""접속 상태 서비스 — user-online / user-offline 브로드캐스트.

Presence Service — Best-effort, at-most-once online/offline broadcasts to
the company channel, plus the online snapshot.
"""

import logging
from uuid import UUID

from app.realtime.registry import ConnectionRegistry, Principal, company_channel
from app.realtime.router import ChannelRouter

logger = logging.getLogger(__name__)


class PresenceService:
    """접속 상태 서비스."""

    def __init__(self, registry: ConnectionRegistry, router: ChannelRouter) -> None:
        self._registry = registry
        self._router = router

    @staticmethod
    def _payload(principal: Principal) -> dict[str, str]:
        return {"userId": str(principal.user_id), "name": principal.name}

    async def announce_online(self, sid: str, principal: Principal) -> int:
        """접속한 연결 자신을 제외하고 회사 채널에 알립니다."""
        try:
            return await self._router.broadcast(
                company_channel(principal.company_id),
                "user-online",
                self._payload(principal),
                skip_sid=sid,
            )
        except Exception:
            logger.exception("user-online broadcast failed for %s", principal.user_id)
            return 0

    async def announce_offline(self, principal: Principal) -> int:
        try:
            return await self._router.broadcast(
                company_channel(principal.company_id),
                "user-offline",
                self._payload(principal),
            )
        except Exception:
            logger.exception("user-offline broadcast failed for %s", principal.user_id)
            return 0

    def list_online(self, company_id: UUID) -> list[Principal]:
        return self._registry.list_online(company_id)
