"""채널 라우터 — 채널 이름을 라이브 연결 집합으로 해석하고 이벤트를 전달.

Channel router — Resolves channel names to live connections, handles the
advisory ``join-chat`` / ``leave-chat`` subscriptions, and delivers events.
Delivery is fire-and-forget: no acknowledgement, no retry, and a failure
on one connection never stops delivery to the others.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Collection, Iterable, Iterator
from uuid import UUID

from app.realtime.registry import Connection, ConnectionRegistry, chat_channel

logger = logging.getLogger(__name__)

# sio.emit(event, data, to=sid) 과 같은 시그니처 (Same shape as AsyncServer.emit)
Emitter = Callable[..., Awaitable[Any]]


class ChannelMembers:
    """채널의 라이브 연결에 대한 지연 반복 뷰.

    Lazy, restartable view over the live connections of one channel. Each
    iteration walks the membership as it is at that moment.
    """

    def __init__(self, registry: ConnectionRegistry, channel: str) -> None:
        self._registry = registry
        self.channel = channel

    def __iter__(self) -> Iterator[Connection]:
        for sid in self._registry.subscriber_sids(self.channel):
            connection = self._registry.get(sid)
            if connection is not None and connection.is_live:
                yield connection


class ChannelRouter:
    """채널 구독과 이벤트 전달 담당.

    Args:
        registry: 연결 레지스트리 (Connection registry owning memberships)
        emit: 전송 계층 emit 함수 (Transport emit, e.g. ``sio.emit``)
    """

    def __init__(self, registry: ConnectionRegistry, emit: Emitter) -> None:
        self._registry = registry
        self._emit = emit

    def join(self, sid: str, chat_id: UUID | str) -> bool:
        """``chat:<chatId>`` 구독. 영속 참가자 검사는 하지 않습니다.

        Subscribe to a chat channel. Advisory and idempotent; the durable
        participant check happens at send time.
        """
        return self._registry.subscribe(sid, chat_channel(chat_id))

    def leave(self, sid: str, chat_id: UUID | str) -> bool:
        return self._registry.unsubscribe(sid, chat_channel(chat_id))

    def leave_all(self, user_id: UUID, chat_id: UUID | str) -> int:
        """사용자의 모든 연결을 채팅 채널에서 해제 (Unsubscribe every connection of a user)."""
        removed = 0
        for connection in self._registry.connections_for_user(user_id):
            if self.leave(connection.sid, chat_id):
                removed += 1
        return removed

    def resolve(self, channel: str) -> ChannelMembers:
        """채널을 구독 중인 라이브 연결 (Live connections subscribed to ``channel``).

        An unknown or empty channel resolves to an empty sequence.
        """
        return ChannelMembers(self._registry, channel)

    async def broadcast(
        self,
        channel: str,
        event: str,
        payload: Any,
        skip_sid: str | None = None,
    ) -> int:
        """채널의 모든 라이브 연결에 이벤트를 전달합니다.

        Deliver ``event`` to every connection resolved for ``channel``.

        Returns:
            int: 전달에 성공한 연결 수 (Number of successful deliveries)
        """
        return await self.broadcast_many([channel], event, payload, skip_sid=skip_sid)

    async def broadcast_many(
        self,
        channels: Iterable[str],
        event: str,
        payload: Any,
        skip_sid: str | None = None,
        member_ids: Collection[UUID] | None = None,
    ) -> int:
        """여러 채널의 합집합에 연결당 최대 한 번 전달합니다.

        Deliver ``event`` once per distinct connection across the union of
        ``channels``, so a connection subscribed to several of them still
        receives it at most once. When ``member_ids`` is given, connections
        of any other user are skipped even if they subscribed.
        """
        seen: set[str] = set()
        delivered = 0
        for channel in channels:
            for connection in self.resolve(channel):
                if connection.sid == skip_sid or connection.sid in seen:
                    continue
                if member_ids is not None and connection.principal.user_id not in member_ids:
                    continue
                seen.add(connection.sid)
                if await self._deliver(connection.sid, event, payload):
                    delivered += 1
        return delivered

    async def send_to(self, sid: str, event: str, payload: Any) -> bool:
        """단일 연결에 전달 (Deliver to one connection, e.g. ``error`` replies)."""
        if sid not in self._registry:
            return False
        return await self._deliver(sid, event, payload)

    async def _deliver(self, sid: str, event: str, payload: Any) -> bool:
        try:
            await self._emit(event, payload, to=sid)
        except Exception:
            logger.exception("Failed to deliver %s to connection %s", event, sid)
            return False
        return True
