"""연결 레지스트리 — 라이브 연결과 사용자, 채널 구독의 매핑.

Connection registry — Owns the live (connection -> principal) mapping and
every channel subscription of every connection.

Lifecycle per connection::

    Connecting -> Authenticated (registered) -> Disconnected (terminal)

A user may own any number of connections (multi-device). Registering a
connection subscribes it to ``company:<companyId>`` and ``user:<userId>``;
unregistering drops every subscription it had.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, DefaultDict, Set
from uuid import UUID

if TYPE_CHECKING:  # import for type checking only
    from app.models.user import User


def company_channel(company_id: UUID | str) -> str:
    return f"company:{company_id}"


def user_channel(user_id: UUID | str) -> str:
    return f"user:{user_id}"


def chat_channel(chat_id: UUID | str) -> str:
    return f"chat:{chat_id}"


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True)
class Principal:
    """인증된 사용자 식별 정보 (Authenticated principal behind a connection)."""

    user_id: UUID
    name: str
    role: str
    company_id: UUID

    @classmethod
    def from_user(cls, user: User) -> Principal:
        return cls(user_id=user.id, name=user.name, role=user.role, company_id=user.company_id)


@dataclass(eq=False)
class Connection:
    """라이브 전송 세션 하나 (One live transport session).

    ``sid`` is the transport-assigned id (Socket.IO session id).
    """

    sid: str
    principal: Principal
    state: ConnectionState = ConnectionState.AUTHENTICATED
    channels: Set[str] = field(default_factory=set)

    @property
    def is_live(self) -> bool:
        return self.state is ConnectionState.AUTHENTICATED


class ConnectionRegistry:
    """라이브 연결과 채널 구독을 관리합니다.

    Tracks live connections and their channel subscriptions. Not thread
    safe: it is only touched from the event loop that runs the Socket.IO
    handlers.
    """

    def __init__(self) -> None:
        self._connections: dict[str, Connection] = {}
        self._channels: DefaultDict[str, Set[str]] = defaultdict(set)

    def register(self, sid: str, principal: Principal) -> Connection:
        """인증된 연결을 등록하고 기본 채널을 구독합니다.

        Store the mapping and subscribe the connection to its company and
        user channels. Re-registering a sid replaces the previous entry.
        """
        if sid in self._connections:
            self.unregister(sid)

        connection = Connection(sid=sid, principal=principal)
        self._connections[sid] = connection
        self.subscribe(sid, company_channel(principal.company_id))
        self.subscribe(sid, user_channel(principal.user_id))
        return connection

    def unregister(self, sid: str) -> Connection | None:
        """연결과 모든 채널 구독을 제거합니다. 이미 없으면 no-op.

        Remove the mapping and every channel membership of ``sid``.
        Returns the removed connection, or None if it was not registered.
        """
        connection = self._connections.pop(sid, None)
        if connection is None:
            return None

        for channel in connection.channels:
            members = self._channels.get(channel)
            if members is None:
                continue
            members.discard(sid)
            if not members:
                self._channels.pop(channel, None)
        connection.channels.clear()
        connection.state = ConnectionState.DISCONNECTED
        return connection

    def get(self, sid: str) -> Connection | None:
        return self._connections.get(sid)

    def subscribe(self, sid: str, channel: str) -> bool:
        """채널 구독 추가 — False if ``sid`` is not registered."""
        connection = self._connections.get(sid)
        if connection is None:
            return False
        connection.channels.add(channel)
        self._channels[channel].add(sid)
        return True

    def unsubscribe(self, sid: str, channel: str) -> bool:
        """채널 구독 해제 — idempotent; False when nothing was removed."""
        connection = self._connections.get(sid)
        if connection is None or channel not in connection.channels:
            return False
        connection.channels.discard(channel)
        members = self._channels.get(channel)
        if members is not None:
            members.discard(sid)
            if not members:
                self._channels.pop(channel, None)
        return True

    def subscriber_sids(self, channel: str) -> list[str]:
        """채널 구독자 sid 스냅샷 (Snapshot of the sids subscribed to ``channel``)."""
        return list(self._channels.get(channel, ()))

    def connections_for_user(self, user_id: UUID) -> list[Connection]:
        return [c for c in self._connections.values() if c.principal.user_id == user_id]

    def list_online(self, company_id: UUID | None = None) -> list[Principal]:
        """접속 중인 사용자 목록 — 사용자당 한 번만.

        Distinct principals with at least one live connection, optionally
        limited to one company. Best effort under concurrent connects.
        """
        seen: dict[UUID, Principal] = {}
        for connection in list(self._connections.values()):
            principal = connection.principal
            if company_id is not None and principal.company_id != company_id:
                continue
            seen.setdefault(principal.user_id, principal)
        return list(seen.values())

    def clear(self) -> None:
        """모든 연결 제거 — 프로세스 종료 시 호출 (Called at shutdown)."""
        for sid in list(self._connections):
            self.unregister(sid)

    def __contains__(self, sid: object) -> bool:
        return sid in self._connections

    def __len__(self) -> int:
        return len(self._connections)
