"""실시간 전송 패키지 — 연결 레지스트리, 채널 라우터, Socket.IO 게이트웨이.

Realtime package — Connection registry, channel router and the Socket.IO
gateway. All state here is in-process and mutated only from the event loop.
"""

from app.realtime.registry import (
    Connection,
    ConnectionRegistry,
    ConnectionState,
    Principal,
    chat_channel,
    company_channel,
    user_channel,
)
from app.realtime.router import ChannelRouter

__all__ = [
    "Connection",
    "ConnectionRegistry",
    "ConnectionState",
    "Principal",
    "ChannelRouter",
    "chat_channel",
    "company_channel",
    "user_channel",
]
