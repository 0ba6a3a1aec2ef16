"""Socket.IO 게이트웨이 — 이벤트 핸들러 등록.

Socket.IO gateway — Binds the live transport events to the registry,
router and services.

Client -> server events:
    - ``join-chat``  {chatId} | "chatId"
    - ``leave-chat`` {chatId} | "chatId"
    - ``send-message`` {chatId, content, type, attachments}
    - ``mark-notification-read`` {notificationId}
    - ``location-update`` {latitude, longitude}

Server -> client events:
    ``message-received``, ``notification``, ``user-online``, ``user-offline``,
    ``user-location-update``, ``error``
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

import socketio
from socketio import exceptions as sio_exceptions
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.realtime.auth import HandshakeAuthenticator, HandshakeRejected
from app.realtime.registry import ConnectionRegistry, Principal, company_channel
from app.realtime.router import ChannelRouter
from app.services.chat_service import ChatService
from app.services.notification_service import NotificationService
from app.services.presence_service import PresenceService
from app.utils.exceptions import BadRequestError

logger = logging.getLogger(__name__)

GENERIC_ERROR: str = "Failed to process request"


def _field(data: Any, key: str) -> Any:
    """dict 페이로드에서 필드를 꺼내거나, 문자열 페이로드를 그대로 사용."""
    if isinstance(data, dict):
        return data.get(key)
    if key == "chatId" and isinstance(data, str):
        return data
    return None


def _parse_uuid(value: Any, label: str) -> UUID:
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise BadRequestError(f"Invalid {label}")


class RealtimeGateway:
    """라이브 전송 이벤트 핸들러 모음.

    Args:
        sio: Socket.IO 서버 (AsyncServer the handlers are attached to)
        registry: 연결 레지스트리 (Connection registry)
        router: 채널 라우터 (Channel router)
        authenticator: 핸드셰이크 인증기 (Handshake authenticator)
        chat_service: 채팅 서비스 (Chat fan-out service)
        presence: 접속 상태 서비스 (Presence service)
        notifications: 알림 서비스 (Notification service)
        session_factory: 이벤트마다 DB 세션 생성 (Per-event DB session factory)
    """

    def __init__(
        self,
        sio: socketio.AsyncServer | None,
        registry: ConnectionRegistry,
        router: ChannelRouter,
        authenticator: HandshakeAuthenticator,
        chat_service: ChatService,
        presence: PresenceService,
        notifications: NotificationService,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        self._sio = sio
        self._registry = registry
        self._router = router
        self._authenticator = authenticator
        self._chat_service = chat_service
        self._presence = presence
        self._notifications = notifications
        self._session_factory = session_factory

    def attach(self) -> None:
        """AsyncServer에 핸들러를 등록합니다 (Register every handler on ``sio``)."""
        if self._sio is None:
            raise RuntimeError("No Socket.IO server to attach to")
        self._sio.on("connect", self.on_connect)
        self._sio.on("disconnect", self.on_disconnect)
        self._sio.on("join-chat", self.on_join_chat)
        self._sio.on("leave-chat", self.on_leave_chat)
        self._sio.on("send-message", self.on_send_message)
        self._sio.on("mark-notification-read", self.on_mark_notification_read)
        self._sio.on("location-update", self.on_location_update)

    def _principal(self, sid: str) -> Principal | None:
        connection = self._registry.get(sid)
        if connection is None or not connection.is_live:
            return None
        return connection.principal

    async def _report(self, sid: str, exc: Exception, event: str) -> dict[str, Any]:
        """예외를 ``error`` 이벤트로 원 연결에만 보고합니다."""
        if isinstance(exc, HTTPException):
            message = str(exc.detail)
        else:
            logger.error("Unhandled error in %s from %s", event, sid, exc_info=exc)
            message = GENERIC_ERROR
        await self._router.send_to(sid, "error", {"message": message})
        return {"ok": False, "error": message}

    # --- 연결 수명 주기 (Connection lifecycle) ---

    async def on_connect(self, sid: str, environ: dict[str, Any], auth: Any | None = None) -> None:
        """핸드셰이크 인증 후 등록, 거부 시 ConnectionRefusedError."""
        try:
            principal = await self._authenticator.authenticate(environ, auth)
        except HandshakeRejected as exc:
            logger.info("Socket handshake rejected for %s: %s", sid, exc.reason)
            raise sio_exceptions.ConnectionRefusedError(exc.reason) from exc

        self._registry.register(sid, principal)
        logger.info(
            "User %s (%s) connected as %s; %d live connections",
            principal.name, principal.user_id, sid, len(self._registry),
        )
        await self._presence.announce_online(sid, principal)

    async def on_disconnect(self, sid: str, reason: Any = None) -> None:
        connection = self._registry.unregister(sid)
        if connection is None:
            return
        logger.info("User %s (%s) disconnected from %s", connection.principal.name, connection.principal.user_id, sid)
        await self._presence.announce_offline(connection.principal)

    # --- 채팅 (Chat) ---

    async def on_join_chat(self, sid: str, data: Any = None) -> dict[str, Any] | None:
        principal = self._principal(sid)
        if principal is None:
            return None
        try:
            chat_id = _parse_uuid(_field(data, "chatId"), "chat id")
        except HTTPException as exc:
            return await self._report(sid, exc, "join-chat")
        self._router.join(sid, chat_id)
        logger.debug("User %s joined chat %s", principal.user_id, chat_id)
        return {"ok": True}

    async def on_leave_chat(self, sid: str, data: Any = None) -> dict[str, Any] | None:
        principal = self._principal(sid)
        if principal is None:
            return None
        try:
            chat_id = _parse_uuid(_field(data, "chatId"), "chat id")
        except HTTPException as exc:
            return await self._report(sid, exc, "leave-chat")
        self._router.leave(sid, chat_id)
        logger.debug("User %s left chat %s", principal.user_id, chat_id)
        return {"ok": True}

    async def on_send_message(self, sid: str, data: Any = None) -> dict[str, Any] | None:
        """메시지 전송 — HTTP와 같은 ChatService.send_message 경로.

        Returns an acknowledgement ``{"ok": True, "message": ...}`` on
        success; failures are also reported as an ``error`` event.
        """
        principal = self._principal(sid)
        if principal is None:
            return None
        try:
            if not isinstance(data, dict):
                raise BadRequestError("Invalid message payload")
            chat_id = _parse_uuid(data.get("chatId"), "chat id")
            content = data.get("content")
            attachments = data.get("attachments")
            # HTTP 스키마(SendMessageRequest)와 같은 타입 규칙
            if content is not None and not isinstance(content, str):
                raise BadRequestError("Invalid message content")
            if attachments is not None and not isinstance(attachments, list):
                raise BadRequestError("Invalid attachments")
            async with self._session_factory() as db:
                message = await self._chat_service.send_message(
                    db,
                    chat_id,
                    principal,
                    content=content,
                    message_type=data.get("type") or "TEXT",
                    attachments=attachments or [],
                )
        except Exception as exc:
            return await self._report(sid, exc, "send-message")
        return {"ok": True, "message": message}

    # --- 알림 (Notifications) ---

    async def on_mark_notification_read(self, sid: str, data: Any = None) -> dict[str, Any] | None:
        principal = self._principal(sid)
        if principal is None:
            return None
        try:
            notification_id = _parse_uuid(_field(data, "notificationId"), "notification id")
            async with self._session_factory() as db:
                found = await self._notifications.mark_read(db, notification_id, principal.user_id)
        except Exception as exc:
            return await self._report(sid, exc, "mark-notification-read")
        return {"ok": found}

    # --- 위치 (GPS attendance live map) ---

    async def on_location_update(self, sid: str, data: Any = None) -> dict[str, Any] | None:
        """위치 정보를 회사 채널에 중계합니다. 저장하지 않습니다."""
        principal = self._principal(sid)
        if principal is None:
            return None
        latitude = _field(data, "latitude")
        longitude = _field(data, "longitude")
        if not isinstance(latitude, (int, float)) or not isinstance(longitude, (int, float)):
            return await self._report(sid, BadRequestError("Invalid location"), "location-update")

        await self._router.broadcast(
            company_channel(principal.company_id),
            "user-location-update",
            {
                "userId": str(principal.user_id),
                "name": principal.name,
                "latitude": latitude,
                "longitude": longitude,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
            skip_sid=sid,
        )
        return {"ok": True}
