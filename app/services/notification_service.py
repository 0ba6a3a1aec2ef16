"""알림 서비스 — 알림 비즈니스 로직.

Notification Service — Business logic for notification management.
Handles read/unread operations, per-recipient fan-out for chat messages
and company notices, and the live ``notification`` push.
"""

import logging
from typing import Any, Iterable, Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.notification import Notification, NotificationType
from app.realtime.registry import user_channel
from app.realtime.router import ChannelRouter
from app.repositories.notification_repository import notification_repository
from app.repositories.user_repository import user_repository

logger = logging.getLogger(__name__)

CHAT_MESSAGE_TITLE: str = "New message"


def build_notification_response(notification: Notification) -> dict[str, Any]:
    """알림 응답 딕셔너리 (Notification response dict)."""
    return {
        "id": str(notification.id),
        "type": notification.type,
        "title": notification.title,
        "content": notification.content,
        "data": notification.data,
        "is_read": notification.is_read,
        "created_at": notification.created_at,
    }


def build_push_payload(notification: Notification) -> dict[str, Any]:
    """``notification`` 이벤트 페이로드 (Payload of the live ``notification`` event)."""
    return {
        "id": str(notification.id),
        "type": notification.type,
        "title": notification.title,
        "content": notification.content,
        "data": notification.data or {},
    }


def build_preview(sender_name: str, content: str, limit: int) -> str:
    """알림 본문용 메시지 미리보기.

    ``"<sender>: <content truncated to limit>..."``; attachment-only
    messages get a fixed placeholder.
    """
    if not content:
        return f"{sender_name}: sent an attachment"
    if len(content) > limit:
        return f"{sender_name}: {content[:limit]}..."
    return f"{sender_name}: {content}"


class NotificationService:
    """알림 서비스.

    Args:
        router: 채널 라우터 (Channel router used for the live push)
        preview_length: 채팅 미리보기 최대 길이 (Chat preview length)
    """

    def __init__(self, router: ChannelRouter, preview_length: int = 50) -> None:
        self._router = router
        self._preview_length = preview_length

    # --- 공통 조회/읽음 처리 (Shared read/unread operations) ---

    async def list_notifications(
        self,
        db: AsyncSession,
        user_id: UUID,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[Sequence[Notification], int]:
        return await notification_repository.get_user_notifications(db, user_id, page, per_page)

    async def get_unread_count(self, db: AsyncSession, user_id: UUID) -> int:
        return await notification_repository.get_unread_count(db, user_id)

    async def mark_read(self, db: AsyncSession, notification_id: UUID, user_id: UUID) -> bool:
        """단일 알림 읽음 처리 후 커밋 (Mark one notification read and commit)."""
        found: bool = await notification_repository.mark_read(db, notification_id, user_id)
        await db.commit()
        return found

    async def mark_all_read(self, db: AsyncSession, user_id: UUID) -> int:
        count: int = await notification_repository.mark_all_read(db, user_id)
        await db.commit()
        return count

    # --- 자동 생성 (Fan-out creation) ---

    async def _insert_each(
        self,
        db: AsyncSession,
        recipient_ids: Iterable[UUID],
        company_id: UUID,
        notification_type: str,
        title: str,
        content: str,
        data: dict[str, Any] | None,
    ) -> list[Notification]:
        """수신자마다 한 행씩 생성하고 즉시 커밋합니다.

        One row per recipient, each committed on its own: a failure for one
        recipient is logged and skipped, rows already created stay.
        """
        created: list[Notification] = []
        rolled_back = False
        for recipient_id in dict.fromkeys(recipient_ids):
            try:
                notification = await notification_repository.insert_notification(
                    db,
                    recipient_id=recipient_id,
                    company_id=company_id,
                    notification_type=notification_type,
                    title=title,
                    content=content,
                    data=data,
                )
                await db.commit()
            except SQLAlchemyError:
                await db.rollback()
                rolled_back = True
                logger.exception("Failed to create %s notification for user %s", notification_type, recipient_id)
                continue
            created.append(notification)

        # rollback은 세션의 모든 객체를 만료시킴 (rollback expires every instance)
        if rolled_back:
            for notification in created:
                await db.refresh(notification)
        return created

    async def create_for_chat_message(
        self,
        db: AsyncSession,
        message: dict[str, Any],
        company_id: UUID,
        sender_name: str,
        recipient_ids: Iterable[UUID],
    ) -> list[Notification]:
        """채팅 메시지 수신자별 CHAT_MESSAGE 알림 생성.

        Create one CHAT_MESSAGE notification per recipient.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            message: 직렬화된 메시지 (Serialized persisted message)
            company_id: 회사 UUID (Company UUID)
            sender_name: 보낸 사람 이름 (Sender display name)
            recipient_ids: 보낸 사람을 제외한 참가자 (Participants other than the sender)

        Returns:
            list[Notification]: 생성된 알림 목록 (Created notifications)
        """
        return await self._insert_each(
            db,
            recipient_ids,
            company_id=company_id,
            notification_type=NotificationType.CHAT_MESSAGE.value,
            title=CHAT_MESSAGE_TITLE,
            content=build_preview(sender_name, message["content"], self._preview_length),
            data={
                "chatId": message["chat_id"],
                "messageId": message["id"],
                "senderName": sender_name,
            },
        )

    async def notify_company(
        self,
        db: AsyncSession,
        company_id: UUID,
        notification_type: str,
        title: str,
        content: str,
        data: dict[str, Any] | None = None,
    ) -> list[Notification]:
        """회사의 모든 활성 사용자에게 알림을 생성하고 푸시합니다.

        Fan a notice out to every active user of the company, then push each
        row on its recipient's ``user:<id>`` channel.
        """
        users = await user_repository.list_active_by_company(db, company_id)
        created = await self._insert_each(
            db,
            [u.id for u in users],
            company_id=company_id,
            notification_type=notification_type,
            title=title,
            content=content,
            data=data,
        )
        await self.push(created)
        return created

    async def push(self, notifications: Iterable[Notification]) -> int:
        """각 알림을 수신자의 user 채널로 푸시 (best effort)."""
        delivered = 0
        for notification in notifications:
            try:
                delivered += await self._router.broadcast(
                    user_channel(notification.user_id),
                    "notification",
                    build_push_payload(notification),
                )
            except Exception:
                logger.exception("Failed to push notification %s", notification.id)
        return delivered
