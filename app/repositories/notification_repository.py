"""알림 레포지토리 — 알림 행 생성과 읽음 상태.

Notification Repository — One row per recipient per event. The only
mutation after insert is ``is_read`` going from False to True.
"""

from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import ColumnElement, Select, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.notification import Notification
from app.repositories.base import BaseRepository


def _unread_of(user_id: UUID) -> tuple[ColumnElement[bool], ...]:
    return (Notification.user_id == user_id, Notification.is_read.is_(False))


class NotificationRepository(BaseRepository[Notification]):
    """알림 레포지토리 (Notification repository)."""

    def __init__(self) -> None:
        super().__init__(Notification)

    async def get_user_notifications(
        self,
        db: AsyncSession,
        user_id: UUID,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[Sequence[Notification], int]:
        """사용자 알림을 최신순으로 페이지 조회합니다.

        Returns:
            tuple[Sequence[Notification], int]: (알림 목록, 전체 개수)
                                                 (Page of notifications, total count)
        """
        query: Select = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id)
            .execution_options(populate_existing=True)
        )
        return await self.get_paginated(db, query, page, per_page)

    async def get_unread_count(self, db: AsyncSession, user_id: UUID) -> int:
        query = select(func.count()).select_from(Notification).where(*_unread_of(user_id))
        return (await db.execute(query)).scalar() or 0

    async def _set_read(self, db: AsyncSession, *criteria: ColumnElement[bool]) -> int:
        result = await db.execute(update(Notification).where(*criteria).values(is_read=True))
        await db.flush()
        return result.rowcount

    async def mark_read(self, db: AsyncSession, notification_id: UUID, user_id: UUID) -> bool:
        """수신자 본인의 알림 하나를 읽음 처리합니다.

        Only the recipient's own row matches; a row that is already read
        still counts as found.
        """
        matched = await self._set_read(
            db, Notification.id == notification_id, Notification.user_id == user_id
        )
        return matched > 0

    async def mark_all_read(self, db: AsyncSession, user_id: UUID) -> int:
        """읽지 않은 알림을 모두 읽음 처리하고 개수를 반환합니다."""
        return await self._set_read(db, *_unread_of(user_id))

    async def insert_notification(
        self,
        db: AsyncSession,
        recipient_id: UUID,
        company_id: UUID,
        notification_type: str,
        title: str,
        content: str,
        data: dict[str, Any] | None = None,
    ) -> Notification:
        """수신자 한 명의 알림 행을 추가합니다 (flush만, 커밋은 호출자).

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            recipient_id: 수신자 UUID (Recipient user UUID)
            company_id: 회사 UUID (Company UUID)
            notification_type: 알림 유형 (Notification type)
            title: 제목 (Title)
            content: 본문 (Body)
            data: 구조화된 부가 정보 (Opaque structured payload)
        """
        notification = Notification(
            user_id=recipient_id,
            company_id=company_id,
            type=notification_type,
            title=title,
            content=content,
            data=data,
        )
        db.add(notification)
        await db.flush()
        await db.refresh(notification)
        return notification


notification_repository: NotificationRepository = NotificationRepository()
