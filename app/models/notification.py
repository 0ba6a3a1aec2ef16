"""알림 관련 SQLAlchemy ORM 모델 정의.

Notification SQLAlchemy ORM model definition.
One row per recipient per triggering event; rows are never shared.

Tables:
    - notifications: 사용자 알림 (Per-recipient notifications)
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from sqlalchemy import JSON, String, Boolean, DateTime, ForeignKey, Index, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class NotificationType(str, Enum):
    """알림 유형 — Notification type."""

    CHAT_MESSAGE = "CHAT_MESSAGE"
    SHIFT_PUBLISHED = "SHIFT_PUBLISHED"
    REPORT_REMINDER = "REPORT_REMINDER"
    SHIFT_REMINDER = "SHIFT_REMINDER"
    SYSTEM = "SYSTEM"


class Notification(Base):
    """알림 모델 — 수신자별 시스템 알림.

    Notification model — One row per recipient. The only mutation is the
    read flag going from False to True.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        user_id: 수신자 FK (Recipient user foreign key)
        company_id: 소속 회사 FK (Company scope)
        type: 알림 유형 (See NotificationType)
        title: 제목 (Title)
        content: 본문 (Body, e.g. truncated chat preview)
        data: 구조화된 부가 정보 (Opaque structured payload, e.g. chatId/messageId)
        is_read: 읽음 여부 (Read flag)
        created_at: 생성 일시 UTC (Creation timestamp)
    """

    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    company_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    # PostgreSQL에서는 JSONB, 그 외 드라이버는 JSON (JSONB on PostgreSQL, JSON elsewhere)
    data: Mapped[dict[str, Any] | None] = mapped_column(JSON().with_variant(JSONB, "postgresql"), nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_notifications_user_read", "user_id", "is_read"),
    )
