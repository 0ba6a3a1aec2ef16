"""공통 Pydantic 요청/응답 스키마 정의.

Common Pydantic request/response schema definitions.
Includes notification schemas, pagination and generic status messages.
"""

from datetime import datetime
from typing import Any
from pydantic import BaseModel, Field

from app.models.notification import NotificationType


# === 알림 (Notification) 스키마 ===

class NotificationResponse(BaseModel):
    """알림 응답 스키마.

    Notification response schema. ``data`` carries deep-link context such as
    ``chatId`` / ``messageId`` for chat notifications.

    Attributes:
        id: 알림 UUID (Notification unique identifier)
        type: 알림 유형 (Notification type)
        title: 제목 (Title)
        content: 본문 (Body)
        data: 부가 정보 (Structured payload, nullable)
        is_read: 읽음 여부 (Read status flag)
        created_at: 생성 일시 (Creation timestamp)
    """

    id: str
    type: str
    title: str
    content: str
    data: dict[str, Any] | None = None
    is_read: bool
    created_at: datetime


class CompanyNotificationCreate(BaseModel):
    """회사 전체 알림 생성 요청 스키마 (관리자 전용).

    Company-wide notification request (ADMIN only). One row is created per
    active user of the admin's company.
    """

    type: NotificationType = NotificationType.SYSTEM
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    data: dict[str, Any] | None = None


class UnreadCountResponse(BaseModel):
    """읽지 않은 알림 수 응답 (Unread notification count)."""

    unread_count: int


class PaginatedResponse(BaseModel):
    """페이지네이션 응답 스키마.

    Paginated response wrapper schema.

    Attributes:
        items: 항목 목록 (List of result items)
        total: 전체 항목 수 (Total count across all pages)
        page: 현재 페이지 번호 (Current page number, 1-based)
        per_page: 페이지당 항목 수 (Items per page)
    """

    items: list[Any]
    total: int
    page: int
    per_page: int


class StatusMessage(BaseModel):
    """범용 확인 메시지 응답 스키마.

    Generic confirmation response for state changes that return no entity.
    """

    message: str


class CompanyNotificationResult(BaseModel):
    """회사 전체 알림 생성 결과 (Number of notification rows created)."""

    created: int
