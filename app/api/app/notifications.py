"""앱 알림 라우터 — 내 알림 API.

App Notification Router — The caller's notification inbox: list, unread
count, mark read and mark all read.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_notification_service
from app.database import get_db
from app.models.user import User
from app.schemas.common import PaginatedResponse, StatusMessage, UnreadCountResponse
from app.services.notification_service import NotificationService, build_notification_response
from app.utils.exceptions import NotFoundError

router: APIRouter = APIRouter()


@router.get("", response_model=PaginatedResponse)
async def list_my_notifications(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    notification_service: Annotated[NotificationService, Depends(get_notification_service)],
    page: Annotated[int, Query(ge=1)] = 1,
    per_page: Annotated[int, Query(ge=1, le=100)] = 20,
) -> dict:
    """내 알림 목록을 최신순으로 조회합니다.

    List my notifications, newest first.

    Args:
        db: 비동기 데이터베이스 세션 (Async database session)
        current_user: 인증된 사용자 (Authenticated user)
        page: 페이지 번호 (Page number)
        per_page: 페이지당 항목 수 (Items per page)

    Returns:
        dict: 페이지네이션된 알림 목록 (Paginated notification list)
    """
    notifications, total = await notification_service.list_notifications(
        db,
        user_id=current_user.id,
        page=page,
        per_page=per_page,
    )
    return {
        "items": [build_notification_response(n) for n in notifications],
        "total": total,
        "page": page,
        "per_page": per_page,
    }


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    notification_service: Annotated[NotificationService, Depends(get_notification_service)],
) -> dict:
    count: int = await notification_service.get_unread_count(db, current_user.id)
    return {"unread_count": count}


@router.patch("/read-all", response_model=StatusMessage)
async def mark_all_read(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    notification_service: Annotated[NotificationService, Depends(get_notification_service)],
) -> dict:
    """모든 알림을 읽음 처리합니다 (Mark all my notifications read)."""
    count: int = await notification_service.mark_all_read(db, current_user.id)
    return {"message": f"{count} notifications marked as read"}


@router.patch("/{notification_id}/read", response_model=StatusMessage)
async def mark_read(
    notification_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    notification_service: Annotated[NotificationService, Depends(get_notification_service)],
) -> dict:
    """알림을 읽음 처리합니다. 내 알림이 아니면 404.

    Mark one of my notifications read.

    Raises:
        NotFoundError: 알림 없음 또는 다른 사용자의 알림 (Unknown or not mine)
    """
    found: bool = await notification_service.mark_read(db, notification_id, current_user.id)
    if not found:
        raise NotFoundError("Notification not found")
    return {"message": "Notification marked as read"}
