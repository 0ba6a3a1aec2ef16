"""관리자 알림 라우터 — 회사 전체 알림 발송 API.

Admin Notification Router — Company-wide notices (shift published,
reminders, system messages) fanned out to every active user.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_notification_service, require_admin
from app.database import get_db
from app.models.user import User
from app.schemas.common import CompanyNotificationCreate, CompanyNotificationResult
from app.services.notification_service import NotificationService

router: APIRouter = APIRouter()


@router.post("/company", response_model=CompanyNotificationResult, status_code=status.HTTP_201_CREATED)
async def notify_company(
    data: CompanyNotificationCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
    notification_service: Annotated[NotificationService, Depends(get_notification_service)],
) -> dict:
    """회사의 모든 활성 사용자에게 알림을 보냅니다.

    Create one notification per active user of the admin's company and push
    it live on each recipient's user channel.

    Args:
        data: 알림 내용 (Notification content)
        db: 비동기 데이터베이스 세션 (Async database session)
        current_user: 인증된 관리자 (Authenticated admin)

    Returns:
        dict: {"created": 생성된 알림 수 (rows created)}
    """
    created = await notification_service.notify_company(
        db,
        company_id=current_user.company_id,
        notification_type=data.type.value,
        title=data.title,
        content=data.content,
        data=data.data,
    )
    return {"created": len(created)}
