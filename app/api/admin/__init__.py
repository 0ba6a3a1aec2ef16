"""관리자 API 라우터 패키지 — 모든 관리자 엔드포인트 통합.

Admin API Router package — Aggregates all admin-facing endpoints into a
single router for inclusion in the FastAPI application.

Included routers:
    - notifications: 회사 전체 알림 발송 (Company-wide notices)
"""

from fastapi import APIRouter

from app.api.admin.notifications import router as notifications_router

admin_router: APIRouter = APIRouter()

admin_router.include_router(notifications_router, prefix="/notifications", tags=["Admin Notifications"])
