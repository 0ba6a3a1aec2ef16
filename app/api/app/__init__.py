"""앱 API 라우터 패키지 — 모든 앱(직원용) 엔드포인트 통합.

App API Router package — Aggregates all app-facing (employee) endpoints
into a single router for inclusion in the FastAPI application.

Included routers:
    - chat: 채팅방 및 메시지 (Chats and messages)
    - notifications: 내 알림 (My notifications)
    - presence: 접속 중 사용자 (Online users)
"""

from fastapi import APIRouter

from app.api.app.chat import router as chat_router
from app.api.app.notifications import router as notifications_router
from app.api.app.presence import router as presence_router

app_router: APIRouter = APIRouter()

# 채팅: /chat 하위 (Chats, messages, read receipts)
app_router.include_router(chat_router, prefix="/chat", tags=["App Chat"])
app_router.include_router(notifications_router, prefix="/my/notifications", tags=["My Notifications"])
app_router.include_router(presence_router, prefix="/presence", tags=["Presence"])
