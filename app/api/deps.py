"""FastAPI 의존성 주입 모듈 — 인증, 권한 검사, 실시간 서비스.

FastAPI dependency injection module — Authentication, authorization and
access to the realtime services built in ``app.main``.

Authentication Flow:
    1. 클라이언트가 Authorization: Bearer <token> 헤더를 전송
       (Client sends Authorization: Bearer <token> header)
    2. HTTPBearer가 토큰을 추출 (HTTPBearer extracts the token)
    3. auth_service.resolve_user_from_token()이 토큰과 사용자를 검증
       (Same verification rule as the Socket.IO handshake)

Realtime services are read from ``request.app.state`` so routes never reach
a module-level instance of them.
"""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.user import User
from app.realtime.registry import Principal
from app.services.auth_service import auth_service
from app.services.chat_service import ChatService
from app.services.notification_service import NotificationService
from app.services.presence_service import PresenceService
from app.utils.exceptions import ForbiddenError

# HTTP Bearer 토큰 추출기 — Authorization 헤더에서 JWT 토큰 추출
# (auto_error=False so a missing header becomes our own 401)
security: HTTPBearer = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """JWT 토큰에서 현재 인증된 사용자를 추출합니다.

    Args:
        credentials: HTTP Bearer 토큰 자격 증명 (Bearer token credentials from header)
        db: 비동기 DB 세션 (Async database session)

    Returns:
        User: 인증된 사용자 ORM 인스턴스 (Authenticated user ORM instance)

    Raises:
        UnauthorizedError: 토큰 누락/무효/만료, 사용자 없음/비활성
    """
    token: str | None = credentials.credentials if credentials is not None else None
    return await auth_service.resolve_user_from_token(db, token)


async def get_current_principal(
    current_user: Annotated[User, Depends(get_current_user)],
) -> Principal:
    """서비스 계층용 Principal (Principal view of the current user)."""
    return Principal.from_user(current_user)


async def require_admin(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """관리자만 허용 (ADMIN role only, otherwise 403)."""
    if not current_user.is_admin:
        raise ForbiddenError("Insufficient permissions")
    return current_user


def get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service


def get_notification_service(request: Request) -> NotificationService:
    return request.app.state.notification_service


def get_presence_service(request: Request) -> PresenceService:
    return request.app.state.presence_service
