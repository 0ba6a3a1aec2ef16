"""인증 서비스 — 액세스 토큰 검증 규칙.

Auth Service — The single access-token verification rule shared by the
HTTP bearer dependency and the Socket.IO handshake.

Verification Flow:
    1. decode_token()으로 서명과 만료를 검증 (Signature and expiry check)
    2. 토큰 유형이 "access"이고 "sub"가 있는지 확인 (Type and subject check)
    3. "sub"로 활성 사용자를 조회 (Active user lookup by subject)
"""

from uuid import UUID

import jwt
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.repositories.user_repository import user_repository
from app.utils.exceptions import UnauthorizedError
from app.utils.jwt import decode_token

TOKEN_EXPIRED_DETAIL: str = "Token has expired"


class AuthService:
    """토큰 검증 서비스 (Token verification service)."""

    async def resolve_user_from_token(self, db: AsyncSession, token: str | None) -> User:
        """액세스 토큰에서 활성 사용자를 찾습니다.

        Resolve the active user behind an access token.

        Args:
            db: 비동기 DB 세션 (Async database session)
            token: JWT 액세스 토큰 (Access token, may be missing)

        Returns:
            User: 인증된 활성 사용자 (Authenticated active user)

        Raises:
            UnauthorizedError: 토큰 누락/위조/만료, 또는 사용자 없음/비활성
                               (Missing, malformed, expired token or absent/inactive user)
        """
        if not token:
            raise UnauthorizedError("Authentication token required")

        try:
            payload: dict = decode_token(token)
        except jwt.ExpiredSignatureError:
            raise UnauthorizedError(TOKEN_EXPIRED_DETAIL)
        except jwt.InvalidTokenError:
            raise UnauthorizedError("Invalid token")

        # 토큰 유형 검증 — Reject anything but access tokens
        if payload.get("type") != "access":
            raise UnauthorizedError("Invalid token type")

        subject = payload.get("sub")
        try:
            user_id = UUID(str(subject))
        except (TypeError, ValueError):
            raise UnauthorizedError("Invalid token")

        user: User | None = await user_repository.get_active(db, user_id)
        if user is None:
            raise UnauthorizedError("User not found or inactive")
        return user


# 싱글턴 인스턴스 — Singleton instance
auth_service: AuthService = AuthService()
