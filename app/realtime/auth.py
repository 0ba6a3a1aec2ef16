"""Socket.IO 핸드셰이크 인증.

Socket.IO handshake authentication. Reuses the HTTP token rule and bounds
it with a timeout; a rejected handshake never reaches the registry.

Token sources, in order:
    - ``auth: { token }`` (socket.io-client ``auth`` option)
    - ``?token=`` query string
    - ``Authorization: Bearer <token>`` header
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from urllib.parse import parse_qs

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.realtime.registry import Principal
from app.services.auth_service import TOKEN_EXPIRED_DETAIL, auth_service
from app.utils.exceptions import UnauthorizedError

logger = logging.getLogger(__name__)


class HandshakeRejected(Exception):
    """핸드셰이크 거부 — ``reason`` is sent back as the connect_error message."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


def _bearer(value: Any) -> str | None:
    if isinstance(value, (bytes, bytearray)):
        value = value.decode(errors="ignore")
    if isinstance(value, str) and value.startswith("Bearer "):
        token = value[len("Bearer "):].strip()
        return token or None
    return None


def extract_token(environ: dict[str, Any], auth: Any | None) -> str | None:
    """Socket.IO environ/auth에서 JWT 토큰을 추출합니다.

    Handles both the WSGI-style environ python-socketio builds and a raw
    ASGI scope nested under ``asgi.scope``.
    """
    if isinstance(auth, dict):
        auth_token = auth.get("token")
        if isinstance(auth_token, str) and auth_token:
            return auth_token

    scope: Any = environ
    if isinstance(environ, dict) and isinstance(environ.get("asgi.scope"), dict):
        scope = environ["asgi.scope"]

    query_string: str | bytes = ""
    if isinstance(environ, dict) and "QUERY_STRING" in environ:
        query_string = environ.get("QUERY_STRING", "")
    elif isinstance(scope, dict) and "query_string" in scope:
        query_string = scope.get("query_string", b"")
    if isinstance(query_string, (bytes, bytearray)):
        query_string = query_string.decode(errors="ignore")

    token = parse_qs(str(query_string)).get("token", [None])[0]
    if isinstance(token, str) and token:
        return token

    if isinstance(environ, dict):
        header_token = _bearer(environ.get("HTTP_AUTHORIZATION"))
        if header_token:
            return header_token
    if isinstance(scope, dict):
        for name, value in scope.get("headers", []) or []:
            if name in (b"authorization", "authorization"):
                return _bearer(value)

    return None


class HandshakeAuthenticator:
    """핸드셰이크 토큰을 검증하여 Principal을 반환합니다.

    Args:
        session_factory: DB 세션 팩토리 (Session factory for the user lookup)
        timeout: 검증 제한 시간(초) (Verification timeout in seconds)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        timeout: float,
    ) -> None:
        self._session_factory = session_factory
        self._timeout = timeout

    async def authenticate(self, environ: dict[str, Any], auth: Any | None = None) -> Principal:
        """핸드셰이크를 인증합니다.

        Raises:
            HandshakeRejected: reason ``unauthorized``, ``jwt_expired`` or
                ``auth_timeout``
        """
        token = extract_token(environ, auth)
        if not token:
            raise HandshakeRejected("unauthorized")

        try:
            return await asyncio.wait_for(self._verify(token), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning("Socket handshake authentication timed out after %.1fs", self._timeout)
            raise HandshakeRejected("auth_timeout")
        except UnauthorizedError as exc:
            if exc.detail == TOKEN_EXPIRED_DETAIL:
                raise HandshakeRejected("jwt_expired") from exc
            raise HandshakeRejected("unauthorized") from exc

    async def _verify(self, token: str) -> Principal:
        async with self._session_factory() as db:
            user = await auth_service.resolve_user_from_token(db, token)
            return Principal.from_user(user)
