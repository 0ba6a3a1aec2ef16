"""커스텀 HTTP 예외 클래스 모듈.

Custom HTTP exception classes module.
Services raise these directly; FastAPI renders them as ``{"detail": ...}``
and the Socket.IO gateway turns them into ``error`` events for the
originating connection.

Usage:
    from app.utils.exceptions import NotFoundError, ForbiddenError
    raise NotFoundError("Chat not found")
    raise ForbiddenError("Not a chat participant")
"""

from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """404 Not Found 예외 — 채팅, 메시지, 알림을 찾을 수 없을 때.

    Raised when a chat, message or notification id is unknown, or when the
    chat belongs to another company.
    """

    def __init__(self, detail: str = "Resource not found") -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ForbiddenError(HTTPException):
    """403 Forbidden 예외 — 인증되었지만 권한이 없을 때.

    Raised when the authenticated user is not a durable participant of the
    target chat, or lacks the role an admin operation requires.
    """

    def __init__(self, detail: str = "Insufficient permissions") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class UnauthorizedError(HTTPException):
    """401 Unauthorized 예외 — 토큰 누락, 위조, 만료 또는 비활성 사용자.

    Raised for a missing, malformed, signature-invalid or expired bearer
    token, and for tokens whose subject is absent or deactivated.
    """

    def __init__(self, detail: str = "Authentication required") -> None:
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class BadRequestError(HTTPException):
    """400 Bad Request 예외 — 비즈니스 규칙 위반 (예: 내용과 첨부가 모두 빈 메시지)."""

    def __init__(self, detail: str = "Bad request") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class InternalError(HTTPException):
    """500 Internal Server Error 예외 — 저장소 장애.

    Raised when the persistence layer fails before an operation committed.
    The operation is treated as fully failed; nothing was persisted.
    """

    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
