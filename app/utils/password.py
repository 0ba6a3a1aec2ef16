"""비밀번호 해싱 및 검증 유틸리티 모듈.

Password hashing utilities (bcrypt). Used by the seed script and test
fixtures; the cost factor comes from ``settings.BCRYPT_ROUNDS``.
"""

import bcrypt

from app.config import settings


def hash_password(password: str, rounds: int | None = None) -> str:
    """평문 비밀번호를 bcrypt 해시로 변환합니다.

    Args:
        password: 평문 비밀번호 (Plain text password)
        rounds: bcrypt 비용 계수, 생략 시 설정값 (Cost factor, defaults to settings)

    Returns:
        str: bcrypt 해시 문자열 (Bcrypt hash, salt included)
    """
    salt: bytes = bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

