"""사용자 레포지토리 — 사용자 조회 쿼리.

User Repository — Lookup queries for users.
Used by token verification, chat creation (participant validation) and
company-wide notification fan-out.
"""

from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """사용자 테이블에 대한 데이터베이스 쿼리를 담당하는 레포지토리.

    Repository handling database queries for the users table.
    """

    def __init__(self) -> None:
        super().__init__(User)

    async def get_active(self, db: AsyncSession, user_id: UUID) -> User | None:
        """활성 사용자만 조회합니다 (Active user by id, None if absent or deactivated)."""
        result = await db.execute(
            select(User).where(User.id == user_id, User.is_active.is_(True))
        )
        return result.scalar_one_or_none()

    async def get_active_in_company(
        self,
        db: AsyncSession,
        company_id: UUID,
        user_ids: Iterable[UUID],
    ) -> Sequence[User]:
        """회사 내 활성 사용자 중 주어진 ID에 해당하는 사용자 목록.

        Active users of ``company_id`` among ``user_ids``.
        """
        ids: list[UUID] = list(user_ids)
        if not ids:
            return []
        query: Select = select(User).where(
            User.company_id == company_id,
            User.is_active.is_(True),
            User.id.in_(ids),
        )
        result = await db.execute(query)
        return result.scalars().all()

    async def list_active_by_company(
        self,
        db: AsyncSession,
        company_id: UUID,
    ) -> Sequence[User]:
        """회사의 모든 활성 사용자 (All active users of a company)."""
        result = await db.execute(
            select(User)
            .where(User.company_id == company_id, User.is_active.is_(True))
            .order_by(User.name)
        )
        return result.scalars().all()


# 싱글턴 인스턴스 — Singleton instance
user_repository: UserRepository = UserRepository()
