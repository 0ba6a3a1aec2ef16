"""기본 레포지토리 — 모든 레포지토리의 부모 클래스.

Base Repository — Shared lookup and paging for the chat domain
repositories. Tenant-owned models (``company_id`` column) can be scoped
to one company on lookup.

Usage:
    class ChatRepository(BaseRepository[Chat]):
        def __init__(self) -> None:
            super().__init__(Chat)
"""

from typing import Generic, Sequence, TypeVar
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """제네릭 레포지토리 (Generic repository over one model).

    Attributes:
        model: SQLAlchemy 모델 클래스 (The SQLAlchemy model class)
    """

    def __init__(self, model: type[ModelType]) -> None:
        self.model: type[ModelType] = model

    def _scoped(self, query: Select, company_id: UUID | None) -> Select:
        # company_id 컬럼이 없는 모델(Message 등)은 범위 지정 불가
        if company_id is None or not hasattr(self.model, "company_id"):
            return query
        return query.where(self.model.company_id == company_id)

    async def get_by_id(
        self,
        db: AsyncSession,
        record_id: UUID,
        company_id: UUID | None = None,
    ) -> ModelType | None:
        """ID로 단일 레코드를 조회합니다.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            record_id: 레코드 UUID (Record UUID)
            company_id: 회사 범위, None이면 미적용 (Tenant scope; None skips it)

        Returns:
            ModelType | None: 레코드, 없거나 다른 회사 소속이면 None
                              (Record, or None when absent or another tenant's)
        """
        query = self._scoped(select(self.model).where(self.model.id == record_id), company_id)
        return (await db.execute(query)).scalar_one_or_none()

    async def get_paginated(
        self,
        db: AsyncSession,
        query: Select,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[Sequence[ModelType], int]:
        """``query``의 한 페이지와 전체 개수 (One page of ``query`` plus its total)."""
        total: int = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0
        rows = await db.execute(query.offset((page - 1) * per_page).limit(per_page))
        return rows.scalars().all(), total
