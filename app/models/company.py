"""회사(테넌트) SQLAlchemy ORM 모델 정의.

Company (tenant) SQLAlchemy ORM model definition.
Every user, chat and notification is scoped under exactly one company.

Tables:
    - companies: 최상위 테넌트 (Top-level tenant)
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import String, Boolean, DateTime, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class Company(Base):
    """회사 모델 — 멀티테넌트 격리 단위.

    Company model — Unit of multi-tenant isolation. Also names the implicit
    ``company:<id>`` broadcast channel every connection of its users joins.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        name: 회사 이름 (Company name)
        is_active: 활성 상태 (Active status flag)
        created_at: 생성 일시 UTC (Creation timestamp)
    """

    __tablename__ = "companies"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    # 관계 — Relationships (cascade: 회사 삭제 시 하위 데이터 일괄 삭제)
    users = relationship("User", back_populates="company", cascade="all, delete-orphan")
    chats = relationship("Chat", back_populates="company", cascade="all, delete-orphan")
