"""사용자 SQLAlchemy ORM 모델 정의.

User SQLAlchemy ORM model definition.
Users belong to one company and carry one of two roles (ADMIN | EMPLOYEE).

Tables:
    - users: 사용자 계정 (User accounts scoped by company)
"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import String, Boolean, DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class UserRole(str, Enum):
    """사용자 역할 — User role."""

    ADMIN = "ADMIN"
    EMPLOYEE = "EMPLOYEE"


class User(Base):
    """사용자 모델 — 시스템 사용자 계정 정보.

    User model — System user account information.
    ``is_active=False`` deactivates the account: its tokens are rejected by
    both the HTTP bearer check and the Socket.IO handshake.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        company_id: 소속 회사 FK (Parent company foreign key)
        email: 로그인 이메일 (Login email, unique per company)
        name: 표시 이름 (Display name, used in presence and previews)
        role: 역할 (ADMIN | EMPLOYEE)
        password_hash: bcrypt 해시된 비밀번호 (bcrypt-hashed password)
        is_active: 활성 상태 (Active status, soft-delete pattern)
        created_at: 생성 일시 UTC (Creation timestamp)
        updated_at: 수정 일시 UTC (Last update timestamp)
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # 소속 회사 FK — Parent company (CASCADE: 회사 삭제 시 사용자도 삭제)
    company_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # 역할 — "ADMIN" | "EMPLOYEE"
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=UserRole.EMPLOYEE.value)
    # 비밀번호 해시 — bcrypt hashed password (평문 저장 금지, never store plaintext)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("company_id", "email", name="uq_user_company_email"),
    )

    company = relationship("Company", back_populates="users")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value
