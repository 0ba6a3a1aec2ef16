"""초기 데이터 시드 스크립트 — 데모 회사, 사용자, 그룹 채팅 생성.

Seed script — Creates a demo company, one admin, two employees and a group
chat, then prints an access token per user for trying the API and the
Socket.IO handshake.

Usage:
    python -m app.seed

Creates:
    - 1개 회사: "Demo Shift Co." (1 company)
    - 1개 관리자: admin@demo.test / admin123 (1 ADMIN)
    - 2개 직원: alice@demo.test, bob@demo.test / employee123 (2 EMPLOYEE)
    - 1개 그룹 채팅: "All staff" (1 GROUP chat with all three)
"""

import asyncio

from sqlalchemy import select

from app.database import Base, async_session, engine
from app.models import Chat, ChatParticipant, ChatType, Company, User, UserRole
from app.utils.jwt import create_access_token
from app.utils.password import hash_password


async def seed() -> None:
    """데이터베이스를 데모 데이터로 시드합니다.

    Idempotent: 이미 시드된 경우 건너뜁니다 (Skips if a company exists).
    """
    # 테이블 생성 — Create all tables from ORM metadata
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as db:
        result = await db.execute(select(Company).limit(1))
        if result.scalar_one_or_none():
            print("Already seeded. Skipping.")
            return

        company: Company = Company(name="Demo Shift Co.")
        db.add(company)
        await db.flush()

        users_data: list[tuple[str, str, str, str]] = [
            ("admin@demo.test", "Demo Admin", UserRole.ADMIN.value, "admin123"),
            ("alice@demo.test", "Alice", UserRole.EMPLOYEE.value, "employee123"),
            ("bob@demo.test", "Bob", UserRole.EMPLOYEE.value, "employee123"),
        ]
        users: list[User] = []
        for email, name, role, password in users_data:
            user: User = User(
                company_id=company.id,
                email=email,
                name=name,
                role=role,
                password_hash=hash_password(password),
            )
            db.add(user)
            users.append(user)
        await db.flush()

        chat: Chat = Chat(company_id=company.id, name="All staff", type=ChatType.GROUP.value)
        chat.participants = [ChatParticipant(user_id=u.id) for u in users]
        db.add(chat)

        await db.commit()

        print(f"Seeded: company={company.id}, chat={chat.id}")
        for user in users:
            token: str = create_access_token({"sub": str(user.id), "company": str(company.id), "role": user.role})
            print(f"  {user.email} ({user.role}): {token}")


if __name__ == "__main__":
    asyncio.run(seed())
