"""테스트 인프라 — 인메모리 SQLite DB, 세션, httpx 클라이언트, 실시간 픽스처.

Test infrastructure — In-memory SQLite (aiosqlite) engine per test, a shared
session, an httpx client over the FastAPI app, and a realtime container
whose transport emit is recorded instead of sent.

StaticPool keeps every session on the one in-memory connection, so data
committed by a fixture is visible to socket handlers that open their own
session. Fixtures commit what they create.
"""

from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.main import Realtime, app, build_realtime, install_realtime
from app.models import Chat, ChatParticipant, ChatType, Company, User, UserRole
from app.realtime.registry import Principal
from app.utils.jwt import create_access_token
from app.utils.password import hash_password

TEST_DATABASE_URL = "sqlite+aiosqlite://"


class RecordingEmitter:
    """``sio.emit`` 대역 — 호출을 기록합니다 (Stands in for ``sio.emit``)."""

    def __init__(self) -> None:
        self.calls: list[tuple[str | None, str, Any]] = []
        self.failing_sids: set[str] = set()

    async def __call__(self, event: str, data: Any = None, to: str | None = None, **kwargs: Any) -> None:
        if to in self.failing_sids:
            raise RuntimeError("transport closed")
        self.calls.append((to, event, data))

    def received(self, sid: str, event: str | None = None) -> list[Any]:
        """sid가 받은 페이로드 목록 (Payloads delivered to ``sid``)."""
        return [data for to, name, data in self.calls if to == sid and (event is None or name == event)]

    def recipients(self, event: str) -> list[str | None]:
        return [to for to, name, _ in self.calls if name == event]

    def clear(self) -> None:
        self.calls.clear()


# ---------------------------------------------------------------------------
# Function-scoped: 엔진, 세션, 실시간 구성, 클라이언트
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """테스트마다 새 인메모리 DB와 스키마를 생성합니다."""
    eng = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """각 테스트에 격리된 DB 세션을 제공합니다."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def emitter() -> RecordingEmitter:
    return RecordingEmitter()


@pytest.fixture
def realtime(emitter: RecordingEmitter, session_factory: async_sessionmaker[AsyncSession]) -> Realtime:
    """기록용 emit으로 구성한 실시간 컨테이너 (Realtime container on the recording emitter)."""
    return build_realtime(emitter, session_factory)


@pytest_asyncio.fixture
async def client(db: AsyncSession, realtime: Realtime) -> AsyncGenerator[AsyncClient, None]:
    """FastAPI 테스트 클라이언트 — DB 세션과 실시간 서비스를 오버라이드합니다."""
    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db

    original: Realtime = app.state.realtime
    app.dependency_overrides[get_db] = _override_get_db
    install_realtime(app, realtime)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    install_realtime(app, original)


# ---------------------------------------------------------------------------
# 헬퍼: 테스트용 데이터 생성
# ---------------------------------------------------------------------------
async def create_company(db: AsyncSession, name: str = "Test Shift Co.") -> Company:
    company = Company(name=name)
    db.add(company)
    await db.commit()
    return company


async def create_user(
    db: AsyncSession,
    company: Company,
    name: str,
    role: str = UserRole.EMPLOYEE.value,
    is_active: bool = True,
) -> User:
    user = User(
        company_id=company.id,
        email=f"{name.lower()}@{str(company.id)[:8]}.test",
        name=name,
        role=role,
        password_hash=hash_password("password123", rounds=4),
        is_active=is_active,
    )
    db.add(user)
    await db.commit()
    return user


async def create_chat(
    db: AsyncSession,
    company: Company,
    members: list[User],
    chat_type: str = ChatType.GROUP.value,
    name: str | None = "Floor team",
) -> Chat:
    chat = Chat(company_id=company.id, name=name, type=chat_type)
    chat.participants = [ChatParticipant(user_id=u.id) for u in members]
    db.add(chat)
    await db.commit()
    return chat


@pytest_asyncio.fixture
async def company(db: AsyncSession) -> Company:
    return await create_company(db)


@pytest_asyncio.fixture
async def admin_user(db: AsyncSession, company: Company) -> User:
    return await create_user(db, company, "Admin", role=UserRole.ADMIN.value)


@pytest_asyncio.fixture
async def alice(db: AsyncSession, company: Company) -> User:
    return await create_user(db, company, "Alice")


@pytest_asyncio.fixture
async def bob(db: AsyncSession, company: Company) -> User:
    return await create_user(db, company, "Bob")


@pytest_asyncio.fixture
async def carol(db: AsyncSession, company: Company) -> User:
    return await create_user(db, company, "Carol")


@pytest_asyncio.fixture
async def dave(db: AsyncSession, company: Company) -> User:
    """채팅방에 참가하지 않은 같은 회사 직원 (Same company, not in the chat)."""
    return await create_user(db, company, "Dave")


@pytest_asyncio.fixture
async def group_chat(db: AsyncSession, company: Company, alice: User, bob: User, carol: User) -> Chat:
    return await create_chat(db, company, [alice, bob, carol])


@pytest_asyncio.fixture
async def other_company_user(db: AsyncSession) -> User:
    other = await create_company(db, name="Other Co.")
    return await create_user(db, other, "Mallory")


def principal(user: User) -> Principal:
    return Principal.from_user(user)


def make_token(user: User, **overrides: Any) -> str:
    """테스트용 JWT 액세스 토큰을 생성합니다."""
    expires_delta = overrides.pop("expires_delta", None)
    payload: dict[str, Any] = {"sub": str(user.id), "company": str(user.company_id), "role": user.role}
    payload.update(overrides)
    return create_access_token(payload, expires_delta=expires_delta)


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
