"""FastAPI 애플리케이션 엔트리포인트 — 미들웨어, 라우터, Socket.IO 결합.

FastAPI application entry point — Middleware and router registration, plus
the realtime container and the combined ASGI app.

Run:
    uvicorn app.main:asgi_app

``app`` is the bare FastAPI application; ``asgi_app`` serves Socket.IO on
``/{SOCKETIO_PATH}`` and forwards everything else to ``app``.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.database import async_session, engine
from app.middleware.axiom_logging import AxiomLoggingMiddleware
from app.realtime.auth import HandshakeAuthenticator
from app.realtime.gateway import RealtimeGateway
from app.realtime.registry import ConnectionRegistry
from app.realtime.router import ChannelRouter, Emitter
from app.services.chat_service import ChatService
from app.services.notification_service import NotificationService
from app.services.presence_service import PresenceService

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@dataclass
class Realtime:
    """실시간 구성 요소 컨테이너 (Realtime component container).

    Built once per process; every component gets its collaborators through
    its constructor.
    """

    registry: ConnectionRegistry
    router: ChannelRouter
    notifications: NotificationService
    chat_service: ChatService
    presence: PresenceService
    gateway: RealtimeGateway


def build_realtime(
    emit: Emitter,
    session_factory: async_sessionmaker[AsyncSession],
    sio: socketio.AsyncServer | None = None,
) -> Realtime:
    """실시간 구성 요소를 생성하고 연결합니다.

    Args:
        emit: 전송 계층 emit 함수 (Transport emit, ``sio.emit`` in production)
        session_factory: 소켓 이벤트용 세션 팩토리 (Session factory for socket events)
        sio: 핸들러를 등록할 서버, 없으면 등록 생략 (Server to attach handlers to)
    """
    registry = ConnectionRegistry()
    router = ChannelRouter(registry, emit)
    notifications = NotificationService(router, preview_length=settings.NOTIFICATION_PREVIEW_LENGTH)
    chat_service = ChatService(router, notifications, page_size=settings.CHAT_PAGE_SIZE)
    presence = PresenceService(registry, router)
    gateway = RealtimeGateway(
        sio,
        registry=registry,
        router=router,
        authenticator=HandshakeAuthenticator(session_factory, timeout=settings.SOCKET_AUTH_TIMEOUT_SECONDS),
        chat_service=chat_service,
        presence=presence,
        notifications=notifications,
        session_factory=session_factory,
    )
    if sio is not None:
        gateway.attach()
    return Realtime(
        registry=registry,
        router=router,
        notifications=notifications,
        chat_service=chat_service,
        presence=presence,
        gateway=gateway,
    )


def install_realtime(fastapi_app: FastAPI, realtime: Realtime) -> None:
    """HTTP 의존성이 읽는 app.state에 서비스를 노출합니다."""
    fastapi_app.state.realtime = realtime
    fastapi_app.state.registry = realtime.registry
    fastapi_app.state.chat_service = realtime.chat_service
    fastapi_app.state.notification_service = realtime.notifications
    fastapi_app.state.presence_service = realtime.presence


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI) -> AsyncIterator[None]:
    logger.info("%s starting; Socket.IO at /%s", settings.APP_NAME, settings.SOCKETIO_PATH)
    yield
    # 종료 시 레지스트리 정리 (Registry is cleared at shutdown)
    fastapi_app.state.registry.clear()
    await engine.dispose()
    logger.info("%s stopped", settings.APP_NAME)


app: FastAPI = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Axiom API 로깅 미들웨어 — CORS보다 먼저 등록하여 모든 요청을 캡처
app.add_middleware(AxiomLoggingMiddleware)

# CORS 미들웨어 — Cross-Origin Resource Sharing middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """서버 상태 확인 엔드포인트.

    Health check endpoint for load balancers and monitoring.
    """
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# 라우터 등록 — Router registration
# ---------------------------------------------------------------------------
from app.api.admin import admin_router  # noqa: E402
from app.api.app import app_router  # noqa: E402

app.include_router(admin_router, prefix="/api/v1/admin")
app.include_router(app_router, prefix="/api/v1/app")

# ---------------------------------------------------------------------------
# Socket.IO 서버 및 실시간 구성 — Socket.IO server and realtime wiring
# ---------------------------------------------------------------------------
sio: socketio.AsyncServer = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=settings.CORS_ORIGINS,
    logger=False,
    engineio_logger=False,
)

realtime: Realtime = build_realtime(sio.emit, async_session, sio=sio)
install_realtime(app, realtime)

asgi_app = socketio.ASGIApp(sio, other_asgi_app=app, socketio_path=settings.SOCKETIO_PATH)
