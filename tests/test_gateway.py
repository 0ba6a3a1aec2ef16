"""Socket.IO 게이트웨이 테스트 — 핸드셰이크, 이벤트 핸들러, 접속 상태.

Socket.IO gateway tests. Handlers are called directly with a sid, the way
python-socketio dispatches them; the transport emit is recorded.
"""

import asyncio
from datetime import timedelta

import pytest
import socketio
from socketio import exceptions as sio_exceptions
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.main import Realtime, build_realtime
from app.models import Chat, Message, Notification, User
from app.realtime.auth import HandshakeAuthenticator, HandshakeRejected, extract_token
from app.realtime.gateway import GENERIC_ERROR
from app.realtime.registry import chat_channel
from tests.conftest import RecordingEmitter, create_user, make_token


def _environ(token: str) -> dict:
    return {"QUERY_STRING": f"token={token}"}


async def _connect(realtime: Realtime, sid: str, user: User) -> None:
    await realtime.gateway.on_connect(sid, _environ(make_token(user)), None)


class TestExtractToken:
    """핸드셰이크 토큰 추출 테스트."""

    def test_auth_payload_wins(self):
        environ = {"QUERY_STRING": "token=from-query", "HTTP_AUTHORIZATION": "Bearer from-header"}
        assert extract_token(environ, {"token": "from-auth"}) == "from-auth"

    def test_query_string(self):
        assert extract_token({"QUERY_STRING": "EIO=4&transport=websocket&token=abc"}, None) == "abc"

    def test_authorization_header(self):
        assert extract_token({"HTTP_AUTHORIZATION": "Bearer abc"}, None) == "abc"

    def test_asgi_scope_headers(self):
        environ = {"asgi.scope": {"query_string": b"", "headers": [(b"authorization", b"Bearer abc")]}}
        assert extract_token(environ, None) == "abc"

    @pytest.mark.parametrize(
        "environ, auth",
        [
            ({}, None),
            ({"QUERY_STRING": "token="}, {"token": ""}),
            ({"HTTP_AUTHORIZATION": "Basic abc"}, None),
        ],
    )
    def test_missing(self, environ, auth):
        assert extract_token(environ, auth) is None


class TestHandshake:
    """핸드셰이크 인증 테스트."""

    async def test_connect_registers_and_announces(
        self, realtime: Realtime, emitter: RecordingEmitter, alice: User, bob: User,
    ):
        await _connect(realtime, "a", alice)
        await _connect(realtime, "b", bob)

        assert "a" in realtime.registry and "b" in realtime.registry
        # 접속한 본인에게는 알리지 않음 (never announced to itself)
        assert emitter.recipients("user-online") == ["a"]
        assert emitter.received("a", "user-online") == [{"userId": str(bob.id), "name": "Bob"}]

    async def test_connect_with_auth_payload(self, realtime: Realtime, alice: User):
        await realtime.gateway.on_connect("a", {}, {"token": make_token(alice)})

        assert realtime.registry.get("a").principal.user_id == alice.id

    async def test_online_announcement_stays_in_company(
        self, realtime: Realtime, emitter: RecordingEmitter, alice: User, other_company_user: User,
    ):
        await _connect(realtime, "a", alice)
        await _connect(realtime, "m", other_company_user)

        assert emitter.recipients("user-online") == []

    @pytest.mark.parametrize("environ", [{}, {"QUERY_STRING": "token=not-a-jwt"}])
    async def test_bad_token_is_refused(self, realtime: Realtime, emitter: RecordingEmitter, environ):
        with pytest.raises(sio_exceptions.ConnectionRefusedError) as exc_info:
            await realtime.gateway.on_connect("x", environ, None)

        assert exc_info.value.error_args == {"message": "unauthorized"}
        assert len(realtime.registry) == 0
        assert emitter.calls == []

    async def test_expired_token_is_refused(self, realtime: Realtime, alice: User):
        token = make_token(alice, expires_delta=timedelta(seconds=-1))

        with pytest.raises(sio_exceptions.ConnectionRefusedError) as exc_info:
            await realtime.gateway.on_connect("a", _environ(token), None)

        assert exc_info.value.error_args == {"message": "jwt_expired"}
        assert "a" not in realtime.registry

    async def test_inactive_user_is_refused(self, db: AsyncSession, realtime: Realtime, company):
        gone = await create_user(db, company, "Gone", is_active=False)

        with pytest.raises(sio_exceptions.ConnectionRefusedError):
            await realtime.gateway.on_connect("g", _environ(make_token(gone)), None)
        assert len(realtime.registry) == 0

    async def test_reasons(self, session_factory: async_sessionmaker[AsyncSession], alice: User):
        authenticator = HandshakeAuthenticator(session_factory, timeout=5)

        with pytest.raises(HandshakeRejected) as missing:
            await authenticator.authenticate({})
        with pytest.raises(HandshakeRejected) as expired:
            await authenticator.authenticate(
                _environ(make_token(alice, expires_delta=timedelta(seconds=-1)))
            )

        assert missing.value.reason == "unauthorized"
        assert expired.value.reason == "jwt_expired"

    async def test_slow_verification_times_out(self):
        class _SlowSession:
            async def __aenter__(self):
                await asyncio.sleep(1)

            async def __aexit__(self, *exc_info):
                return False

        authenticator = HandshakeAuthenticator(lambda: _SlowSession(), timeout=0.01)

        with pytest.raises(HandshakeRejected) as exc_info:
            await authenticator.authenticate(_environ("any-token"))
        assert exc_info.value.reason == "auth_timeout"


class TestDisconnect:
    """연결 해제 테스트."""

    async def test_disconnect_announces_offline_and_cleans_up(
        self, realtime: Realtime, emitter: RecordingEmitter, group_chat: Chat, alice: User, bob: User,
    ):
        await _connect(realtime, "a", alice)
        await _connect(realtime, "b", bob)
        await realtime.gateway.on_join_chat("a", {"chatId": str(group_chat.id)})
        emitter.clear()

        await realtime.gateway.on_disconnect("a", "client disconnect")

        assert "a" not in realtime.registry
        assert list(realtime.router.resolve(chat_channel(group_chat.id))) == []
        assert emitter.recipients("user-offline") == ["b"]
        assert emitter.received("b", "user-offline") == [{"userId": str(alice.id), "name": "Alice"}]

    async def test_second_disconnect_is_noop(self, realtime: Realtime, emitter: RecordingEmitter, alice: User):
        await _connect(realtime, "a", alice)
        await realtime.gateway.on_disconnect("a")
        emitter.clear()

        await realtime.gateway.on_disconnect("a")

        assert emitter.calls == []


class TestChatEvents:
    """join-chat / leave-chat / send-message 이벤트 테스트."""

    async def test_join_accepts_dict_and_string(self, realtime: Realtime, group_chat: Chat, alice: User):
        await _connect(realtime, "a", alice)

        assert await realtime.gateway.on_join_chat("a", {"chatId": str(group_chat.id)}) == {"ok": True}
        assert await realtime.gateway.on_join_chat("a", str(group_chat.id)) == {"ok": True}
        assert [c.sid for c in realtime.router.resolve(chat_channel(group_chat.id))] == ["a"]

        assert await realtime.gateway.on_leave_chat("a", str(group_chat.id)) == {"ok": True}
        assert list(realtime.router.resolve(chat_channel(group_chat.id))) == []

    async def test_join_with_bad_chat_id_reports_error(
        self, realtime: Realtime, emitter: RecordingEmitter, alice: User,
    ):
        await _connect(realtime, "a", alice)

        ack = await realtime.gateway.on_join_chat("a", {"chatId": "nope"})

        assert ack == {"ok": False, "error": "Invalid chat id"}
        assert emitter.received("a", "error") == [{"message": "Invalid chat id"}]

    async def test_events_from_unregistered_sid_are_dropped(
        self, realtime: Realtime, emitter: RecordingEmitter, group_chat: Chat,
    ):
        assert await realtime.gateway.on_join_chat("ghost", str(group_chat.id)) is None
        assert await realtime.gateway.on_send_message("ghost", {"chatId": str(group_chat.id)}) is None
        assert emitter.calls == []

    async def test_send_message_acks_and_fans_out(
        self, db: AsyncSession, realtime: Realtime, emitter: RecordingEmitter,
        group_chat: Chat, alice: User, bob: User,
    ):
        await _connect(realtime, "a", alice)
        await _connect(realtime, "b", bob)
        await realtime.gateway.on_join_chat("b", str(group_chat.id))
        emitter.clear()

        ack = await realtime.gateway.on_send_message("a", {"chatId": str(group_chat.id), "content": "on my way"})

        assert ack["ok"] is True
        assert ack["message"]["content"] == "on my way"
        assert emitter.received("b", "message-received") == [
            {"chatId": str(group_chat.id), "message": ack["message"]}
        ]
        assert len(emitter.received("b", "notification")) == 1
        count = (await db.execute(select(func.count()).select_from(Message))).scalar_one()
        assert count == 1

    async def test_send_message_as_non_participant(
        self, db: AsyncSession, realtime: Realtime, emitter: RecordingEmitter,
        group_chat: Chat, dave: User,
    ):
        await _connect(realtime, "d", dave)

        ack = await realtime.gateway.on_send_message("d", {"chatId": str(group_chat.id), "content": "hi"})

        assert ack == {"ok": False, "error": "Not a chat participant"}
        assert emitter.received("d", "error") == [{"message": "Not a chat participant"}]
        assert emitter.recipients("message-received") == []
        count = (await db.execute(select(func.count()).select_from(Message))).scalar_one()
        assert count == 0

    async def test_send_message_without_content(
        self, realtime: Realtime, emitter: RecordingEmitter, group_chat: Chat, alice: User,
    ):
        await _connect(realtime, "a", alice)

        ack = await realtime.gateway.on_send_message("a", {"chatId": str(group_chat.id), "content": ""})

        assert ack["ok"] is False
        assert emitter.received("a", "error") == [{"message": "Message content or attachments required"}]

    @pytest.mark.parametrize(
        "fields, error",
        [
            ({"content": "", "attachments": "photo.png"}, "Invalid attachments"),
            ({"content": "", "attachments": {"url": "https://files.test/a.png"}}, "Invalid attachments"),
            ({"content": 123}, "Invalid message content"),
            ({"content": ["hi"]}, "Invalid message content"),
        ],
    )
    async def test_send_message_rejects_wrong_types(
        self, db: AsyncSession, realtime: Realtime, emitter: RecordingEmitter,
        group_chat: Chat, alice: User, fields, error,
    ):
        await _connect(realtime, "a", alice)

        ack = await realtime.gateway.on_send_message("a", {"chatId": str(group_chat.id), **fields})

        assert ack == {"ok": False, "error": error}
        assert emitter.received("a", "error") == [{"message": error}]
        count = (await db.execute(select(func.count()).select_from(Message))).scalar_one()
        assert count == 0

    async def test_send_message_with_list_type_is_bad_request(
        self, realtime: Realtime, emitter: RecordingEmitter, group_chat: Chat, alice: User,
    ):
        await _connect(realtime, "a", alice)

        ack = await realtime.gateway.on_send_message(
            "a", {"chatId": str(group_chat.id), "content": "hi", "type": ["TEXT"]}
        )

        assert ack == {"ok": False, "error": "Unknown message type: ['TEXT']"}
        assert emitter.received("a", "error") != [{"message": GENERIC_ERROR}]

    async def test_unexpected_failure_is_generic(
        self, realtime: Realtime, emitter: RecordingEmitter, group_chat: Chat, alice: User, monkeypatch,
    ):
        await _connect(realtime, "a", alice)

        async def broken(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(realtime.chat_service, "send_message", broken)

        ack = await realtime.gateway.on_send_message("a", {"chatId": str(group_chat.id), "content": "hi"})

        assert ack == {"ok": False, "error": GENERIC_ERROR}
        assert emitter.received("a", "error") == [{"message": GENERIC_ERROR}]


class TestNotificationEvents:
    """mark-notification-read 이벤트 테스트."""

    async def test_mark_read(self, db: AsyncSession, realtime: Realtime, alice: User, bob: User):
        mine = Notification(
            user_id=alice.id, company_id=alice.company_id, type="SYSTEM", title="Rota", content="Published",
        )
        theirs = Notification(
            user_id=bob.id, company_id=bob.company_id, type="SYSTEM", title="Rota", content="Published",
        )
        db.add_all([mine, theirs])
        await db.commit()
        await _connect(realtime, "a", alice)

        assert await realtime.gateway.on_mark_notification_read("a", {"notificationId": str(mine.id)}) == {"ok": True}
        assert await realtime.gateway.on_mark_notification_read("a", {"notificationId": str(theirs.id)}) == {"ok": False}

        await db.refresh(mine)
        await db.refresh(theirs)
        assert mine.is_read is True
        assert theirs.is_read is False

    async def test_invalid_id_reports_error(self, realtime: Realtime, emitter: RecordingEmitter, alice: User):
        await _connect(realtime, "a", alice)

        ack = await realtime.gateway.on_mark_notification_read("a", {"notificationId": 42})

        assert ack == {"ok": False, "error": "Invalid notification id"}


class TestLocationUpdate:
    """location-update 이벤트 테스트."""

    async def test_relayed_to_company_except_sender(
        self, realtime: Realtime, emitter: RecordingEmitter, alice: User, bob: User, other_company_user: User,
    ):
        await _connect(realtime, "a", alice)
        await _connect(realtime, "b", bob)
        await _connect(realtime, "m", other_company_user)
        emitter.clear()

        ack = await realtime.gateway.on_location_update("a", {"latitude": 37.5665, "longitude": 126.978})

        assert ack == {"ok": True}
        assert emitter.recipients("user-location-update") == ["b"]
        payload = emitter.received("b", "user-location-update")[0]
        assert payload["userId"] == str(alice.id)
        assert payload["name"] == "Alice"
        assert (payload["latitude"], payload["longitude"]) == (37.5665, 126.978)
        assert payload["timestamp"]

    @pytest.mark.parametrize("data", [None, {"latitude": "north"}, {"latitude": 1.0}])
    async def test_invalid_location(self, realtime: Realtime, emitter: RecordingEmitter, alice: User, data):
        await _connect(realtime, "a", alice)

        ack = await realtime.gateway.on_location_update("a", data)

        assert ack == {"ok": False, "error": "Invalid location"}
        assert emitter.recipients("user-location-update") == []


class TestAttach:
    """AsyncServer 핸들러 등록 테스트."""

    def test_handlers_registered(self, emitter: RecordingEmitter, session_factory):
        sio = socketio.AsyncServer(async_mode="asgi")

        build_realtime(emitter, session_factory, sio=sio)

        assert {
            "connect",
            "disconnect",
            "join-chat",
            "leave-chat",
            "send-message",
            "mark-notification-read",
            "location-update",
        } <= set(sio.handlers["/"])

    def test_attach_without_server(self, realtime: Realtime):
        with pytest.raises(RuntimeError):
            realtime.gateway.attach()
