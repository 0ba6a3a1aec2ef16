"""앱 채팅 API 테스트.

App chat API tests — Chats, history, sending, read receipts and presence
under /api/v1/app/.
"""

import uuid

import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.main import Realtime
from app.models import Chat, User
from tests.conftest import RecordingEmitter, auth_header, make_token, principal

APP = "/api/v1/app"


@pytest_asyncio.fixture
async def alice_token(alice: User) -> str:
    return make_token(alice)


class TestAuth:
    """인증 테스트."""

    async def test_health_is_public(self, client: AsyncClient):
        res = await client.get("/health")
        assert res.status_code == 200
        assert res.json() == {"status": "ok"}

    async def test_missing_token(self, client: AsyncClient):
        res = await client.get(f"{APP}/chat")
        assert res.status_code == 401

    async def test_garbage_token(self, client: AsyncClient):
        res = await client.get(f"{APP}/chat", headers=auth_header("garbage"))
        assert res.status_code == 401


class TestChats:
    """채팅방 조회/생성 테스트."""

    async def test_list_my_chats(self, client: AsyncClient, group_chat: Chat, alice_token: str):
        res = await client.get(f"{APP}/chat", headers=auth_header(alice_token))
        assert res.status_code == 200
        chats = res.json()["chats"]
        assert [c["id"] for c in chats] == [str(group_chat.id)]
        assert sorted(p["name"] for p in chats[0]["participants"]) == ["Alice", "Bob", "Carol"]
        assert chats[0]["last_message"] is None

    async def test_non_member_sees_no_chats(self, client: AsyncClient, group_chat: Chat, dave: User):
        res = await client.get(f"{APP}/chat", headers=auth_header(make_token(dave)))
        assert res.status_code == 200
        assert res.json()["chats"] == []

    async def test_get_chat(self, client: AsyncClient, group_chat: Chat, alice_token: str):
        res = await client.get(f"{APP}/chat/{group_chat.id}", headers=auth_header(alice_token))
        assert res.status_code == 200
        assert res.json()["name"] == "Floor team"

    async def test_get_chat_as_non_member(self, client: AsyncClient, group_chat: Chat, dave: User):
        res = await client.get(f"{APP}/chat/{group_chat.id}", headers=auth_header(make_token(dave)))
        assert res.status_code == 404

    async def test_create_group_chat(self, client: AsyncClient, alice_token: str, bob: User, dave: User):
        res = await client.post(f"{APP}/chat", json={
            "name": "Closing crew",
            "type": "GROUP",
            "participant_ids": [str(bob.id), str(dave.id)],
        }, headers=auth_header(alice_token))
        assert res.status_code == 201
        data = res.json()
        assert data["type"] == "GROUP"
        # 생성자는 항상 참가자 (creator always joins)
        assert sorted(p["name"] for p in data["participants"]) == ["Alice", "Bob", "Dave"]

    async def test_direct_chat_is_reused(self, client: AsyncClient, alice: User, alice_token: str, bob: User):
        first = await client.post(
            f"{APP}/chat", json={"type": "DIRECT", "participant_ids": [str(bob.id)]}, headers=auth_header(alice_token)
        )
        # 상대방이 같은 1:1 채팅방을 다시 요청 (the other side asks for the same pair)
        second = await client.post(
            f"{APP}/chat", json={"type": "DIRECT", "participant_ids": [str(alice.id)]}, headers=auth_header(make_token(bob))
        )

        assert first.status_code == 201
        assert second.status_code == 200
        assert second.json()["id"] == first.json()["id"]

    async def test_create_with_foreign_user(
        self, client: AsyncClient, alice_token: str, other_company_user: User,
    ):
        res = await client.post(f"{APP}/chat", json={
            "type": "GROUP",
            "participant_ids": [str(other_company_user.id)],
        }, headers=auth_header(alice_token))
        assert res.status_code == 400
        assert res.json()["detail"] == "Invalid participants"

    async def test_leave_chat(self, client: AsyncClient, group_chat: Chat, alice_token: str):
        res = await client.post(f"{APP}/chat/{group_chat.id}/leave", headers=auth_header(alice_token))
        assert res.status_code == 200
        assert res.json() == {"message": "Left chat"}

        res = await client.get(f"{APP}/chat/{group_chat.id}", headers=auth_header(alice_token))
        assert res.status_code == 404


class TestMessages:
    """메시지 전송/조회/읽음 테스트."""

    async def test_send_message(
        self, client: AsyncClient, realtime: Realtime, emitter: RecordingEmitter,
        group_chat: Chat, alice_token: str, bob: User,
    ):
        realtime.registry.register("b", principal(bob))

        res = await client.post(
            f"{APP}/chat/{group_chat.id}/messages",
            json={"content": "Can someone cover Friday?"},
            headers=auth_header(alice_token),
        )

        assert res.status_code == 201
        message = res.json()["message"]
        assert message["content"] == "Can someone cover Friday?"
        assert message["type"] == "TEXT"
        assert message["sender"]["name"] == "Alice"
        assert emitter.recipients("message-received") == ["b"]
        assert emitter.recipients("notification") == ["b"]

    async def test_send_empty_message(self, client: AsyncClient, group_chat: Chat, alice_token: str):
        res = await client.post(
            f"{APP}/chat/{group_chat.id}/messages",
            json={"content": "", "attachments": []},
            headers=auth_header(alice_token),
        )
        assert res.status_code == 400

    async def test_send_unknown_type(self, client: AsyncClient, group_chat: Chat, alice_token: str):
        res = await client.post(
            f"{APP}/chat/{group_chat.id}/messages",
            json={"content": "hi", "type": "VIDEO"},
            headers=auth_header(alice_token),
        )
        assert res.status_code == 422

    async def test_send_as_non_member(
        self, client: AsyncClient, emitter: RecordingEmitter, group_chat: Chat, dave: User,
    ):
        res = await client.post(
            f"{APP}/chat/{group_chat.id}/messages",
            json={"content": "hi"},
            headers=auth_header(make_token(dave)),
        )
        assert res.status_code == 404
        assert emitter.calls == []

    async def test_send_to_unknown_chat(self, client: AsyncClient, alice_token: str):
        res = await client.post(
            f"{APP}/chat/{uuid.uuid4()}/messages",
            json={"content": "hi"},
            headers=auth_header(alice_token),
        )
        assert res.status_code == 404

    async def test_history_marks_read(
        self, client: AsyncClient, db: AsyncSession, realtime: Realtime,
        group_chat: Chat, alice: User, bob: User,
    ):
        for text in ("one", "two", "three"):
            await realtime.chat_service.send_message(db, group_chat.id, principal(alice), content=text)

        res = await client.get(
            f"{APP}/chat/{group_chat.id}/messages",
            params={"limit": 2},
            headers=auth_header(make_token(bob)),
        )

        assert res.status_code == 200
        data = res.json()
        assert [m["content"] for m in data["messages"]] == ["two", "three"]
        assert data["has_more"] is True

        res = await client.get(
            f"{APP}/chat/{group_chat.id}/messages",
            headers=auth_header(make_token(bob)),
        )
        for m in res.json()["messages"]:
            assert str(bob.id) in m["read_by"]

    async def test_history_as_non_member(self, client: AsyncClient, group_chat: Chat, dave: User):
        res = await client.get(f"{APP}/chat/{group_chat.id}/messages", headers=auth_header(make_token(dave)))
        assert res.status_code == 404

    async def test_mark_message_read_is_idempotent(
        self, client: AsyncClient, db: AsyncSession, realtime: Realtime,
        group_chat: Chat, alice: User, carol: User,
    ):
        message = await realtime.chat_service.send_message(db, group_chat.id, principal(alice), content="hi")
        url = f"{APP}/chat/messages/{message['id']}/read"

        first = await client.patch(url, headers=auth_header(make_token(carol)))
        second = await client.patch(url, headers=auth_header(make_token(carol)))

        assert first.status_code == 200
        assert second.status_code == 200
        assert sorted(second.json()["read_by"]) == sorted([str(alice.id), str(carol.id)])
        assert second.json()["message_id"] == message["id"]

    async def test_mark_unknown_message_read(self, client: AsyncClient, alice_token: str):
        res = await client.patch(f"{APP}/chat/messages/{uuid.uuid4()}/read", headers=auth_header(alice_token))
        assert res.status_code == 404


class TestPresence:
    """접속 상태 조회 테스트."""

    async def test_online_users_in_my_company(
        self, client: AsyncClient, realtime: Realtime,
        alice: User, bob: User, other_company_user: User, alice_token: str,
    ):
        realtime.registry.register("b-phone", principal(bob))
        realtime.registry.register("b-laptop", principal(bob))
        realtime.registry.register("m", principal(other_company_user))

        res = await client.get(f"{APP}/presence/online", headers=auth_header(alice_token))

        assert res.status_code == 200
        assert res.json() == [{"user_id": str(bob.id), "name": "Bob", "role": "EMPLOYEE"}]
