"""채팅 서비스 — 메시지 전송 및 알림 팬아웃.

Chat Service — Turns one send request into durable writes plus live
pushes. HTTP and Socket.IO both go through ``send_message`` so the two
entry points cannot drift apart.

Send Flow:
    1. 영속 참가자 확인 (Durable participant check; tenant must match)
    2. 내용/첨부 검사 (Content or at least one attachment)
    3. 메시지 + 보낸 사람 읽음 행 저장 후 커밋 (Message and sender read row, one commit)
    4. 채팅방 마지막 활동 시각 갱신 (Touch last activity, best effort)
    5. 수신자별 알림 생성 (One notification per other participant, best effort)
    6. message-received / notification 전달 (Live delivery, best effort)

Steps 1-2 fail before any write. A failure in step 3 rolls back and
surfaces as InternalError. Failures in 4-6 are logged; the send still
succeeds because the message is already stored.
"""

import json
import logging
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.chat import Chat, ChatType, Message, MessageType
from app.models.notification import Notification
from app.realtime.registry import Principal, chat_channel, user_channel
from app.realtime.router import ChannelRouter
from app.repositories.chat_repository import ChatParticipants, chat_repository
from app.repositories.message_repository import message_repository
from app.repositories.user_repository import user_repository
from app.services.notification_service import NotificationService
from app.utils.exceptions import BadRequestError, ForbiddenError, InternalError, NotFoundError

logger = logging.getLogger(__name__)


def serialize_message(message: Message) -> dict[str, Any]:
    """메시지를 JSON 직렬화 가능한 딕셔너리로 변환합니다.

    JSON-safe message dict shared by HTTP responses and Socket.IO events.
    Requires ``sender`` and ``reads`` to be loaded.
    """
    try:
        attachments = json.loads(message.attachments or "[]")
    except ValueError:
        attachments = []
    sender = message.sender
    return {
        "id": str(message.id),
        "chat_id": str(message.chat_id),
        "sender_id": str(message.sender_id),
        "sender": {"id": str(sender.id), "name": sender.name} if sender is not None else None,
        "content": message.content,
        "type": message.type,
        "attachments": attachments,
        "read_by": [str(r.user_id) for r in message.reads],
        "created_at": message.created_at.isoformat(),
    }


def serialize_chat(chat: Chat, last_message: Message | None = None) -> dict[str, Any]:
    """채팅방 응답 딕셔너리 (participants.user 로드 필요)."""
    return {
        "id": str(chat.id),
        "name": chat.name,
        "type": chat.type,
        "participants": [
            {"user_id": str(p.user_id), "name": p.user.name}
            for p in chat.participants
        ],
        "last_message": serialize_message(last_message) if last_message is not None else None,
        "updated_at": chat.updated_at,
    }


class ChatService:
    """채팅 서비스.

    Args:
        router: 채널 라우터 (Channel router for live delivery)
        notifications: 알림 서비스 (Notification fan-out)
        page_size: 메시지 조회 기본 페이지 크기 (Default pull page size)
    """

    def __init__(
        self,
        router: ChannelRouter,
        notifications: NotificationService,
        page_size: int = 50,
    ) -> None:
        self._router = router
        self._notifications = notifications
        self.page_size = page_size

    async def _participants_for(
        self,
        db: AsyncSession,
        chat_id: UUID,
        user: Principal,
    ) -> ChatParticipants:
        participants = await chat_repository.find_chat_participants(db, chat_id)
        # 다른 회사의 채팅방은 존재하지 않는 것으로 취급 (Other tenants' chats read as absent)
        if participants is None or participants.company_id != user.company_id:
            raise NotFoundError("Chat not found")
        if not participants.includes(user.user_id):
            raise ForbiddenError("Not a chat participant")
        return participants

    async def send_message(
        self,
        db: AsyncSession,
        chat_id: UUID,
        sender: Principal,
        content: str | None = None,
        message_type: str = MessageType.TEXT.value,
        attachments: list[Any] | None = None,
    ) -> dict[str, Any]:
        """채팅 메시지를 전송합니다.

        Send one chat message.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            chat_id: 채팅방 UUID (Chat UUID)
            sender: 보낸 사람 (Sending principal)
            content: 본문 (Body text, may be empty if attachments exist)
            message_type: 유형 (TEXT | IMAGE | FILE)
            attachments: 첨부 목록 (Attachment list)

        Returns:
            dict: 저장된 메시지 (Persisted message, serialized)

        Raises:
            NotFoundError: 채팅방 없음 또는 다른 회사 (Unknown chat or other tenant)
            ForbiddenError: 참가자가 아님 (Sender is not a durable participant)
            BadRequestError: 내용과 첨부가 모두 비어 있음 (Empty content and attachments)
            InternalError: 저장 실패 (Persistence failure; nothing stored)
        """
        participants = await self._participants_for(db, chat_id, sender)

        content = content or ""
        attachments = list(attachments or [])
        if not content and not attachments:
            raise BadRequestError("Message content or attachments required")

        message_type = getattr(message_type, "value", message_type)
        if not isinstance(message_type, str) or message_type not in {t.value for t in MessageType}:
            raise BadRequestError(f"Unknown message type: {message_type}")

        try:
            message = await message_repository.insert_message(
                db,
                chat_id=chat_id,
                sender_id=sender.user_id,
                content=content,
                message_type=message_type,
                attachments=attachments,
                initial_readers=[sender.user_id],
            )
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.exception("Failed to persist message in chat %s", chat_id)
            raise InternalError("Failed to send message") from exc

        payload: dict[str, Any] = serialize_message(message)

        try:
            await chat_repository.touch_updated_at(db, chat_id)
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Failed to touch last activity of chat %s", chat_id)

        notifications: list[Notification] = []
        try:
            notifications = await self._notifications.create_for_chat_message(
                db,
                payload,
                company_id=participants.company_id,
                sender_name=sender.name,
                recipient_ids=participants.others(sender.user_id),
            )
        except Exception:
            logger.exception("Notification fan-out failed for message %s", payload["id"])

        await self._deliver(participants, payload, notifications)
        return payload

    async def _deliver(
        self,
        participants: ChatParticipants,
        payload: dict[str, Any],
        notifications: list[Notification],
    ) -> None:
        chat_id = participants.chat_id
        event_payload = {"chatId": str(chat_id), "message": payload}
        channels = [chat_channel(chat_id)] + [user_channel(n.user_id) for n in notifications]
        try:
            # join-chat 구독만으로는 부족, 영속 참가자에게만 전달
            await self._router.broadcast_many(
                channels,
                "message-received",
                event_payload,
                member_ids=set(participants.participant_ids),
            )
        except Exception:
            logger.exception("Live delivery failed for message %s", payload["id"])
        await self._notifications.push(notifications)

    async def mark_read(
        self,
        db: AsyncSession,
        message_id: UUID,
        reader: Principal,
    ) -> list[str]:
        """메시지를 읽음 처리합니다. 이미 읽었으면 no-op.

        Add ``reader`` to the message's reader set; idempotent.

        Returns:
            list[str]: 처리 후 읽음 사용자 ID 목록 (Reader ids afterwards)

        Raises:
            NotFoundError: 메시지 없음 (Unknown message, or another tenant's)
        """
        message: Message | None = await message_repository.get_by_id(db, message_id)
        if message is None:
            raise NotFoundError("Message not found")
        chat: Chat | None = await chat_repository.get_by_id(db, message.chat_id, company_id=reader.company_id)
        if chat is None:
            raise NotFoundError("Message not found")

        try:
            if await message_repository.append_reader(db, message_id, reader.user_id):
                await db.commit()
        except IntegrityError:
            # 동시 요청이 먼저 기록함 — a concurrent call already recorded it
            await db.rollback()

        return [str(uid) for uid in await message_repository.get_reader_ids(db, message_id)]

    async def get_messages(
        self,
        db: AsyncSession,
        chat_id: UUID,
        user: Principal,
        page: int = 1,
        limit: int | None = None,
    ) -> dict[str, Any]:
        """채팅 메시지를 조회하고 읽음 처리합니다.

        Pull one page of history. Fetched newest first, returned oldest
        first for display. Every message someone else sent is marked read
        by ``user``.
        """
        await self._participants_for(db, chat_id, user)
        limit = limit or self.page_size

        messages: Sequence[Message] = await message_repository.list_chat_messages(db, chat_id, page, limit)
        items = [serialize_message(m) for m in reversed(messages)]

        if await message_repository.mark_chat_read_for_user(db, chat_id, user.user_id):
            await db.commit()

        return {"messages": items, "has_more": len(messages) == limit}

    async def list_chats(self, db: AsyncSession, user: Principal) -> list[dict[str, Any]]:
        """참가 중인 채팅방 목록 (Chats of the user, newest activity first)."""
        chats: Sequence[Chat] = await chat_repository.list_for_user(db, user.company_id, user.user_id)
        result: list[dict[str, Any]] = []
        for chat in chats:
            last = await message_repository.latest_message(db, chat.id)
            result.append(serialize_chat(chat, last))
        return result

    async def get_chat(self, db: AsyncSession, chat_id: UUID, user: Principal) -> dict[str, Any]:
        chat: Chat | None = await chat_repository.get_for_member(db, chat_id, user.company_id, user.user_id)
        if chat is None:
            raise NotFoundError("Chat not found")
        last = await message_repository.latest_message(db, chat.id)
        return serialize_chat(chat, last)

    async def create_chat(
        self,
        db: AsyncSession,
        creator: Principal,
        name: str | None,
        chat_type: str,
        participant_ids: list[UUID],
    ) -> tuple[dict[str, Any], bool]:
        """채팅방을 생성합니다. 같은 두 사람의 1:1 채팅방은 재사용합니다.

        Create a chat; the creator is always a participant. A DIRECT chat
        between the same two users is returned instead of duplicated.

        Returns:
            tuple[dict, bool]: (채팅방, 새로 생성 여부) (Chat, whether it was created)

        Raises:
            BadRequestError: 회사 밖 또는 비활성 사용자 포함, 잘못된 1:1 구성
                             (Foreign/inactive participant or malformed direct chat)
        """
        chat_type = getattr(chat_type, "value", chat_type)
        ids: list[UUID] = list(dict.fromkeys([*participant_ids, creator.user_id]))

        if chat_type == ChatType.DIRECT.value:
            if len(ids) != 2:
                raise BadRequestError("A direct chat needs exactly two participants")
            existing = await chat_repository.find_direct_chat(db, creator.company_id, set(ids))
            if existing is not None:
                last = await message_repository.latest_message(db, existing.id)
                return serialize_chat(existing, last), False

        users = await user_repository.get_active_in_company(db, creator.company_id, ids)
        if len(users) != len(ids):
            raise BadRequestError("Invalid participants")

        chat = await chat_repository.create_chat(db, creator.company_id, name, chat_type, ids)
        await db.commit()
        return serialize_chat(chat), True

    async def leave_chat(self, db: AsyncSession, chat_id: UUID, user: Principal) -> None:
        """채팅방에서 나갑니다 (영속 참가자 삭제 + 라이브 구독 해제)."""
        await self._participants_for(db, chat_id, user)
        await chat_repository.remove_participant(db, chat_id, user.user_id)
        await db.commit()
        self._router.leave_all(user.user_id, chat_id)
