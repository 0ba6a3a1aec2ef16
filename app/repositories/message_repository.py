"""메시지 레포지토리 — 메시지 및 읽음 확인 관련 DB 쿼리 담당.

Message Repository — Handles message and read-receipt queries.
"""

import json
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.chat import Message, MessageRead
from app.repositories.base import BaseRepository


class MessageRepository(BaseRepository[Message]):
    """메시지 레포지토리.

    Message repository. Messages are append-only; the reader set is the
    ``message_reads`` relation.

    Extends:
        BaseRepository[Message]
    """

    def __init__(self) -> None:
        super().__init__(Message)

    async def insert_message(
        self,
        db: AsyncSession,
        chat_id: UUID,
        sender_id: UUID,
        content: str,
        message_type: str,
        attachments: list[Any],
        initial_readers: list[UUID],
    ) -> Message:
        """메시지와 초기 읽음 행을 같은 flush로 저장합니다.

        Insert a message together with its initial reader rows in one flush,
        so no committed state exists where the message is unread by them.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            chat_id: 채팅방 UUID (Chat UUID)
            sender_id: 보낸 사람 UUID (Sender UUID)
            content: 본문 (Body text, may be empty)
            message_type: 메시지 유형 (TEXT | IMAGE | FILE)
            attachments: 첨부 목록 (Attachment list, stored JSON-serialized)
            initial_readers: 초기 읽음 사용자 목록 (Initial reader ids, normally [sender])

        Returns:
            Message: 생성된 메시지, sender와 reads가 로드된 상태
                     (Created message with sender and reads loaded)
        """
        message: Message = Message(
            chat_id=chat_id,
            sender_id=sender_id,
            content=content,
            type=message_type,
            attachments=json.dumps(attachments),
        )
        message.reads = [MessageRead(user_id=uid) for uid in dict.fromkeys(initial_readers)]
        db.add(message)
        await db.flush()
        return await self.get_with_readers(db, message.id)

    async def get_with_readers(self, db: AsyncSession, message_id: UUID) -> Message | None:
        """보낸 사람과 읽음 목록을 함께 로드합니다 (Load with sender and reads)."""
        result = await db.execute(
            select(Message)
            .options(selectinload(Message.sender), selectinload(Message.reads))
            .where(Message.id == message_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_reader_ids(self, db: AsyncSession, message_id: UUID) -> list[UUID]:
        """메시지의 읽음 사용자 ID 목록 (Reader ids of a message)."""
        result = await db.execute(
            select(MessageRead.user_id)
            .where(MessageRead.message_id == message_id)
            .order_by(MessageRead.read_at)
        )
        return list(result.scalars().all())

    async def append_reader(
        self,
        db: AsyncSession,
        message_id: UUID,
        user_id: UUID,
    ) -> bool:
        """읽음 목록에 사용자를 추가합니다. 이미 있으면 아무것도 하지 않습니다.

        Append ``user_id`` to the reader set; a no-op when already present.

        Returns:
            bool: 새로 추가되었으면 True (True when a row was added)
        """
        already: bool = await self.has_reader(db, message_id, user_id)
        if already:
            return False
        db.add(MessageRead(message_id=message_id, user_id=user_id))
        await db.flush()
        return True

    async def has_reader(self, db: AsyncSession, message_id: UUID, user_id: UUID) -> bool:
        result = await db.execute(
            select(MessageRead.id).where(
                MessageRead.message_id == message_id,
                MessageRead.user_id == user_id,
            )
        )
        return result.first() is not None

    async def list_chat_messages(
        self,
        db: AsyncSession,
        chat_id: UUID,
        page: int = 1,
        limit: int = 50,
    ) -> Sequence[Message]:
        """채팅방 메시지를 최신순으로 페이지 조회합니다.

        List a page of chat messages, newest first.
        """
        query: Select = (
            select(Message)
            .options(selectinload(Message.sender), selectinload(Message.reads))
            .where(Message.chat_id == chat_id)
            .order_by(Message.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        return result.scalars().all()

    async def latest_message(self, db: AsyncSession, chat_id: UUID) -> Message | None:
        """채팅방의 마지막 메시지 (Most recent message of a chat)."""
        messages: Sequence[Message] = await self.list_chat_messages(db, chat_id, page=1, limit=1)
        return messages[0] if messages else None

    async def mark_chat_read_for_user(
        self,
        db: AsyncSession,
        chat_id: UUID,
        user_id: UUID,
    ) -> int:
        """다른 사람이 보낸 미읽음 메시지를 모두 읽음 처리합니다.

        Add ``user_id`` to the reader set of every message in the chat that
        someone else sent and ``user_id`` has not read yet.

        Returns:
            int: 새로 추가된 읽음 행 수 (Number of reader rows added)
        """
        already_read = select(MessageRead.message_id).where(MessageRead.user_id == user_id)
        result = await db.execute(
            select(Message.id).where(
                Message.chat_id == chat_id,
                Message.sender_id != user_id,
                Message.id.not_in(already_read),
            )
        )
        unread_ids: list[UUID] = list(result.scalars().all())
        for message_id in unread_ids:
            db.add(MessageRead(message_id=message_id, user_id=user_id))
        if unread_ids:
            await db.flush()
        return len(unread_ids)


# 싱글턴 인스턴스 — Singleton instance
message_repository: MessageRepository = MessageRepository()
