"""채팅 레포지토리 — 채팅방 및 참가자 관련 DB 쿼리 담당.

Chat Repository — Handles chat thread and durable participant queries.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Sequence
from uuid import UUID

from sqlalchemy import Select, delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.chat import Chat, ChatParticipant, ChatType
from app.repositories.base import BaseRepository


@dataclass(frozen=True)
class ChatParticipants:
    """채팅방의 영속 참가자 스냅샷.

    Snapshot of a chat's tenant and durable participant ids, as read at one
    point in time.
    """

    chat_id: UUID
    company_id: UUID
    participant_ids: list[UUID] = field(default_factory=list)

    def includes(self, user_id: UUID) -> bool:
        return user_id in self.participant_ids

    def others(self, user_id: UUID) -> list[UUID]:
        return [pid for pid in self.participant_ids if pid != user_id]


class ChatRepository(BaseRepository[Chat]):
    """채팅 레포지토리.

    Chat repository with participant lookups and member-scoped queries.

    Extends:
        BaseRepository[Chat]
    """

    def __init__(self) -> None:
        super().__init__(Chat)

    async def find_chat_participants(
        self,
        db: AsyncSession,
        chat_id: UUID,
    ) -> ChatParticipants | None:
        """채팅방의 회사와 영속 참가자 목록을 조회합니다.

        Load a chat's company and durable participant ids.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            chat_id: 채팅방 UUID (Chat UUID)

        Returns:
            ChatParticipants | None: 참가자 스냅샷, 채팅방이 없으면 None
                                     (Participant snapshot, None if the chat is absent)
        """
        company_id: UUID | None = (
            await db.execute(select(Chat.company_id).where(Chat.id == chat_id))
        ).scalar_one_or_none()
        if company_id is None:
            return None

        result = await db.execute(
            select(ChatParticipant.user_id)
            .where(ChatParticipant.chat_id == chat_id)
            .order_by(ChatParticipant.joined_at)
        )
        return ChatParticipants(
            chat_id=chat_id,
            company_id=company_id,
            participant_ids=list(result.scalars().all()),
        )

    async def touch_updated_at(self, db: AsyncSession, chat_id: UUID) -> None:
        """채팅방의 마지막 활동 시각을 갱신합니다 (Touch last-activity timestamp)."""
        await db.execute(
            update(Chat)
            .where(Chat.id == chat_id)
            .values(updated_at=datetime.now(timezone.utc))
        )
        await db.flush()

    def _member_query(self, company_id: UUID, user_id: UUID) -> Select:
        member_chat_ids = select(ChatParticipant.chat_id).where(ChatParticipant.user_id == user_id)
        return (
            select(Chat)
            .options(selectinload(Chat.participants).selectinload(ChatParticipant.user))
            .where(Chat.company_id == company_id, Chat.id.in_(member_chat_ids))
            .execution_options(populate_existing=True)
        )

    async def list_for_user(
        self,
        db: AsyncSession,
        company_id: UUID,
        user_id: UUID,
    ) -> Sequence[Chat]:
        """사용자가 참가한 채팅방 목록을 최근 활동순으로 조회합니다.

        List the chats the user participates in, newest activity first.
        """
        query: Select = self._member_query(company_id, user_id).order_by(Chat.updated_at.desc())
        result = await db.execute(query)
        return result.scalars().all()

    async def get_for_member(
        self,
        db: AsyncSession,
        chat_id: UUID,
        company_id: UUID,
        user_id: UUID,
    ) -> Chat | None:
        """참가자인 경우에만 채팅방을 조회합니다 (Chat if the user is a member, else None)."""
        query: Select = self._member_query(company_id, user_id).where(Chat.id == chat_id)
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def find_direct_chat(
        self,
        db: AsyncSession,
        company_id: UUID,
        user_ids: set[UUID],
    ) -> Chat | None:
        """정확히 같은 두 사용자의 1:1 채팅방을 찾습니다.

        Find an existing DIRECT chat whose participant set equals ``user_ids``.
        """
        query: Select = (
            select(Chat)
            .options(selectinload(Chat.participants).selectinload(ChatParticipant.user))
            .join(ChatParticipant, ChatParticipant.chat_id == Chat.id)
            .where(
                Chat.company_id == company_id,
                Chat.type == ChatType.DIRECT.value,
                ChatParticipant.user_id.in_(user_ids),
            )
            .distinct()
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        for chat in result.scalars().all():
            if {p.user_id for p in chat.participants} == user_ids:
                return chat
        return None

    async def create_chat(
        self,
        db: AsyncSession,
        company_id: UUID,
        name: str | None,
        chat_type: str,
        participant_ids: list[UUID],
    ) -> Chat:
        """채팅방과 참가자 행을 한 번에 생성합니다.

        Create a chat together with its participant rows.
        """
        chat: Chat = Chat(company_id=company_id, name=name, type=chat_type)
        chat.participants = [ChatParticipant(user_id=uid) for uid in participant_ids]
        db.add(chat)
        await db.flush()

        result = await db.execute(
            select(Chat)
            .options(selectinload(Chat.participants).selectinload(ChatParticipant.user))
            .where(Chat.id == chat.id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def remove_participant(
        self,
        db: AsyncSession,
        chat_id: UUID,
        user_id: UUID,
    ) -> bool:
        """영속 참가자 행을 삭제합니다 (Remove a durable participant row)."""
        result = await db.execute(
            delete(ChatParticipant).where(
                ChatParticipant.chat_id == chat_id,
                ChatParticipant.user_id == user_id,
            )
        )
        await db.flush()
        return result.rowcount > 0


# 싱글턴 인스턴스 — Singleton instance
chat_repository: ChatRepository = ChatRepository()
