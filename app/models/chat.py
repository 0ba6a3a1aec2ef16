"""채팅 관련 SQLAlchemy ORM 모델 정의.

Chat-related SQLAlchemy ORM model definitions.
Durable side of the chat subsystem: threads, participants, messages and
read receipts. Live subscriptions (``chat:<id>`` channels) are not stored
here; they live in the in-process connection registry.

Tables:
    - chats: 채팅방 (Group or direct chat threads)
    - chat_participants: 채팅 참가자 (Durable chat membership)
    - messages: 메시지 (Immutable chat utterances)
    - message_reads: 읽음 확인 (Read receipts, set semantics per message)
"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import String, DateTime, Text, ForeignKey, UniqueConstraint, Index, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class ChatType(str, Enum):
    """채팅방 유형 — Chat thread type."""

    GROUP = "GROUP"
    DIRECT = "DIRECT"


class MessageType(str, Enum):
    """메시지 유형 — Message type."""

    TEXT = "TEXT"
    IMAGE = "IMAGE"
    FILE = "FILE"


class Chat(Base):
    """채팅방 모델.

    Chat thread model. ``updated_at`` doubles as the last-activity timestamp
    used to order a user's chat list; every sent message touches it.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        company_id: 소속 회사 FK (Tenant scope)
        name: 채팅방 이름 (Display name, NULL for direct chats)
        type: 유형 (GROUP | DIRECT)
        created_at: 생성 일시 UTC (Creation timestamp)
        updated_at: 마지막 활동 일시 UTC (Last activity timestamp)
    """

    __tablename__ = "chats"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default=ChatType.GROUP.value)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_chats_company_updated", "company_id", "updated_at"),
    )

    company = relationship("Company", back_populates="chats")
    participants = relationship("ChatParticipant", back_populates="chat", cascade="all, delete-orphan")


class ChatParticipant(Base):
    """채팅 참가자 모델 — 채팅방과 사용자 간 영속 멤버십.

    Durable chat participant. Sending to a chat requires a row here at send
    time; joining the live ``chat:<id>`` channel does not.
    """

    __tablename__ = "chat_participants"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    chat_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("chats.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("chat_id", "user_id", name="uq_chat_participant"),
        Index("ix_chat_participants_user", "user_id"),
    )

    chat = relationship("Chat", back_populates="participants")
    user = relationship("User")


class Message(Base):
    """메시지 모델 — 생성 후 내용 불변.

    Message model. Content is immutable after creation; the only mutation is
    appending to the reader set (``message_reads``). Never deleted here.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        chat_id: 채팅방 FK (Chat foreign key)
        sender_id: 보낸 사람 FK (Sender foreign key)
        content: 본문 (Text body, may be empty when attachments exist)
        type: 유형 (TEXT | IMAGE | FILE)
        attachments: 첨부 목록 JSON 문자열 (JSON-serialized attachment list)
        created_at: 생성 일시 UTC (Creation timestamp, defines chat order)
    """

    __tablename__ = "messages"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    chat_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("chats.id", ondelete="CASCADE"), nullable=False)
    sender_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    type: Mapped[str] = mapped_column(String(20), nullable=False, default=MessageType.TEXT.value)
    attachments: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_messages_chat_created", "chat_id", "created_at"),
    )

    sender = relationship("User")
    reads = relationship("MessageRead", back_populates="message", cascade="all, delete-orphan")


class MessageRead(Base):
    """읽음 확인 모델 — (message_id, user_id) 유일.

    Read receipt. The unique constraint gives the reader set its set
    semantics regardless of how many times a read is recorded.
    """

    __tablename__ = "message_reads"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    message_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("messages.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    read_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("message_id", "user_id", name="uq_message_read"),
    )

    message = relationship("Message", back_populates="reads")
