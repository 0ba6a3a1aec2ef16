"""채팅 Pydantic 요청/응답 스키마 정의.

Chat request/response schema definitions for the HTTP pull/push API.
The Socket.IO ``message-received`` event carries the same message shape
as ``ChatMessageResponse``.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.chat import ChatType, MessageType


class SendMessageRequest(BaseModel):
    """메시지 전송 요청 스키마.

    Send-message request. ``content`` and ``attachments`` may each be empty,
    but not both; that rule is enforced by the chat service so HTTP and
    Socket.IO share it.
    """

    content: str | None = None
    type: MessageType = MessageType.TEXT
    attachments: list[Any] = Field(default_factory=list)


class SenderSummary(BaseModel):
    """보낸 사람 요약 (Sender summary)."""

    id: str
    name: str


class ChatMessageResponse(BaseModel):
    """채팅 메시지 응답 스키마.

    Attributes:
        id: 메시지 UUID (Message identifier)
        chat_id: 채팅방 UUID (Chat identifier)
        sender_id: 보낸 사람 UUID (Sender identifier)
        sender: 보낸 사람 요약 (Sender summary)
        content: 본문 (Body text)
        type: 유형 (TEXT | IMAGE | FILE)
        attachments: 첨부 목록 (Attachment list)
        read_by: 읽은 사용자 ID 목록 (Reader ids, sender always included)
        created_at: 생성 일시 (Creation timestamp)
    """

    id: str
    chat_id: str
    sender_id: str
    sender: SenderSummary | None = None
    content: str
    type: str
    attachments: list[Any]
    read_by: list[str]
    created_at: datetime


class SendMessageResponse(BaseModel):
    """메시지 전송 응답 (201) — Send-message response."""

    message: ChatMessageResponse


class MessagePageResponse(BaseModel):
    """메시지 페이지 응답 — 오래된 순 정렬 (Oldest first for display)."""

    messages: list[ChatMessageResponse]
    has_more: bool


class ReadReceiptResponse(BaseModel):
    """읽음 처리 응답 (Read receipt response)."""

    message_id: str
    read_by: list[str]


class ChatCreate(BaseModel):
    """채팅방 생성 요청 스키마.

    The creator is always added to ``participant_ids``.
    """

    name: str | None = Field(default=None, max_length=255)
    type: ChatType = ChatType.GROUP
    participant_ids: list[UUID] = Field(default_factory=list)


class ParticipantResponse(BaseModel):
    """채팅 참가자 응답 (Chat participant)."""

    user_id: str
    name: str


class ChatResponse(BaseModel):
    """채팅방 응답 스키마.

    Attributes:
        id: 채팅방 UUID (Chat identifier)
        name: 이름 (Display name, nullable)
        type: 유형 (GROUP | DIRECT)
        participants: 참가자 목록 (Durable participants)
        last_message: 마지막 메시지 (Most recent message, nullable)
        updated_at: 마지막 활동 일시 (Last activity timestamp)
    """

    id: str
    name: str | None
    type: str
    participants: list[ParticipantResponse]
    last_message: ChatMessageResponse | None = None
    updated_at: datetime


class ChatListResponse(BaseModel):
    """채팅방 목록 응답 (Chat list)."""

    chats: list[ChatResponse]


class OnlineUserResponse(BaseModel):
    """접속 중 사용자 응답 (Online principal)."""

    user_id: str
    name: str
    role: str
