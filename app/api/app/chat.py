"""앱 채팅 라우터 — 채팅방 및 메시지 API.

App Chat Router — HTTP pull/push API for chats and messages.
Sending goes through the same ChatService path as the Socket.IO
``send-message`` event.

A chat the caller does not participate in is reported as 404 here, the
same as a chat that does not exist.
"""

from contextlib import contextmanager
from typing import Annotated, Iterator
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_chat_service, get_current_principal
from app.database import get_db
from app.realtime.registry import Principal
from app.schemas.chat import (
    ChatCreate,
    ChatListResponse,
    ChatResponse,
    MessagePageResponse,
    ReadReceiptResponse,
    SendMessageRequest,
    SendMessageResponse,
)
from app.schemas.common import StatusMessage
from app.services.chat_service import ChatService
from app.utils.exceptions import ForbiddenError, NotFoundError

router: APIRouter = APIRouter()


@contextmanager
def _member_only() -> Iterator[None]:
    # 비참가자에게는 채팅방이 없는 것으로 응답 (Non-members see 404)
    try:
        yield
    except ForbiddenError:
        raise NotFoundError("Chat not found")


@router.get("", response_model=ChatListResponse)
async def list_my_chats(
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(get_current_principal)],
    chat_service: Annotated[ChatService, Depends(get_chat_service)],
) -> dict:
    """참가 중인 채팅방 목록을 최근 활동순으로 조회합니다.

    List my chats, newest activity first, with the last message of each.
    """
    chats: list[dict] = await chat_service.list_chats(db, principal)
    return {"chats": chats}


@router.post("", response_model=ChatResponse, status_code=status.HTTP_201_CREATED)
async def create_chat(
    data: ChatCreate,
    response: Response,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(get_current_principal)],
    chat_service: Annotated[ChatService, Depends(get_chat_service)],
) -> dict:
    """채팅방을 생성합니다.

    Create a chat. An existing DIRECT chat between the same two users is
    returned with 200 instead of creating a duplicate.

    Args:
        data: 채팅방 생성 데이터 (Chat creation data)
        response: 응답 객체, 재사용 시 상태 코드 변경 (Response, status set to 200 on reuse)
        db: 비동기 데이터베이스 세션 (Async database session)
        principal: 인증된 사용자 (Authenticated principal)
        chat_service: 채팅 서비스 (Chat service)

    Returns:
        dict: 채팅방 (Chat)

    Raises:
        BadRequestError: 잘못된 참가자 (Invalid participants)
    """
    chat, created = await chat_service.create_chat(
        db,
        principal,
        name=data.name,
        chat_type=data.type,
        participant_ids=data.participant_ids,
    )
    if not created:
        response.status_code = status.HTTP_200_OK
    return chat


@router.get("/{chat_id}", response_model=ChatResponse)
async def get_chat(
    chat_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(get_current_principal)],
    chat_service: Annotated[ChatService, Depends(get_chat_service)],
) -> dict:
    return await chat_service.get_chat(db, chat_id, principal)


@router.get("/{chat_id}/messages", response_model=MessagePageResponse)
async def get_messages(
    chat_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(get_current_principal)],
    chat_service: Annotated[ChatService, Depends(get_chat_service)],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int | None, Query(ge=1, le=200)] = None,
) -> dict:
    """채팅 메시지를 조회합니다 (오래된 순).

    Pull one page of history, oldest first. Marks every message sent by
    someone else as read by the caller.

    Args:
        chat_id: 채팅방 UUID (Chat UUID)
        page: 페이지 번호 (Page number, newest page is 1)
        limit: 페이지 크기 (Page size, defaults to CHAT_PAGE_SIZE)

    Returns:
        dict: {"messages": [...], "has_more": bool}
    """
    with _member_only():
        return await chat_service.get_messages(db, chat_id, principal, page=page, limit=limit)


@router.post(
    "/{chat_id}/messages",
    response_model=SendMessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    chat_id: UUID,
    data: SendMessageRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(get_current_principal)],
    chat_service: Annotated[ChatService, Depends(get_chat_service)],
) -> dict:
    """메시지를 전송합니다.

    Send a message. Success is returned once the message is stored; live
    delivery and notifications are best effort.

    Raises:
        BadRequestError: 내용과 첨부가 모두 비어 있음 (400)
        NotFoundError: 채팅방 없음 또는 참가자가 아님 (404)
        InternalError: 저장 실패 (500)
    """
    with _member_only():
        message: dict = await chat_service.send_message(
            db,
            chat_id,
            principal,
            content=data.content,
            message_type=data.type,
            attachments=data.attachments,
        )
    return {"message": message}


@router.post("/{chat_id}/leave", response_model=StatusMessage)
async def leave_chat(
    chat_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(get_current_principal)],
    chat_service: Annotated[ChatService, Depends(get_chat_service)],
) -> dict:
    """채팅방에서 나갑니다 (Leave a chat)."""
    with _member_only():
        await chat_service.leave_chat(db, chat_id, principal)
    return {"message": "Left chat"}


@router.patch("/messages/{message_id}/read", response_model=ReadReceiptResponse)
async def mark_message_read(
    message_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(get_current_principal)],
    chat_service: Annotated[ChatService, Depends(get_chat_service)],
) -> dict:
    """메시지를 읽음 처리합니다. 이미 읽었으면 200 no-op.

    Mark a message read by the caller; idempotent.
    """
    read_by: list[str] = await chat_service.mark_read(db, message_id, principal)
    return {"message_id": str(message_id), "read_by": read_by}
