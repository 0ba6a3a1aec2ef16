"""SQLAlchemy ORM 모델 패키지 — 모든 도메인 모델의 중앙 임포트 지점.

SQLAlchemy ORM models package — Central import point for all domain models.
Importing from this package registers every model with the metadata, which
Alembic and relationship resolution rely on.

Modules:
    company: 회사 (Tenant)
    user: 사용자 및 역할 (Users, ADMIN | EMPLOYEE)
    chat: 채팅방, 참가자, 메시지, 읽음 확인 (Chats, participants, messages, read receipts)
    notification: 알림 (Per-recipient notifications)
"""

from app.models.company import Company
from app.models.user import User, UserRole
from app.models.chat import Chat, ChatParticipant, ChatType, Message, MessageRead, MessageType
from app.models.notification import Notification, NotificationType

__all__ = [
    "Company",
    "User",
    "UserRole",
    "Chat",
    "ChatParticipant",
    "ChatType",
    "Message",
    "MessageRead",
    "MessageType",
    "Notification",
    "NotificationType",
]
