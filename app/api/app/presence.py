"""앱 접속 상태 라우터 — 회사 내 접속 중 사용자 조회.

App Presence Router — Snapshot of who in my company is online right now.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.deps import get_current_principal, get_presence_service
from app.realtime.registry import Principal
from app.schemas.chat import OnlineUserResponse
from app.services.presence_service import PresenceService

router: APIRouter = APIRouter()


@router.get("/online", response_model=list[OnlineUserResponse])
async def list_online_users(
    principal: Annotated[Principal, Depends(get_current_principal)],
    presence: Annotated[PresenceService, Depends(get_presence_service)],
) -> list[dict]:
    """접속 중인 사용자 목록 — 사용자당 한 번 (One entry per user)."""
    return [
        {"user_id": str(p.user_id), "name": p.name, "role": p.role}
        for p in presence.list_online(principal.company_id)
    ]
