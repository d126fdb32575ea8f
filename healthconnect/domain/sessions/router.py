"""Session router - List and revoke the caller's login sessions"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ...auth import get_current_account
from ...database import get_db
from ...models import Account
from ...schemas import MessageResponse
from .schemas import SessionListResponse, SessionResponse
from .service import SessionService

router = APIRouter(prefix="/auth/sessions", tags=["Sessions"])


def get_session_service(db: Session = Depends(get_db)) -> SessionService:
    """Dependency injection for SessionService"""
    return SessionService(db)


@router.get("", response_model=SessionListResponse)
async def list_sessions(
    request: Request,
    account: Account = Depends(get_current_account),
    service: SessionService = Depends(get_session_service),
):
    current_token = getattr(request.state, "session_token", None)
    return SessionListResponse(
        sessions=[
            SessionResponse(
                id=s.id,
                browser=s.browser,
                os=s.os,
                device=s.device,
                ipAddress=s.ip_address,
                lastActivity=s.last_activity,
                createdAt=s.created_at,
                expiresAt=s.expires_at,
                isCurrent=s.token == current_token,
            )
            for s in service.list_active(account)
        ]
    )


@router.delete("/{session_id}", response_model=MessageResponse)
async def revoke_session(
    session_id: int,
    account: Account = Depends(get_current_account),
    service: SessionService = Depends(get_session_service),
):
    service.revoke_by_id(account, session_id)
    return MessageResponse(message="Session revoked")
