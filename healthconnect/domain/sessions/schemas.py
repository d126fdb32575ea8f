"""Session domain schemas"""

from datetime import datetime

from pydantic import BaseModel


class SessionResponse(BaseModel):
    id: int
    browser: str
    os: str
    device: str
    ipAddress: str
    lastActivity: datetime
    createdAt: datetime
    expiresAt: datetime
    isCurrent: bool = False


class SessionListResponse(BaseModel):
    success: bool = True
    sessions: list[SessionResponse]
