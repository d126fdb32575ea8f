"""Admin domain schemas"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from ...models import VERIFICATION_STATUSES, Account, AdminActionLog

TARGET_TYPES = ("doctor", "patient")


class TargetBase(BaseModel):
    reason: Optional[str] = Field(None, max_length=2000)
    userType: Optional[str] = None

    @field_validator("userType")
    @classmethod
    def validate_user_type(cls, v):
        if v is not None and v.lower() not in TARGET_TYPES:
            raise ValueError("userType must be doctor or patient")
        return v.lower() if v else v


class VerifyUserRequest(TargetBase):
    verificationStatus: str

    @field_validator("verificationStatus")
    @classmethod
    def validate_status(cls, v):
        if v not in VERIFICATION_STATUSES:
            raise ValueError(f"verificationStatus must be one of: {', '.join(VERIFICATION_STATUSES)}")
        return v


class ToggleStatusRequest(TargetBase):
    action: str

    @field_validator("action")
    @classmethod
    def validate_action(cls, v):
        if v not in ("suspend", "activate"):
            raise ValueError("action must be suspend or activate")
        return v


class UserSummary(BaseModel):
    id: int
    userType: str
    name: str
    email: str
    contactNumber: Optional[str] = None
    specialization: Optional[str] = None
    verificationStatus: Optional[str] = None
    isActive: bool
    suspensionReason: Optional[str] = None
    suspendedAt: Optional[datetime] = None
    createdAt: datetime

    @classmethod
    def from_account(cls, account: Account) -> "UserSummary":
        return cls(
            id=account.id,
            userType=account.role,
            name=account.name,
            email=account.email,
            contactNumber=account.contact_number,
            specialization=getattr(account, "specialization", None),
            verificationStatus=account.verification_status,
            isActive=account.is_active,
            suspensionReason=account.suspension_reason,
            suspendedAt=account.suspended_at,
            createdAt=account.created_at,
        )


class UserPagination(BaseModel):
    currentPage: int
    totalPages: int
    totalUsers: int
    hasNext: bool
    hasPrev: bool


class UsersPage(BaseModel):
    users: list[UserSummary]
    pagination: UserPagination


class UsersPageEnvelope(BaseModel):
    success: bool = True
    data: UsersPage


class UserActionEnvelope(BaseModel):
    success: bool = True
    message: str
    data: UserSummary
    cancelledAppointments: int = 0


class AdminLogResponse(BaseModel):
    id: int
    adminId: int
    adminName: Optional[str] = None
    adminEmail: Optional[str] = None
    actionType: str
    targetUserId: int
    targetUserType: str
    previousData: Optional[dict[str, Any]] = None
    newData: Optional[dict[str, Any]] = None
    reason: Optional[str] = None
    ipAddress: Optional[str] = None
    userAgent: Optional[str] = None
    createdAt: datetime

    @classmethod
    def from_log(cls, log: AdminActionLog) -> "AdminLogResponse":
        return cls(
            id=log.id,
            adminId=log.admin_id,
            adminName=log.admin.name if log.admin else None,
            adminEmail=log.admin.email if log.admin else None,
            actionType=log.action_type,
            targetUserId=log.target_user_id,
            targetUserType=log.target_user_type,
            previousData=log.previous_data,
            newData=log.new_data,
            reason=log.reason,
            ipAddress=log.ip_address,
            userAgent=log.user_agent,
            createdAt=log.created_at,
        )


class LogPagination(BaseModel):
    currentPage: int
    totalPages: int
    total: int


class LogsPage(BaseModel):
    logs: list[AdminLogResponse]
    pagination: LogPagination


class LogsPageEnvelope(BaseModel):
    success: bool = True
    data: LogsPage


class DashboardStatsEnvelope(BaseModel):
    success: bool = True
    data: dict[str, Any]
