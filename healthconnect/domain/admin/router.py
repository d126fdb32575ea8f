"""Admin router - Dashboard, user management and audit log"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from ...models import ADMIN_ACTION_TYPES, Account
from ...shared.request_context import RequestMeta, get_request_meta
from .schemas import (
    AdminLogResponse,
    DashboardStatsEnvelope,
    LogPagination,
    LogsPage,
    LogsPageEnvelope,
    ToggleStatusRequest,
    UserActionEnvelope,
    UserPagination,
    UsersPage,
    UsersPageEnvelope,
    UserSummary,
    VerifyUserRequest,
)
from .service import AdminService

router = APIRouter(prefix="/admin", tags=["Admin"])


def get_admin_service(db: Session = Depends(get_db)) -> AdminService:
    """Dependency injection for AdminService"""
    return AdminService(db)


@router.get("/dashboard/stats", response_model=DashboardStatsEnvelope)
async def get_dashboard_stats(
    _: Account = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service),
):
    return DashboardStatsEnvelope(data=service.get_dashboard_stats())


@router.get("/users", response_model=UsersPageEnvelope)
async def list_users(
    role: Optional[str] = Query(None, pattern="^(doctor|patient)$"),
    status: Optional[str] = Query(None, pattern="^(active|suspended)$"),
    verificationStatus: Optional[str] = Query(None, pattern="^(pending|verified|rejected)$"),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    _: Account = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service),
):
    result = service.list_users(role, status, verificationStatus, search, page, limit)
    return UsersPageEnvelope(
        data=UsersPage(
            users=[UserSummary.from_account(u) for u in result["users"]],
            pagination=UserPagination(**result["pagination"]),
        )
    )


@router.put("/users/{user_id}/verify", response_model=UserActionEnvelope)
async def verify_user(
    user_id: int,
    data: VerifyUserRequest,
    meta: RequestMeta = Depends(get_request_meta),
    admin: Account = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service),
):
    target = service.verify_user(admin, user_id, data, meta)
    return UserActionEnvelope(
        message=f"User {data.verificationStatus} successfully",
        data=UserSummary.from_account(target),
    )


@router.put("/users/{user_id}/toggle-status", response_model=UserActionEnvelope)
async def toggle_user_status(
    user_id: int,
    data: ToggleStatusRequest,
    meta: RequestMeta = Depends(get_request_meta),
    admin: Account = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service),
):
    target, cancelled = service.toggle_user_status(admin, user_id, data, meta)
    return UserActionEnvelope(
        message=f"User {data.action}d successfully",
        data=UserSummary.from_account(target),
        cancelledAppointments=cancelled,
    )


@router.get("/logs", response_model=LogsPageEnvelope)
async def get_admin_logs(
    actionType: Optional[str] = Query(None, pattern=f"^({'|'.join(ADMIN_ACTION_TYPES)})$"),
    targetUserId: Optional[int] = Query(None),
    adminId: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _: Account = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service),
):
    result = service.get_logs(actionType, targetUserId, adminId, page, limit)
    return LogsPageEnvelope(
        data=LogsPage(
            logs=[AdminLogResponse.from_log(log) for log in result["logs"]],
            pagination=LogPagination(**result["pagination"]),
        )
    )
