"""
Admin service

Every mutating action writes an AdminActionLog entry in the same commit
as the change it records. Suspending a doctor also revokes their sessions
and cancels their upcoming pending/scheduled appointments, still within
that single commit.
"""

import logging
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...errors import NotFound
from ...models import Account, Admin, AdminActionLog
from ...schemas import page_count
from ...shared.request_context import RequestMeta
from ...shared.timeutils import utcnow, utctoday
from ..accounts.repository import AccountRepository
from ..scheduling.repository import AppointmentRepository
from ..sessions.service import SessionService
from .repository import AdminLogRepository
from .schemas import ToggleStatusRequest, VerifyUserRequest

logger = logging.getLogger(__name__)

DEFAULT_SUSPENSION_REASON = (
    "Your account has been suspended by an administrator. Please contact support."
)


class AdminService:
    """Service layer for the admin console"""

    def __init__(self, db: Session):
        self.db = db
        self.accounts = AccountRepository()
        self.appointments = AppointmentRepository()
        self.logs = AdminLogRepository()

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def get_dashboard_stats(self, today: Optional[date] = None) -> dict:
        today = today or utctoday()
        since = utcnow() - timedelta(days=30)

        by_role = {}
        for role in ("doctor", "patient"):
            by_role[role] = {
                "active": self.accounts.count(self.db, role, is_active=True),
                "pending": self.accounts.count(self.db, role, verification_status="pending"),
                "suspended": self.accounts.count(self.db, role, is_active=False),
                "newLast30Days": self.accounts.count(self.db, role, created_since=since),
            }

        return {
            "users": {
                "totalDoctors": by_role["doctor"]["active"],
                "totalPatients": by_role["patient"]["active"],
                "pendingVerification": by_role["doctor"]["pending"] + by_role["patient"]["pending"],
                "suspended": by_role["doctor"]["suspended"] + by_role["patient"]["suspended"],
                "byRole": by_role,
            },
            "appointments": {
                "today": self.appointments.count(self.db, on_date=today),
                "total": self.appointments.count(self.db),
            },
            "recentActivity": {
                "newDoctors": by_role["doctor"]["newLast30Days"],
                "newPatients": by_role["patient"]["newLast30Days"],
            },
        }

    def list_users(
        self,
        role: Optional[str] = None,
        status: Optional[str] = None,
        verification_status: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> dict:
        is_active = None
        if status:
            is_active = status == "active"

        users, total = self.accounts.search_users(
            self.db,
            role=role,
            is_active=is_active,
            verification_status=verification_status,
            search=search,
            offset=(page - 1) * limit,
            limit=limit,
        )
        total_pages = page_count(total, limit)
        return {
            "users": users,
            "pagination": {
                "currentPage": page,
                "totalPages": total_pages,
                "totalUsers": total,
                "hasNext": page < total_pages,
                "hasPrev": page > 1,
            },
        }

    def get_logs(
        self,
        action_type: Optional[str] = None,
        target_user_id: Optional[int] = None,
        admin_id: Optional[int] = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict:
        logs, total = self.logs.search(
            self.db,
            action_type=action_type,
            target_user_id=target_user_id,
            admin_id=admin_id,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return {
            "logs": logs,
            "pagination": {
                "currentPage": page,
                "totalPages": page_count(total, limit),
                "total": total,
            },
        }

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _get_target(self, user_id: int, user_type: Optional[str]) -> Account:
        target = self.accounts.get_by_id(self.db, user_id)
        if target is None or target.role not in ("doctor", "patient"):
            raise NotFound("User not found")
        if user_type and target.role != user_type:
            raise NotFound("User not found")
        return target

    def _record(
        self,
        admin: Admin,
        action_type: str,
        target: Account,
        previous: dict,
        new: dict,
        reason: Optional[str],
        meta: RequestMeta,
    ) -> None:
        self.logs.add(
            self.db,
            AdminActionLog(
                admin_id=admin.id,
                action_type=action_type,
                target_user_id=target.id,
                target_user_type=target.role,
                previous_data=previous,
                new_data=new,
                reason=reason,
                ip_address=meta.ip_address,
                user_agent=meta.user_agent,
                created_at=utcnow(),
            ),
        )

    def verify_user(
        self, admin: Admin, user_id: int, data: VerifyUserRequest, meta: RequestMeta
    ) -> Account:
        """Set verification status; a rejection also deactivates the account"""
        target = self._get_target(user_id, data.userType)
        previous = {"verificationStatus": target.verification_status, "isActive": target.is_active}

        target.verification_status = data.verificationStatus
        target.verified_by = admin.id
        target.verified_at = utcnow()
        if data.verificationStatus == "rejected":
            target.is_active = False
            SessionService(self.db).revoke_all(
                target.id, "Account rejected by admin", commit=False
            )

        self._record(
            admin,
            "user_verification",
            target,
            previous,
            {"verificationStatus": target.verification_status, "isActive": target.is_active},
            data.reason,
            meta,
        )
        self._commit()
        self.db.refresh(target)
        logger.info(
            f"🛡️ Admin {admin.id} set {target.role} {target.id} to {data.verificationStatus}"
        )
        return target

    def toggle_user_status(
        self, admin: Admin, user_id: int, data: ToggleStatusRequest, meta: RequestMeta
    ) -> tuple[Account, int]:
        """
        Suspend or re-activate an account.

        Returns (account, cancelled_appointment_count).
        """
        target = self._get_target(user_id, data.userType)
        previous = {"isActive": target.is_active}
        cancelled = 0
        now = utcnow()

        if data.action == "suspend":
            target.is_active = False
            target.suspension_reason = data.reason or DEFAULT_SUSPENSION_REASON
            target.suspended_by = admin.id
            target.suspended_at = now
            SessionService(self.db).revoke_all(
                target.id, "Account suspended by admin", commit=False
            )
            if target.role == "doctor":
                cancelled = self.appointments.cancel_upcoming_for_doctor(
                    self.db,
                    target.id,
                    from_date=now.date(),
                    reason="Account doctor suspended by admin",
                    cancelled_at=now,
                )
        else:
            target.is_active = True
            target.suspension_reason = None
            target.suspended_by = None
            target.suspended_at = None

        new = {"isActive": target.is_active}
        if cancelled:
            new["cancelledAppointments"] = cancelled
        self._record(
            admin,
            "user_suspension" if data.action == "suspend" else "user_activation",
            target,
            previous,
            new,
            data.reason,
            meta,
        )
        self._commit()
        self.db.refresh(target)

        if data.action == "suspend":
            logger.warning(
                f"⛔ Admin {admin.id} suspended {target.role} {target.id}; "
                f"{cancelled} upcoming appointment(s) cancelled"
            )
        else:
            logger.info(f"✅ Admin {admin.id} re-activated {target.role} {target.id}")
        return target, cancelled

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
