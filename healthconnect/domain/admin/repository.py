"""Admin repository - Audit log queries"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import AdminActionLog


class AdminLogRepository:
    """Append-only access to admin_action_logs"""

    @staticmethod
    def add(db: Session, log: AdminActionLog) -> AdminActionLog:
        """Stage an entry; caller commits it with the action it records"""
        db.add(log)
        return log

    @staticmethod
    def search(
        db: Session,
        action_type: Optional[str] = None,
        target_user_id: Optional[int] = None,
        admin_id: Optional[int] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[AdminActionLog], int]:
        query = db.query(AdminActionLog)
        if action_type:
            query = query.filter(AdminActionLog.action_type == action_type)
        if target_user_id is not None:
            query = query.filter(AdminActionLog.target_user_id == target_user_id)
        if admin_id is not None:
            query = query.filter(AdminActionLog.admin_id == admin_id)

        total = query.count()
        logs = (
            query.options(joinedload(AdminActionLog.admin))
            .order_by(AdminActionLog.created_at.desc(), AdminActionLog.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return logs, total
