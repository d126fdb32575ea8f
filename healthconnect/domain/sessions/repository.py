"""Login session repository - Database operations for session rows"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import LoginSession


class LoginSessionRepository:
    """Repository for login session database operations"""

    @staticmethod
    def add(db: Session, session: LoginSession) -> LoginSession:
        db.add(session)
        return session

    @staticmethod
    def get_by_token(db: Session, token: str) -> Optional[LoginSession]:
        return db.query(LoginSession).filter(LoginSession.token == token).first()

    @staticmethod
    def get_by_id(db: Session, session_id: int, account_id: int) -> Optional[LoginSession]:
        return (
            db.query(LoginSession)
            .filter(LoginSession.id == session_id, LoginSession.account_id == account_id)
            .first()
        )

    @staticmethod
    def get_active_for_account(
        db: Session, account_id: int, now: datetime
    ) -> list[LoginSession]:
        return (
            db.query(LoginSession)
            .filter(
                LoginSession.account_id == account_id,
                LoginSession.is_active.is_(True),
                LoginSession.expires_at > now,
            )
            .order_by(LoginSession.last_activity.desc())
            .all()
        )

    @staticmethod
    def deactivate_for_account(
        db: Session, account_id: int, reason: str, except_token: Optional[str] = None
    ) -> int:
        """Soft-revoke active sessions; caller commits"""
        query = db.query(LoginSession).filter(
            LoginSession.account_id == account_id, LoginSession.is_active.is_(True)
        )
        if except_token:
            query = query.filter(LoginSession.token != except_token)
        return query.update(
            {LoginSession.is_active: False, LoginSession.revoked_reason: reason},
            synchronize_session=False,
        )

    @staticmethod
    def deactivate_expired(db: Session, now: datetime) -> int:
        count = (
            db.query(LoginSession)
            .filter(LoginSession.is_active.is_(True), LoginSession.expires_at <= now)
            .update(
                {LoginSession.is_active: False, LoginSession.revoked_reason: "Session expired"},
                synchronize_session=False,
            )
        )
        db.commit()
        return count

    @staticmethod
    def delete_inactive_before(db: Session, cutoff: datetime) -> int:
        count = (
            db.query(LoginSession)
            .filter(LoginSession.is_active.is_(False), LoginSession.updated_at < cutoff)
            .delete(synchronize_session=False)
        )
        db.commit()
        return count
