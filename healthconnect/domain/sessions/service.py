"""Session service - Login session lifecycle and revocation"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...config import Settings, get_settings
from ...errors import NotFound
from ...models import Account, LoginSession
from ...shared.request_context import RequestMeta
from ...shared.timeutils import utcnow
from .repository import LoginSessionRepository

logger = logging.getLogger(__name__)

SINGLE_DEVICE_REASON = "New device login - single device enforcement"


class SessionService:
    """Service layer for login sessions"""

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()
        self.repo = LoginSessionRepository()

    def create(
        self,
        account: Account,
        token: str,
        meta: RequestMeta,
        now: Optional[datetime] = None,
        commit: bool = True,
    ) -> LoginSession:
        now = now or utcnow()
        session = LoginSession(
            account_id=account.id,
            role=account.role,
            token=token,
            browser=meta.browser,
            os=meta.os,
            device=meta.device,
            ip_address=meta.ip_address,
            last_activity=now,
            expires_at=now + timedelta(days=self.settings.session_ttl_days),
            created_at=now,
            updated_at=now,
        )
        self.repo.add(self.db, session)
        if commit:
            self.db.commit()
            self.db.refresh(session)
        return session

    def start(self, account: Account, token: str, meta: RequestMeta) -> tuple[LoginSession, int]:
        """
        Revoke the account's other sessions and open a new one in one commit.

        Returns (new_session, revoked_count).
        """
        revoked, _ = self.enforce_single_device(account, keep_token=token, commit=False)
        session = self.create(account, token, meta, commit=False)
        self.db.commit()
        self.db.refresh(session)
        return session, revoked

    def find_valid(self, token: str, now: Optional[datetime] = None) -> Optional[LoginSession]:
        """Only active, unexpired sessions authorize requests"""
        if not token:
            return None
        session = self.repo.get_by_token(self.db, token)
        if session is None or not session.is_active:
            return None
        if (now or utcnow()) >= session.expires_at:
            return None
        return session

    def touch(self, session: LoginSession, now: Optional[datetime] = None) -> None:
        session.last_activity = now or utcnow()
        self.db.commit()

    def revoke(self, session: LoginSession, reason: str = "User logout") -> None:
        session.is_active = False
        session.revoked_reason = reason
        self.db.commit()
        logger.info(f"🔒 Session {session.id} revoked: {reason}")

    def revoke_all(
        self,
        account_id: int,
        reason: str,
        except_token: Optional[str] = None,
        commit: bool = True,
    ) -> int:
        count = self.repo.deactivate_for_account(self.db, account_id, reason, except_token)
        if commit:
            self.db.commit()
        if count:
            logger.info(f"🔒 Revoked {count} session(s) for account {account_id}: {reason}")
        return count

    def enforce_single_device(
        self, account: Account, keep_token: Optional[str] = None, commit: bool = True
    ) -> tuple[int, bool]:
        """Returns (revoked_count, previous_device_logged_out)"""
        revoked = self.revoke_all(account.id, SINGLE_DEVICE_REASON, keep_token, commit=commit)
        return revoked, revoked > 0

    def list_active(self, account: Account) -> list[LoginSession]:
        return self.repo.get_active_for_account(self.db, account.id, utcnow())

    def revoke_by_id(self, account: Account, session_id: int) -> None:
        session = self.repo.get_by_id(self.db, session_id, account.id)
        if session is None or not session.is_active:
            raise NotFound("Session not found")
        self.revoke(session, "Revoked by user")

    def cleanup_expired(self, now: Optional[datetime] = None) -> int:
        count = self.repo.deactivate_expired(self.db, now or utcnow())
        logger.info(f"🧹 Marked {count} expired session(s) inactive")
        return count

    def purge_old(self, days: Optional[int] = None, now: Optional[datetime] = None) -> int:
        """Hard-delete inactive sessions older than the retention window"""
        days = days if days is not None else self.settings.session_retention_days
        cutoff = (now or utcnow()) - timedelta(days=days)
        count = self.repo.delete_inactive_before(self.db, cutoff)
        logger.info(f"🗑️ Deleted {count} inactive session(s) older than {days} days")
        return count
