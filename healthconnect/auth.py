import logging
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .config import get_settings
from .database import get_db
from .domain.accounts.repository import AccountRepository
from .domain.sessions.service import SessionService
from .errors import AccountSuspended, NotAuthenticated, NotAuthorized
from .models import Account
from .security_utils import verify_jwt_token

logger = logging.getLogger(__name__)


def get_session_token(request: Request) -> Optional[str]:
    """Session token from the httpOnly cookie, or a Bearer header for API clients"""
    token = request.cookies.get(get_settings().cookie_name)
    if token:
        return token
    authorization = request.headers.get("Authorization", "")
    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return None


async def get_current_account(request: Request, db: Session = Depends(get_db)) -> Account:
    """Resolve the signed-in account from its session token"""
    token = get_session_token(request)
    if not token:
        raise NotAuthenticated("Not authorized, please login again")

    payload = verify_jwt_token(token)
    if not payload:
        raise NotAuthenticated("Invalid or expired token. Please login again.")

    sessions = SessionService(db)
    session = sessions.find_valid(token)
    if session is None:
        logger.warning(f"⚠️ Rejected revoked or expired session for account {payload.get('sub')}")
        raise NotAuthenticated("Session expired or revoked. Please login again.")

    account = AccountRepository.get_by_id(db, session.account_id)
    if account is None or str(account.id) != str(payload.get("sub")):
        raise NotAuthenticated("Account not found. Please login again.")

    if not account.is_active:
        raise AccountSuspended(account.suspension_reason, account.suspended_at)

    sessions.touch(session)
    request.state.session_token = token
    logger.debug(f"✅ Account authenticated: {account.email}")
    return account


def require_roles(*roles: str):
    """Build a dependency that only admits accounts with one of the given roles"""

    async def dependency(account: Account = Depends(get_current_account)) -> Account:
        if account.role not in roles:
            logger.warning(f"⚠️ {account.role} {account.id} denied access (requires {roles})")
            raise NotAuthorized()
        return account

    return dependency


get_current_admin = require_roles("admin")
get_current_doctor = require_roles("doctor")
get_current_patient = require_roles("patient")
