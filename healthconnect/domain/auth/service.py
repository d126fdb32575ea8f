"""
Authentication service

Registration and login are both gated by an emailed one-time code. A
password alone never opens a session: ``login`` only issues a code and
``verify_code`` turns a valid login code into a session token.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ... import email_service
from ...config import Settings, get_settings
from ...errors import (
    AccountSuspended,
    DuplicateAccount,
    EmailNotVerified,
    InternalError,
    InvalidCredentials,
    InvalidOrExpiredCode,
    NotFound,
    ResetLimitExceeded,
    ValidationError,
)
from ...models import Account
from ...security_utils import (
    create_jwt_token,
    generate_secure_token,
    hash_password,
    hash_token,
    verify_password,
)
from ...shared.request_context import RequestMeta
from ...shared.timeutils import utcnow
from ...shared.validators import validate_password
from ..accounts.repository import AccountRepository
from ..otp.service import OtpService
from ..sessions.service import SessionService
from .schemas import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResendOtpRequest,
    ResetPasswordRequest,
    ResetPasswordWithTokenRequest,
    VerifyOtpRequest,
)

logger = logging.getLogger(__name__)

PASSWORD_RESET = "password-reset"


class VerificationResult:
    """Outcome of a successful code verification"""

    def __init__(
        self,
        message: str,
        account: Optional[Account] = None,
        token: Optional[str] = None,
        previous_login: Optional[datetime] = None,
        previous_device_logged_out: bool = False,
    ):
        self.message = message
        self.account = account
        self.token = token
        self.previous_login = previous_login
        self.previous_device_logged_out = previous_device_logged_out


class AuthService:
    """Service layer for the OTP-gated authentication flow"""

    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        otp: Optional[OtpService] = None,
        sessions: Optional[SessionService] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.accounts = AccountRepository()
        self.otp = otp or OtpService(db, self.settings)
        self.sessions = sessions or SessionService(db, self.settings)

    # ------------------------------------------------------------------
    # Registration & login
    # ------------------------------------------------------------------

    async def register(self, data: RegisterRequest) -> dict:
        if self.accounts.get_by_email(self.db, data.email):
            logger.warning(f"⚠️ Registration attempt with existing email: {data.email}")
            raise DuplicateAccount()

        fields = {
            "name": data.name.strip(),
            "email": data.email,
            "password_hash": hash_password(data.password),
            "contact_number": data.contactNumber,
            "is_email_verified": False,
            "verification_status": "pending",
        }
        if data.role == "doctor":
            fields.update(
                specialization=data.specialization,
                qualification=data.qualification,
                experience=data.experience,
                about=data.about,
            )
        else:
            fields.update(
                date_of_birth=data.dateOfBirth,
                gender=data.gender.lower() if data.gender else None,
                emergency_contacts=[],
                medical_history={"conditions": [], "allergies": [], "medications": []},
            )

        account = self.accounts.add(self.db, data.role, **fields)
        try:
            self.db.commit()
        except IntegrityError as e:
            # Lost a race against a concurrent registration for the same email
            self.db.rollback()
            raise DuplicateAccount() from e
        self.db.refresh(account)
        logger.info(f"🆕 Registered {data.role} account {account.id}: {data.email}")

        code = self.otp.issue(data.email, "registration")
        await self._send_quietly(
            email_service.send_otp_email(data.email, account.name, code, "registration"),
            f"registration code to {data.email}",
        )
        return {"email": data.email, "role": data.role}

    async def login(self, data: LoginRequest) -> dict:
        account = self.accounts.get_by_email_and_role(self.db, data.email, data.role)

        # verify_password burns a bcrypt round even when the account is missing
        if not verify_password(data.password, account.password_hash if account else None):
            logger.warning(f"🚫 Failed login for {data.email} as {data.role}")
            raise InvalidCredentials()

        if not account.is_email_verified:
            raise EmailNotVerified(data.email)

        if not account.is_active:
            logger.warning(f"🚫 Suspended account {account.id} attempted login")
            raise AccountSuspended(account.suspension_reason, account.suspended_at)

        code = self.otp.issue(data.email, "login")
        await self._send_quietly(
            email_service.send_otp_email(data.email, account.name, code, "login"),
            f"login code to {data.email}",
        )
        return {"email": data.email}

    async def verify_code(self, data: VerifyOtpRequest, meta: RequestMeta) -> VerificationResult:
        account = self.accounts.get_by_email_and_role(self.db, data.email, data.role)
        if account is None:
            raise InvalidOrExpiredCode()

        if data.purpose == PASSWORD_RESET:
            # Only marked verified here; the reset itself consumes it
            self.otp.verify(data.email, PASSWORD_RESET, data.otp, consume=False)
            return VerificationResult("OTP verified. You can now reset your password.")

        if data.purpose == "login" and not account.is_active:
            raise AccountSuspended(account.suspension_reason, account.suspended_at)

        self.otp.verify(data.email, data.purpose, data.otp)

        if data.purpose == "registration":
            account.is_email_verified = True
            self.db.commit()
            self.db.refresh(account)
            logger.info(f"✅ Email verified for account {account.id}")
            await self._send_quietly(
                email_service.send_welcome_email(account.email, account.name, account.role),
                f"welcome email to {account.email}",
            )
            return VerificationResult(
                "Email verified successfully. Please login to continue.", account=account
            )

        return self._open_session(account, meta)

    def _open_session(self, account: Account, meta: RequestMeta) -> VerificationResult:
        previous_login = account.last_login
        token = create_jwt_token({"sub": str(account.id), "role": account.role})

        # last_login, the revocations and the new session share one commit
        account.last_login = utcnow()
        _, revoked = self.sessions.start(account, token, meta)
        self.db.refresh(account)

        if revoked:
            logger.info(f"📱 Account {account.id} logged in on a new device; {revoked} session(s) ended")
        logger.info(f"✅ Login completed for account {account.id} from {meta.ip_address}")
        return VerificationResult(
            "Login successful",
            account=account,
            token=token,
            previous_login=previous_login,
            previous_device_logged_out=revoked > 0,
        )

    async def resend_code(self, data: ResendOtpRequest) -> None:
        account = self.accounts.get_by_email_and_role(self.db, data.email, data.role)
        if account is None:
            raise NotFound("User not found")

        if data.purpose == "registration" and account.is_email_verified:
            raise ValidationError("Email is already verified")
        if data.purpose != "registration" and not self.otp.has_pending(data.email, data.purpose):
            # Login and reset codes are only re-sent for a flow that already passed its checks
            raise ValidationError("No pending verification. Please start again.")
        if data.purpose == PASSWORD_RESET:
            self._check_reset_limit(account)

        code = self.otp.issue(data.email, data.purpose)
        await self._send_quietly(
            email_service.send_otp_email(data.email, account.name, code, data.purpose),
            f"{data.purpose} code to {data.email}",
        )

    # ------------------------------------------------------------------
    # Passwords
    # ------------------------------------------------------------------

    async def forgot_password(self, data: ForgotPasswordRequest) -> None:
        """
        Issue a reset code and a single-use reset link.

        Unlike the other emails this one must arrive: if sending fails the
        code and the link are both withdrawn and the request fails.
        """
        account = self.accounts.get_by_email_and_role(self.db, data.email, data.role)
        if account is None:
            raise NotFound("User not found")
        self._check_reset_limit(account)

        code = self.otp.issue(data.email, PASSWORD_RESET)
        raw_token = generate_secure_token()
        account.password_reset_token = hash_token(raw_token)
        account.password_reset_expires = utcnow() + timedelta(
            minutes=self.settings.password_reset_ttl_minutes
        )
        self.db.commit()

        reset_link = f"{self.settings.frontend_url}/reset-password/{raw_token}"
        try:
            await email_service.send_password_reset_email(
                account.email, account.name, code, reset_link
            )
        except Exception as e:
            logger.error(f"❌ Password reset email failed for {data.email}: {e}")
            self.otp.discard(data.email, PASSWORD_RESET)
            account.password_reset_token = None
            account.password_reset_expires = None
            self.db.commit()
            raise InternalError("Failed to send password reset email. Please try again.") from e

        logger.info(f"📧 Password reset issued for account {account.id}")

    async def reset_password(self, data: ResetPasswordRequest) -> None:
        _check_confirmation(data.password, data.confirmPassword)
        account = self.accounts.get_by_email_and_role(self.db, data.email, data.role)
        if account is None:
            raise NotFound("User not found")
        self._check_reset_limit(account)
        _check_strength(data.password)

        self.otp.verify(data.email, PASSWORD_RESET, data.otp, allow_verified=True)
        await self._complete_reset(account, data.password)

    async def reset_password_with_token(
        self, token: str, data: ResetPasswordWithTokenRequest
    ) -> None:
        _check_confirmation(data.password, data.confirmPassword)
        account = self.accounts.get_by_reset_token(self.db, hash_token(token))
        if (
            account is None
            or account.password_reset_expires is None
            or utcnow() >= account.password_reset_expires
        ):
            raise InvalidOrExpiredCode("Invalid or expired reset link")
        self._check_reset_limit(account)
        _check_strength(data.password)

        await self._complete_reset(account, data.password)

    async def change_password(
        self, account: Account, data: ChangePasswordRequest, current_token: Optional[str]
    ) -> None:
        _check_confirmation(data.newPassword, data.confirmPassword)
        if not verify_password(data.currentPassword, account.password_hash):
            raise InvalidCredentials("Current password is incorrect")
        _check_strength(data.newPassword)
        if data.newPassword == data.currentPassword:
            raise ValidationError("New password must be different from the current password")

        account.password_hash = hash_password(data.newPassword)
        account.password_changed_at = utcnow()
        self.sessions.revoke_all(
            account.id, "Password changed", except_token=current_token, commit=False
        )
        self.db.commit()
        logger.info(f"🔐 Password changed for account {account.id}")

        await self._send_quietly(
            email_service.send_password_changed_email(account.email, account.name),
            f"password-changed notice to {account.email}",
        )

    async def _complete_reset(self, account: Account, password: str) -> None:
        now = utcnow()
        account.password_hash = hash_password(password)
        account.password_changed_at = now
        account.password_reset_count = (account.password_reset_count or 0) + 1
        account.password_reset_used_at = now
        account.password_reset_token = None
        account.password_reset_expires = None
        self.sessions.revoke_all(account.id, "Password reset", commit=False)
        self.db.commit()
        self.otp.discard(account.email, PASSWORD_RESET)
        logger.info(f"🔐 Password reset completed for account {account.id}")

        await self._send_quietly(
            email_service.send_password_changed_email(account.email, account.name),
            f"password-changed notice to {account.email}",
        )

    def _check_reset_limit(self, account: Account) -> None:
        count = account.password_reset_count or 0
        if count >= self.settings.password_reset_limit:
            logger.warning(f"🚫 Reset limit reached for account {account.id} ({count})")
            raise ResetLimitExceeded(count)

    # ------------------------------------------------------------------
    # Session end
    # ------------------------------------------------------------------

    def logout(self, account: Account, token: Optional[str]) -> None:
        session = self.sessions.find_valid(token) if token else None
        if session is not None:
            self.sessions.revoke(session, "User logout")
        account.last_logout = utcnow()
        self.db.commit()
        logger.info(f"👋 Account {account.id} logged out")

    async def _send_quietly(self, send, description: str) -> None:
        """Await an email send; failures are logged, never raised"""
        try:
            await send
        except Exception as e:
            logger.warning(f"⚠️ Failed to send {description}: {e}")


def _check_confirmation(password: str, confirmation: str) -> None:
    if password != confirmation:
        raise ValidationError("Passwords do not match")


def _check_strength(password: str) -> None:
    try:
        validate_password(password)
    except ValueError as e:
        raise ValidationError(str(e)) from e
