"""One-time code service - Issue and verify short-lived numeric codes"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...config import Settings, get_settings
from ...errors import InvalidOrExpiredCode
from ...models import OTP_PURPOSES
from ...security_utils import codes_match, generate_otp
from ...shared.timeutils import utcnow
from .rate_limit import CodeIssueRateLimiter, RateLimiter
from .repository import OneTimeCodeRepository

logger = logging.getLogger(__name__)

TOO_MANY_ATTEMPTS = "Too many failed attempts. Please request a new code."


class OtpService:
    """Service layer for one-time codes tied to an email and a purpose"""

    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        limiter: Optional[RateLimiter] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.repo = OneTimeCodeRepository()
        self.limiter = limiter or CodeIssueRateLimiter(
            db,
            cooldown_seconds=self.settings.otp_resend_cooldown_seconds,
            max_per_window=self.settings.otp_max_per_window,
            window_minutes=self.settings.otp_window_minutes,
        )

    def issue(self, email: str, purpose: str, now: Optional[datetime] = None) -> str:
        """
        Create a new code and return its value.

        Raises:
            RateLimited: A code was issued too recently for this email and purpose
        """
        if purpose not in OTP_PURPOSES:
            raise ValueError(f"Unknown OTP purpose: {purpose}")

        now = now or utcnow()
        self.limiter.check(email, purpose, now)

        code = generate_otp(self.settings.otp_length)
        self.repo.create(
            self.db,
            email=email,
            purpose=purpose,
            code=code,
            expires_at=now + timedelta(minutes=self.settings.otp_ttl_minutes),
            created_at=now,
        )
        logger.info(f"🔑 Issued {purpose} code for {email}")
        return code

    def verify(
        self,
        email: str,
        purpose: str,
        code: str,
        consume: bool = True,
        allow_verified: bool = False,
        now: Optional[datetime] = None,
    ) -> None:
        """
        Check a submitted code against the newest row for (email, purpose).

        A matching code is deleted when ``consume`` is set, otherwise it is
        only marked verified so a later step can consume it. A wrong code
        burns one attempt; the row is discarded once attempts run out.

        Raises:
            InvalidOrExpiredCode: No live row, expired, exhausted or mismatched
        """
        now = now or utcnow()
        row = self.repo.get_latest(self.db, email, purpose, include_verified=allow_verified)

        if row is None:
            logger.warning(f"⚠️ No pending {purpose} code for {email}")
            raise InvalidOrExpiredCode()

        if now >= row.expires_at:
            logger.warning(f"⏰ Expired {purpose} code submitted for {email}")
            self.repo.delete(self.db, row)
            raise InvalidOrExpiredCode("OTP has expired. Please request a new one.")

        max_attempts = self.settings.otp_max_attempts
        if row.attempts >= max_attempts:
            self.repo.delete(self.db, row)
            raise InvalidOrExpiredCode(TOO_MANY_ATTEMPTS, attemptsRemaining=0)

        if not codes_match(code or "", row.code):
            row.attempts += 1
            remaining = max_attempts - row.attempts
            logger.warning(
                f"❌ Wrong {purpose} code for {email} ({row.attempts}/{max_attempts} attempts)"
            )
            if remaining <= 0:
                self.repo.delete(self.db, row)
                raise InvalidOrExpiredCode(TOO_MANY_ATTEMPTS, attemptsRemaining=0)
            self.db.commit()
            raise InvalidOrExpiredCode("Invalid OTP", attemptsRemaining=remaining)

        if consume:
            self.repo.delete(self.db, row)
        else:
            row.verified = True
            self.db.commit()
        logger.info(f"✅ {purpose} code verified for {email}")

    def has_pending(self, email: str, purpose: str, now: Optional[datetime] = None) -> bool:
        """True while an unverified code for (email, purpose) is still live"""
        row = self.repo.get_latest(self.db, email, purpose)
        return row is not None and (now or utcnow()) < row.expires_at

    def discard(self, email: str, purpose: str) -> int:
        """Drop every code for (email, purpose), e.g. when the email could not be sent"""
        return self.repo.delete_for(self.db, email, purpose)

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        count = self.repo.delete_expired(self.db, now or utcnow())
        if count:
            logger.info(f"🧹 Purged {count} expired one-time codes")
        return count
