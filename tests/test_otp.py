from datetime import timedelta

import pytest

from healthconnect.domain.otp.rate_limit import CodeIssueRateLimiter
from healthconnect.domain.otp.service import OtpService
from healthconnect.errors import InvalidOrExpiredCode, RateLimited
from healthconnect.models import OneTimeCode
from healthconnect.shared.timeutils import utcnow

EMAIL = "jane@example.com"


def wrong(code):
    return "000000" if code != "000000" else "111111"


@pytest.fixture
def otp(db):
    return OtpService(db)


def test_issue_returns_numeric_code(otp, db):
    code = otp.issue(EMAIL, "registration")

    assert len(code) == 6 and code.isdigit()
    row = db.query(OneTimeCode).one()
    assert row.email == EMAIL
    assert row.purpose == "registration"
    assert row.attempts == 0


def test_unknown_purpose_rejected(otp):
    with pytest.raises(ValueError):
        otp.issue(EMAIL, "signup")


def test_verify_consumes_code(otp, db):
    code = otp.issue(EMAIL, "login")

    otp.verify(EMAIL, "login", code)

    assert db.query(OneTimeCode).count() == 0
    with pytest.raises(InvalidOrExpiredCode):
        otp.verify(EMAIL, "login", code)


def test_code_is_scoped_to_purpose(otp):
    code = otp.issue(EMAIL, "registration")

    with pytest.raises(InvalidOrExpiredCode):
        otp.verify(EMAIL, "login", code)


def test_expires_exactly_at_ttl(otp):
    issued_at = utcnow()
    code = otp.issue(EMAIL, "login", now=issued_at)

    with pytest.raises(InvalidOrExpiredCode) as exc:
        otp.verify(EMAIL, "login", code, now=issued_at + timedelta(minutes=10))
    assert "expired" in exc.value.message


def test_valid_just_before_ttl(otp):
    issued_at = utcnow()
    code = otp.issue(EMAIL, "login", now=issued_at)

    otp.verify(EMAIL, "login", code, now=issued_at + timedelta(minutes=10, seconds=-1))


def test_wrong_code_burns_attempts_until_discarded(otp, db):
    code = otp.issue(EMAIL, "login")

    with pytest.raises(InvalidOrExpiredCode) as first:
        otp.verify(EMAIL, "login", wrong(code))
    assert first.value.extra["attemptsRemaining"] == 2

    with pytest.raises(InvalidOrExpiredCode) as second:
        otp.verify(EMAIL, "login", wrong(code))
    assert second.value.extra["attemptsRemaining"] == 1

    with pytest.raises(InvalidOrExpiredCode) as third:
        otp.verify(EMAIL, "login", wrong(code))
    assert third.value.extra["attemptsRemaining"] == 0

    assert db.query(OneTimeCode).count() == 0
    # The right code no longer helps once attempts are exhausted
    with pytest.raises(InvalidOrExpiredCode):
        otp.verify(EMAIL, "login", code)


def test_newest_code_wins(otp):
    now = utcnow()
    first = otp.issue(EMAIL, "login", now=now)
    second = otp.issue(EMAIL, "login", now=now + timedelta(seconds=1))

    if first != second:
        with pytest.raises(InvalidOrExpiredCode):
            otp.verify(EMAIL, "login", first, now=now + timedelta(seconds=2))
    otp.verify(EMAIL, "login", second, now=now + timedelta(seconds=2))


def test_verify_without_consume_marks_verified(otp, db):
    code = otp.issue(EMAIL, "password-reset")

    otp.verify(EMAIL, "password-reset", code, consume=False)

    row = db.query(OneTimeCode).one()
    assert row.verified is True
    assert not otp.has_pending(EMAIL, "password-reset")
    # A later step may still consume the verified code
    otp.verify(EMAIL, "password-reset", code, allow_verified=True)
    assert db.query(OneTimeCode).count() == 0


def test_has_pending_and_discard(otp):
    otp.issue(EMAIL, "login")
    assert otp.has_pending(EMAIL, "login")

    assert otp.discard(EMAIL, "login") == 1
    assert not otp.has_pending(EMAIL, "login")


def test_purge_expired(otp, db):
    now = utcnow()
    otp.issue(EMAIL, "login", now=now - timedelta(hours=1))
    otp.issue("other@example.com", "login", now=now)

    assert otp.purge_expired(now=now) == 1
    assert db.query(OneTimeCode).one().email == "other@example.com"


class TestCodeIssueRateLimiter:
    @pytest.fixture
    def limited(self, db):
        limiter = CodeIssueRateLimiter(db, cooldown_seconds=60, max_per_window=3, window_minutes=15)
        return OtpService(db, limiter=limiter)

    def test_cooldown_reports_remaining_wait(self, limited):
        t0 = utcnow()
        limited.issue(EMAIL, "login", now=t0)

        with pytest.raises(RateLimited) as exc:
            limited.issue(EMAIL, "login", now=t0 + timedelta(seconds=20))
        assert exc.value.wait_seconds == 40
        assert exc.value.headers == {"Retry-After": "40"}

        limited.issue(EMAIL, "login", now=t0 + timedelta(seconds=60))

    def test_window_cap(self, limited):
        t0 = utcnow()
        for minutes in (0, 2, 4):
            limited.issue(EMAIL, "login", now=t0 + timedelta(minutes=minutes))

        with pytest.raises(RateLimited) as exc:
            limited.issue(EMAIL, "login", now=t0 + timedelta(minutes=6))
        # The oldest code leaves the window at t0 + 15 minutes
        assert exc.value.wait_seconds == 9 * 60

        limited.issue(EMAIL, "login", now=t0 + timedelta(minutes=15, seconds=1))

    def test_limits_are_per_email_and_purpose(self, limited):
        t0 = utcnow()
        limited.issue(EMAIL, "login", now=t0)

        limited.issue(EMAIL, "registration", now=t0)
        limited.issue("other@example.com", "login", now=t0)
