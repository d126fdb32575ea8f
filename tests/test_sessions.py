from datetime import timedelta

import pytest

from healthconnect.domain.sessions.service import SINGLE_DEVICE_REASON, SessionService
from healthconnect.models import Account, LoginSession, Patient
from healthconnect.shared.request_context import RequestMeta
from healthconnect.shared.timeutils import utcnow

EMAIL = "jane@example.com"

CHROME_ON_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)
SAFARI_ON_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)


def test_request_meta_parses_user_agent():
    desktop = RequestMeta("10.0.0.1", CHROME_ON_WINDOWS)
    phone = RequestMeta("10.0.0.2", SAFARI_ON_IPHONE)

    assert (desktop.browser, desktop.os, desktop.device) == ("Chrome", "Windows", "Desktop")
    assert (phone.browser, phone.os, phone.device) == ("Safari", "iOS", "Mobile")


def test_second_login_ends_first_session(api, db):
    api.create_user(EMAIL)
    first = api.login(EMAIL, "patient")

    response = api.login_response(EMAIL, "patient")

    assert response.status_code == 200
    login_info = response.json()["loginInfo"]
    assert login_info["previousDeviceLoggedOut"] is True
    assert login_info["previousLogin"] is not None

    rejected = api.client.get("/auth/me", headers=first)
    assert rejected.status_code == 401
    assert rejected.json()["error"] == "NotAuthenticated"

    second = {"Authorization": f"Bearer {response.json()['token']}"}
    assert api.client.get("/auth/me", headers=second).status_code == 200

    revoked = db.query(LoginSession).filter_by(is_active=False).one()
    assert revoked.revoked_reason == SINGLE_DEVICE_REASON
    assert db.query(LoginSession).filter_by(is_active=True).count() == 1


def test_session_records_device(api, db):
    api.create_user(EMAIL)
    api.client.headers["User-Agent"] = CHROME_ON_WINDOWS
    api.client.post("/auth/login", json={"email": EMAIL, "role": "patient", "password": "secret123"})
    api.verify(EMAIL, "patient", "login")

    session = db.query(LoginSession).one()
    assert session.browser == "Chrome"
    assert session.os == "Windows"
    assert session.device == "Desktop"


def test_list_sessions_marks_current(api):
    api.create_user(EMAIL)
    headers = api.login(EMAIL, "patient")

    response = api.client.get("/auth/sessions", headers=headers)

    assert response.status_code == 200
    sessions = response.json()["sessions"]
    assert len(sessions) == 1
    assert sessions[0]["isCurrent"] is True


def test_revoke_own_session(api):
    api.create_user(EMAIL)
    headers = api.login(EMAIL, "patient")
    session_id = api.client.get("/auth/sessions", headers=headers).json()["sessions"][0]["id"]

    response = api.client.delete(f"/auth/sessions/{session_id}", headers=headers)

    assert response.status_code == 200
    assert api.client.get("/auth/me", headers=headers).status_code == 401


def test_cannot_revoke_someone_elses_session(api):
    api.create_user(EMAIL)
    api.create_user("john@example.com")
    jane = api.login(EMAIL, "patient")
    john = api.login("john@example.com", "patient")
    jane_session = api.client.get("/auth/sessions", headers=jane).json()["sessions"][0]["id"]

    response = api.client.delete(f"/auth/sessions/{jane_session}", headers=john)

    assert response.status_code == 404
    assert api.client.get("/auth/me", headers=jane).status_code == 200


def test_suspended_account_rejected_with_live_session(api, db):
    api.create_user(EMAIL)
    headers = api.login(EMAIL, "patient")
    account = db.query(Account).filter_by(email=EMAIL).one()
    account.is_active = False
    account.suspension_reason = "Spam"
    db.commit()

    response = api.client.get("/auth/me", headers=headers)

    assert response.status_code == 403
    assert response.json()["error"] == "AccountSuspended"
    assert response.json()["suspensionReason"] == "Spam"


class TestSessionService:
    @pytest.fixture
    def account(self, db):
        account = Patient(name="Jane", email=EMAIL, password_hash="x")
        db.add(account)
        db.commit()
        return account

    @pytest.fixture
    def sessions(self, db):
        return SessionService(db)

    def test_expired_session_is_not_valid(self, sessions, account):
        now = utcnow()
        sessions.create(account, "token-1", RequestMeta("1.1.1.1", ""), now=now)

        assert sessions.find_valid("token-1", now=now) is not None
        assert sessions.find_valid("token-1", now=now + timedelta(days=7)) is None

    def test_revoke_all_keeps_excepted_token(self, sessions, account, db):
        meta = RequestMeta("1.1.1.1", "")
        sessions.create(account, "token-1", meta)
        sessions.create(account, "token-2", meta)

        assert sessions.revoke_all(account.id, "Password changed", except_token="token-2") == 1
        db.expire_all()
        assert sessions.find_valid("token-1") is None
        assert sessions.find_valid("token-2") is not None

    def test_cleanup_and_purge(self, sessions, account, db):
        now = utcnow()
        meta = RequestMeta("1.1.1.1", "")
        sessions.create(account, "old", meta, now=now - timedelta(days=60))
        sessions.create(account, "live", meta, now=now)

        assert sessions.cleanup_expired(now=now) == 1
        db.expire_all()
        assert db.query(LoginSession).filter_by(token="old").one().is_active is False

        # updated_at on the expired row is the time cleanup ran, so it survives a 30-day purge
        assert sessions.purge_old(days=30, now=now) == 0
        assert sessions.purge_old(days=30, now=now + timedelta(days=31)) == 1
        assert db.query(LoginSession).filter_by(token="old").count() == 0
