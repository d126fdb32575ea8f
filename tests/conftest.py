import os

# Configure the app before anything imports healthconnect.config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["COOKIE_SECURE"] = "false"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ["OTP_RESEND_COOLDOWN_SECONDS"] = "0"
os.environ["OTP_MAX_PER_WINDOW"] = "50"
os.environ.pop("SMTP_HOST", None)
os.environ.pop("RESEND_API_KEY", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from healthconnect import email_service
from healthconnect.database import Base, get_db
from healthconnect.domain.accounts.service import AccountService
from healthconnect.main import app
from healthconnect.rate_limiter import (
    rate_limit_login,
    rate_limit_password_reset,
    rate_limit_register,
    rate_limit_verify,
)

PASSWORD = "secret123"


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


class Outbox:
    """Collects every email the app tried to send"""

    def __init__(self):
        self.messages = []

    def codes(self, to, purpose):
        return [m["otp"] for m in self.messages if m["to"] == to and m.get("purpose") == purpose]

    def last_code(self, to, purpose):
        codes = self.codes(to, purpose)
        assert codes, f"no {purpose} code was sent to {to}"
        return codes[-1]

    def of_kind(self, kind, to=None):
        return [m for m in self.messages if m["kind"] == kind and (to is None or m["to"] == to)]


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    box = Outbox()

    async def fake_otp(to, user_name, otp, purpose):
        box.messages.append({"kind": "otp", "to": to, "otp": otp, "purpose": purpose})

    async def fake_welcome(to, user_name, role):
        box.messages.append({"kind": "welcome", "to": to, "role": role})

    async def fake_reset(to, user_name, otp, reset_link):
        box.messages.append(
            {"kind": "reset", "to": to, "otp": otp, "purpose": "password-reset", "link": reset_link}
        )

    async def fake_changed(to, user_name):
        box.messages.append({"kind": "password_changed", "to": to})

    monkeypatch.setattr(email_service, "send_otp_email", fake_otp)
    monkeypatch.setattr(email_service, "send_welcome_email", fake_welcome)
    monkeypatch.setattr(email_service, "send_password_reset_email", fake_reset)
    monkeypatch.setattr(email_service, "send_password_changed_email", fake_changed)
    return box


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    for limiter in (rate_limit_register, rate_limit_login, rate_limit_verify, rate_limit_password_reset):
        app.dependency_overrides[limiter] = lambda: None

    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()


class Api:
    """Drives the OTP-gated auth flow so tests can start from a signed-in account"""

    def __init__(self, client, outbox, db):
        self.client = client
        self.outbox = outbox
        self.db = db

    def register(self, email, role="patient", name="Test User", password=PASSWORD, **extra):
        payload = {"name": name, "email": email, "password": password, "role": role}
        if role == "doctor":
            payload.setdefault("specialization", "Cardiology")
            payload.setdefault("qualification", "MBBS")
            payload.setdefault("experience", 5)
        payload.update(extra)
        return self.client.post("/auth/register", json=payload)

    def verify(self, email, role, purpose, code=None):
        return self.client.post(
            "/auth/verify-otp",
            json={
                "email": email,
                "role": role,
                "purpose": purpose,
                "otp": code or self.outbox.last_code(email, purpose),
            },
        )

    def create_user(self, email, role="patient", name="Test User", **extra) -> int:
        response = self.register(email, role=role, name=name, **extra)
        assert response.status_code == 201, response.text
        response = self.verify(email, role, "registration")
        assert response.status_code == 200, response.text
        return response.json()["data"]["id"]

    def create_admin(self, email="admin@example.com") -> int:
        admin = AccountService(self.db).create_admin("Admin", email, PASSWORD)
        return admin.id

    def login_response(self, email, role, password=PASSWORD):
        response = self.client.post(
            "/auth/login", json={"email": email, "role": role, "password": password}
        )
        assert response.status_code == 200, response.text
        response = self.verify(email, role, "login")
        # Tests authenticate with Bearer headers so several accounts can share one client
        self.client.cookies.clear()
        return response

    def login(self, email, role, password=PASSWORD) -> dict:
        response = self.login_response(email, role, password)
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def api(client, outbox, db):
    return Api(client, outbox, db)
