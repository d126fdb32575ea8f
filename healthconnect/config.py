import os
import warnings
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, read from the environment once at startup"""

    environment: str
    database_url: str
    secret_key: str
    jwt_algorithm: str = "HS256"

    # Session cookie
    session_ttl_days: int = 7
    cookie_name: str = "token"
    cookie_secure: bool = True

    # One-time codes
    otp_length: int = 6
    otp_ttl_minutes: int = 10
    otp_max_attempts: int = 3
    otp_resend_cooldown_seconds: int = 60
    otp_max_per_window: int = 3
    otp_window_minutes: int = 15

    # Password reset
    password_reset_ttl_minutes: int = 60
    password_reset_limit: int = 1

    # Scheduling
    booking_horizon_days: int = 7

    # Maintenance
    session_retention_days: int = 30

    frontend_url: str = "http://localhost:5173"
    allowed_origins: tuple[str, ...] = field(default_factory=tuple)
    security_headers_enabled: bool = True

    # Email - SMTP takes priority over Resend when SMTP_HOST is set
    email_from_address: str = "HealthConnect <noreply@healthconnect.app>"
    resend_api_key: str | None = None
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_use_tls: bool = True

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def load_settings() -> Settings:
    # Security - CRITICAL: No default secret key in production
    secret_key = os.getenv("SECRET_KEY")
    if not secret_key:
        warnings.warn(
            "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION",
            RuntimeWarning,
            stacklevel=2,
        )
        secret_key = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

    frontend_url = os.getenv("FRONTEND_URL", "http://localhost:5173")
    origins = os.getenv("ALLOWED_ORIGINS", f"{frontend_url},http://localhost:3000")

    return Settings(
        environment=os.getenv("ENVIRONMENT", "development").lower(),
        database_url=os.getenv("DATABASE_URL", "sqlite:///./healthconnect.db"),
        secret_key=secret_key,
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        session_ttl_days=_env_int("SESSION_TTL_DAYS", 7),
        cookie_name=os.getenv("COOKIE_NAME", "token"),
        cookie_secure=_env_bool("COOKIE_SECURE", "true"),
        otp_length=_env_int("OTP_LENGTH", 6),
        otp_ttl_minutes=_env_int("OTP_TTL_MINUTES", 10),
        otp_max_attempts=_env_int("OTP_MAX_ATTEMPTS", 3),
        otp_resend_cooldown_seconds=_env_int("OTP_RESEND_COOLDOWN_SECONDS", 60),
        otp_max_per_window=_env_int("OTP_MAX_PER_WINDOW", 3),
        otp_window_minutes=_env_int("OTP_WINDOW_MINUTES", 15),
        password_reset_ttl_minutes=_env_int("PASSWORD_RESET_TTL_MINUTES", 60),
        password_reset_limit=_env_int("PASSWORD_RESET_LIMIT", 1),
        booking_horizon_days=_env_int("BOOKING_HORIZON_DAYS", 7),
        session_retention_days=_env_int("SESSION_RETENTION_DAYS", 30),
        frontend_url=frontend_url,
        allowed_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
        security_headers_enabled=_env_bool("SECURITY_HEADERS_ENABLED", "true"),
        email_from_address=os.getenv(
            "EMAIL_FROM_ADDRESS", "HealthConnect <noreply@healthconnect.app>"
        ),
        resend_api_key=os.getenv("RESEND_API_KEY"),
        smtp_host=os.getenv("SMTP_HOST"),
        smtp_port=_env_int("SMTP_PORT", 587),
        smtp_username=os.getenv("SMTP_USERNAME"),
        smtp_password=os.getenv("SMTP_PASSWORD"),
        smtp_use_tls=_env_bool("SMTP_USE_TLS", "true"),
    )


@lru_cache
def get_settings() -> Settings:
    """Settings singleton - also usable as a FastAPI dependency"""
    return load_settings()
