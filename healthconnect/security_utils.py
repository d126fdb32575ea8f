"""
Security Utilities
Password hashing, signed session tokens and single-use reset tokens
"""

import hashlib
import hmac
import logging
import secrets
import string
from datetime import timedelta
from typing import Any, Optional

# Token generation and validation
from jose import JWTError
from jose import jwt as jose_jwt

# Password hashing
from passlib.context import CryptContext

from .config import get_settings
from .shared.timeutils import utcnow

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=12)

# Compared against when the account does not exist so timing does not leak it
_DUMMY_HASH = pwd_context.hash("healthconnect-dummy-password")


# ============================================================================
# PASSWORD SECURITY
# ============================================================================


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify password against bcrypt hash; always spends one bcrypt round"""
    try:
        if not hashed_password:
            pwd_context.verify(plain_password, _DUMMY_HASH)
            return False
        return pwd_context.verify(plain_password, hashed_password)
    except Exception as e:
        logger.error(f"Password verification error: {e}")
        return False


# ============================================================================
# ONE-TIME CODES & RESET TOKENS
# ============================================================================


def generate_otp(length: int = 6) -> str:
    """Generate a cryptographically secure random numeric OTP code"""
    return "".join(secrets.choice(string.digits) for _ in range(length))


def codes_match(submitted: str, stored: str) -> bool:
    return hmac.compare_digest(submitted.strip().encode(), stored.strip().encode())


def generate_secure_token(length: int = 32) -> str:
    """Generate a cryptographically secure random token"""
    return secrets.token_urlsafe(length)


def hash_token(token: str) -> str:
    """Reset tokens are stored as sha256 so a database leak does not expose live links"""
    return hashlib.sha256(token.encode()).hexdigest()


# ============================================================================
# SESSION TOKENS (JWT)
# ============================================================================


def create_jwt_token(data: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT token

    Args:
        data: Claims to encode in the token
        expires_delta: Token lifetime (default: session TTL from settings)
    """
    settings = get_settings()
    to_encode = data.copy()
    now = utcnow()
    expire = now + (expires_delta or timedelta(days=settings.session_ttl_days))
    # jti keeps tokens unique even when issued within the same second
    to_encode.update({"exp": expire, "iat": now, "jti": secrets.token_hex(8)})
    return jose_jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)


def verify_jwt_token(token: str) -> Optional[dict[str, Any]]:
    """
    Verify and decode a JWT token

    Returns:
        Decoded payload if valid, None if invalid or expired
    """
    settings = get_settings()
    try:
        return jose_jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None
