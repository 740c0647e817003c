"""
Security Utilities
Bearer token handling and signed, time-limited guest tokens
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Optional

# Token generation and validation
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from jose import JWTError
from jose import jwt as jose_jwt

from .config import SECRET_KEY

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


# ============================================================================
# TIMED TOKENS
# ============================================================================


def generate_timed_token(data: dict[str, Any], salt: str = "security-token") -> str:
    """
    Generate a signed token using itsdangerous.
    Expiry is enforced on verification via max_age.
    """
    serializer = URLSafeTimedSerializer(SECRET_KEY)
    return serializer.dumps(data, salt=salt)


def verify_timed_token(
    token: str, max_age: int = 3600, salt: str = "security-token"
) -> Optional[dict[str, Any]]:
    """
    Verify and decode a timed token

    Args:
        token: The token to verify
        max_age: Maximum age in seconds (default 1 hour)
        salt: Must match the salt used to sign the token

    Returns:
        Decoded data if valid, None if invalid or expired
    """
    serializer = URLSafeTimedSerializer(SECRET_KEY)
    try:
        return serializer.loads(token, salt=salt, max_age=max_age)
    except SignatureExpired:
        logger.warning("Token expired")
        return None
    except BadSignature:
        logger.warning("Invalid token signature")
        return None


# ============================================================================
# JWT
# ============================================================================


def create_jwt_token(data: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT token

    Args:
        data: Data to encode in the token
        expires_delta: Token expiration time (default 15 minutes)
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=15)

    to_encode.update({"exp": expire})
    return jose_jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def verify_jwt_token(token: str) -> Optional[dict[str, Any]]:
    """
    Verify and decode a JWT token

    Returns:
        Decoded payload if valid, None if invalid or expired
    """
    try:
        return jose_jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None


def mask_phone(phone: Optional[str], visible_chars: int = 4) -> str:
    """Mask a phone number for logs, keeping the last few digits"""
    if not phone:
        return ""
    if len(phone) <= visible_chars:
        return "*" * len(phone)
    return "*" * (len(phone) - visible_chars) + phone[-visible_chars:]
