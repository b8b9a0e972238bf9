from datetime import datetime, timedelta, timezone
from typing import Literal, Optional

from jose import JWTError, jwt

from videotube.config import get_settings

settings = get_settings()


def _create_token(
    user_id: str,
    token_type: Literal["access", "refresh"],
    expires_delta: timedelta,
) -> str:
    now = datetime.now(timezone.utc)
    to_encode = {
        "sub": user_id,
        "type": token_type,
        "exp": now + expires_delta,
        "iat": now,
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token"""
    return _create_token(
        user_id,
        "access",
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_refresh_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT refresh token"""
    return _create_token(
        user_id,
        "refresh",
        expires_delta or timedelta(days=settings.refresh_token_expire_days),
    )


def verify_token(token: str, token_type: Literal["access", "refresh"] = "access") -> Optional[dict]:
    """Verify and decode a JWT token of the given type"""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
    if payload.get("type") != token_type or not payload.get("sub"):
        return None
    return payload
