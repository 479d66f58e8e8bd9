# app/core/security.py
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import HTTPException, status
from jose import jwt, JWTError
from werkzeug.security import check_password_hash, generate_password_hash

from app.core.config import get_settings

settings = get_settings()


def hash_password(password: str) -> str:
    """
    Salted, slow hash of a password (werkzeug's default scrypt method).

    Returns:
        "method$salt$hash" string stored in users.password_hash.
    """
    return generate_password_hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return check_password_hash(password_hash, password)


def create_access_token(user_id: int, access_level: int) -> tuple[str, int]:
    """
    Issue a signed JWT for a user.

    Claims:
      - sub: user id (string, per JWT convention)
      - lvl: access level at issue time
      - exp: expiry (ACCESS_TOKEN_EXPIRE_MINUTES)

    Returns:
        (token, expires_in_seconds)
    """
    expires_in = settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "lvl": access_level,
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
    }
    token = jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)
    return token, expires_in


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify an access token issued by create_access_token.

    Raises:
        HTTPException(401): if token is invalid/expired.
    """
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALG],
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
