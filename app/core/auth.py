# app/core/auth.py
import logging
from collections.abc import Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session

from app.core.security import decode_access_token
from app.database import get_session
from app.models.access import AccessLevel, PERMISSION_FLAGS
from app.models.user import User

logger = logging.getLogger(__name__)

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header will NOT raise immediately
#   so we can support "guest" mode (unauthenticated).
bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User | None:
    """
    Resolve the current user from an access token issued at login.

    Flow:
      1. If no Authorization header => guest => return None.
      2. Decode JWT => extract 'sub' (user id).
      3. Load the user row; a deleted user invalidates the token.

    Returns:
        User instance if authenticated, else None for guests.

    Raises:
        HTTPException(401): if token is malformed, expired, or the user is gone.
    """
    if credentials is None:
        return None  # guest mode

    payload = decode_access_token(credentials.credentials)
    sub = payload.get("sub")

    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid sub in token",
        )

    user = session.get(User, user_id)
    if user is None:
        logger.warning("Token for unknown user id=%s rejected", user_id)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User no longer exists",
        )

    return user


def require_auth(user: User | None = Depends(get_current_user)) -> User:
    """
    Enforce authentication.

    If attached to a route, guests (missing/invalid JWT)
    will be rejected with 401.

    Raises:
        HTTPException(401): if user is None.
    """
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return user


def require_staff(
    user: User = Depends(require_auth),
    session: Session = Depends(get_session),
) -> User:
    """
    Any back-office account: the access level grants at least one flag.

    Raises:
        HTTPException(403): for customers.
    """
    access = session.get(AccessLevel, user.access_level)
    if access is None or not access.is_staff:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to perform this action",
        )
    return user


def require_permission(flag: str) -> Callable[..., User]:
    """
    Build a dependency that only lets through users whose access level
    grants `flag` (sys_admin grants everything).

    Usage:

        @router.get("", dependencies=[Depends(require_permission("order_mgr"))])

    Raises:
        HTTPException(403): if the user's access level lacks the flag.
    """
    if flag not in PERMISSION_FLAGS:
        raise ValueError(f"Unknown permission flag: {flag}")

    def dependency(
        user: User = Depends(require_auth),
        session: Session = Depends(get_session),
    ) -> User:
        access = session.get(AccessLevel, user.access_level)
        if access is None or not access.allows(flag):
            logger.info(
                "Permission %s denied for user id=%s (level %s)",
                flag,
                user.id,
                user.access_level,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to perform this action",
            )
        return user

    return dependency
