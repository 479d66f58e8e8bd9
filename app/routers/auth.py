# app/routers/auth.py
from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import require_auth
from app.database import get_session
from app.models.user import User
from app.repositories.access_repo import AccessRepository
from app.repositories.user_repo import UserRepository
from app.schemas.user import (
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    TokenResponse,
    UserRead,
)
from app.services.user_service import UserService

router = APIRouter(tags=["Auth"])

repo = UserRepository()
access_repo = AccessRepository()
service = UserService(repo, access_repo)


@router.post(
    "/auth/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
)
def register(
    payload: RegisterRequest,
    session: Session = Depends(get_session),
):
    """
    Create a customer account and sign it in.

    New accounts always get access level 0 (Customer).
    """
    return service.register(session, payload)


@router.post("/auth/login", response_model=TokenResponse)
def login(
    payload: LoginRequest,
    session: Session = Depends(get_session),
):
    """
    Exchange username (or email) + password for a bearer token.
    """
    return service.login(session, payload)


# -------- Self profile --------


@router.get("/profile", response_model=UserRead)
def read_profile(current_user: User = Depends(require_auth)):
    """
    Return the authenticated user's profile.
    """
    return current_user


@router.patch("/profile", response_model=UserRead)
def update_profile(
    payload: ProfileUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Update the authenticated user's profile (partial update).

    Changing the password requires `current_password`.
    """
    return service.update_me(session, current_user, payload)
