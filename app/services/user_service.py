# app/services/user_service.py
import logging

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.config import get_settings
from app.core.security import create_access_token, hash_password, verify_password
from app.models.access import SYSTEM_ADMIN_LEVEL
from app.models.user import User
from app.repositories.access_repo import AccessRepository
from app.repositories.user_repo import UserRepository
from app.schemas.user import (
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    TokenResponse,
    UserCreate,
    UserRead,
    UserUpdate,
)

logger = logging.getLogger(__name__)


class UserService:
    """
    Business logic for User.

    Responsibilities:
      - registration / login / token issue
      - enforce app rules (unique username & email, valid access level)
      - orchestrate repository operations
      - map domain errors to HTTP errors
    """

    def __init__(self, repo: UserRepository, access_repo: AccessRepository):
        self.repo = repo
        self.access_repo = access_repo

    # ----- Helpers -----

    def _ensure_unique(
        self,
        session: Session,
        username: str | None = None,
        email: str | None = None,
        exclude_id: int | None = None,
    ) -> None:
        if username:
            existing = self.repo.get_by_username(session, username)
            if existing and existing.id != exclude_id:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Username is already taken",
                )
        if email:
            existing = self.repo.get_by_email(session, email)
            if existing and existing.id != exclude_id:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Email is already registered",
                )

    def _ensure_level_exists(self, session: Session, level: int) -> None:
        if self.access_repo.get(session, level) is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Access level {level} does not exist",
            )

    @staticmethod
    def _token_for(user: User) -> TokenResponse:
        token, expires_in = create_access_token(user.id, user.access_level)
        return TokenResponse(
            access_token=token,
            expires_in=expires_in,
            user=UserRead.model_validate(user),
        )

    # ----- Auth -----

    def register(self, session: Session, payload: RegisterRequest) -> TokenResponse:
        """
        Create a customer account and log it in.

        Raises:
            HTTPException(409): username or email already used.
        """
        self._ensure_unique(session, payload.username, payload.email)

        user = User(
            username=payload.username,
            full_name=payload.full_name or payload.username,
            email=str(payload.email).lower(),
            phone=payload.phone,
            password_hash=hash_password(payload.password),
        )
        user = self.repo.create(session, user)
        logger.info("Registered user id=%s username=%s", user.id, user.username)
        return self._token_for(user)

    def login(self, session: Session, payload: LoginRequest) -> TokenResponse:
        """
        Raises:
            HTTPException(401): unknown login or wrong password. The two cases
            share one message so the response does not reveal which.
        """
        user = self.repo.get_by_login(session, payload.login)
        if user is None or not verify_password(payload.password, user.password_hash):
            logger.warning("Failed login for %r", payload.login)
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid username or password",
            )
        return self._token_for(user)

    # ----- Self profile -----

    def update_me(
        self,
        session: Session,
        current_user: User,
        payload: ProfileUpdate,
    ) -> User:
        """
        Partial update for profile edits.

        Rules:
          - email must stay unique
          - new_password requires a matching current_password
        """
        if payload.email is not None:
            email = str(payload.email).lower()
            self._ensure_unique(session, email=email, exclude_id=current_user.id)
            current_user.email = email

        if payload.full_name is not None:
            current_user.full_name = payload.full_name

        if "phone" in payload.model_fields_set:
            current_user.phone = payload.phone

        if payload.new_password is not None:
            if not payload.current_password or not verify_password(
                payload.current_password, current_user.password_hash
            ):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Current password is incorrect",
                )
            current_user.password_hash = hash_password(payload.new_password)

        return self.repo.update(session, current_user)

    # ----- Admin operations -----

    def list_users(
        self,
        session: Session,
        skip: int,
        limit: int,
        search: str | None = None,
        access_level: int | None = None,
    ) -> list[User]:
        """List users with pagination (user_mgr only)."""
        return self.repo.list_users(
            session, skip=skip, limit=limit, search=search, access_level=access_level
        )

    def get_user(self, session: Session, user_id: int) -> User:
        """
        Get a user by id.

        Raises:
            HTTPException(404): if not found.
        """
        user = self.repo.get_by_id(session, user_id)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found",
            )
        return user

    def create_user(self, session: Session, payload: UserCreate) -> User:
        email = str(payload.email).lower() if payload.email else None
        self._ensure_unique(session, payload.username, email)
        self._ensure_level_exists(session, payload.access_level)

        user = User(
            username=payload.username,
            full_name=payload.full_name or payload.username,
            email=email,
            phone=payload.phone,
            password_hash=hash_password(payload.password),
            access_level=payload.access_level,
        )
        user = self.repo.create(session, user)
        logger.info("Admin created user id=%s at level %s", user.id, user.access_level)
        return user

    def update_user(
        self,
        session: Session,
        user_id: int,
        payload: UserUpdate,
        actor: User,
    ) -> User:
        """
        Admin partial update.

        Raises:
            HTTPException(400): demoting yourself out of System Admin.
        """
        user = self.get_user(session, user_id)

        if payload.email is not None:
            email = str(payload.email).lower()
            self._ensure_unique(session, email=email, exclude_id=user.id)
            user.email = email

        if payload.full_name is not None:
            user.full_name = payload.full_name

        if "phone" in payload.model_fields_set:
            user.phone = payload.phone

        if payload.access_level is not None and payload.access_level != user.access_level:
            self._ensure_level_exists(session, payload.access_level)
            if user.id == actor.id and user.access_level == SYSTEM_ADMIN_LEVEL:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="You cannot change your own System Admin access",
                )
            user.access_level = payload.access_level

        if payload.password is not None:
            user.password_hash = hash_password(payload.password)

        return self.repo.update(session, user)

    def delete_user(self, session: Session, user_id: int, actor: User) -> None:
        """Delete a user (user_mgr only). Users cannot delete themselves."""
        if user_id == actor.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You cannot delete your own account",
            )
        user = self.get_user(session, user_id)
        if self.repo.count_orders(session, user.id) > 0:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="User has orders and cannot be deleted",
            )
        self.repo.delete(session, user)
        logger.info("User id=%s deleted by user id=%s", user_id, actor.id)

    # ----- Startup -----

    def ensure_first_admin(self, session: Session) -> None:
        """
        Create the bootstrap System Admin from FIRST_ADMIN_* settings
        when that username does not exist yet.
        """
        settings = get_settings()
        if not settings.FIRST_ADMIN_USERNAME or not settings.FIRST_ADMIN_PASSWORD:
            return
        if self.repo.get_by_username(session, settings.FIRST_ADMIN_USERNAME):
            return

        user = User(
            username=settings.FIRST_ADMIN_USERNAME,
            full_name=settings.FIRST_ADMIN_USERNAME,
            email=settings.FIRST_ADMIN_EMAIL.lower() if settings.FIRST_ADMIN_EMAIL else None,
            password_hash=hash_password(settings.FIRST_ADMIN_PASSWORD),
            access_level=SYSTEM_ADMIN_LEVEL,
        )
        self.repo.create(session, user)
        logger.info("Bootstrap admin %s created", user.username)
