# app/services/access_service.py
import logging
from datetime import datetime, timezone

from fastapi import HTTPException, status
from sqlmodel import Session

from app.models.access import (
    AccessLevel,
    CUSTOMER_LEVEL,
    PERMISSION_FLAGS,
    SYSTEM_ADMIN_LEVEL,
)
from app.models.user import User
from app.repositories.access_repo import AccessRepository
from app.repositories.user_repo import UserRepository
from app.schemas.access import AccessLevelCreate, AccessLevelUpdate, RoleRead

logger = logging.getLogger(__name__)

RESERVED_LEVELS = (CUSTOMER_LEVEL, SYSTEM_ADMIN_LEVEL)


class AccessService:
    """
    Business logic for access levels (permission bundles).

    Rules:
      - levels 0 (Customer) and 999 (System Admin) always exist
        and cannot be created, edited into something else, or deleted
      - a level still assigned to users cannot be deleted
    """

    def __init__(self, repo: AccessRepository, user_repo: UserRepository):
        self.repo = repo
        self.user_repo = user_repo

    # ----- Startup -----

    def seed_defaults(self, session: Session) -> None:
        """Insert the two built-in levels if they are missing."""
        created = False
        if self.repo.get(session, CUSTOMER_LEVEL) is None:
            session.add(AccessLevel(level=CUSTOMER_LEVEL, name="Customer"))
            created = True
        if self.repo.get(session, SYSTEM_ADMIN_LEVEL) is None:
            session.add(
                AccessLevel(
                    level=SYSTEM_ADMIN_LEVEL,
                    name="System Admin",
                    **{flag: True for flag in PERMISSION_FLAGS},
                )
            )
            created = True
        if created:
            session.commit()
            logger.info("Seeded built-in access levels")

    # ----- Queries -----

    def list_levels(self, session: Session) -> list[AccessLevel]:
        return self.repo.list_levels(session)

    def get_level(self, session: Session, level: int) -> AccessLevel:
        access = self.repo.get(session, level)
        if not access:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Access level not found",
            )
        return access

    def list_roles(self, session: Session) -> list[RoleRead]:
        """
        Access levels with audit names and how many users hold each one.
        """
        levels = self.repo.list_levels(session)
        audit_ids = {a.create_by for a in levels if a.create_by} | {
            a.update_by for a in levels if a.update_by
        }
        names = self.user_repo.names_by_id(session, audit_ids)

        roles: list[RoleRead] = []
        for access in levels:
            roles.append(
                RoleRead(
                    **access.model_dump(),
                    create_by_name=names.get(access.create_by),
                    update_by_name=names.get(access.update_by),
                    user_count=self.user_repo.count_by_level(session, access.level),
                )
            )
        return roles

    # ----- Mutations (sys_admin) -----

    def create_level(
        self,
        session: Session,
        payload: AccessLevelCreate,
        actor: User,
    ) -> AccessLevel:
        if payload.level in RESERVED_LEVELS or self.repo.get(session, payload.level):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Access level {payload.level} already exists",
            )

        access = AccessLevel(**payload.model_dump(), create_by=actor.id)
        access = self.repo.create(session, access)
        logger.info("Access level %s created by user id=%s", access.level, actor.id)
        return access

    def update_level(
        self,
        session: Session,
        level: int,
        payload: AccessLevelUpdate,
        actor: User,
    ) -> AccessLevel:
        access = self.get_level(session, level)
        changes = payload.model_dump(exclude_unset=True)

        if level in RESERVED_LEVELS and any(k in PERMISSION_FLAGS for k in changes):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Permissions of built-in access levels cannot be changed",
            )

        for key, value in changes.items():
            if value is not None:
                setattr(access, key, value)

        access.update_by = actor.id
        access.update_date = datetime.now(timezone.utc)
        return self.repo.update(session, access)

    def delete_level(self, session: Session, level: int) -> None:
        if level in RESERVED_LEVELS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Built-in access levels cannot be deleted",
            )

        access = self.get_level(session, level)

        if self.user_repo.count_by_level(session, level) > 0:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Access level is still assigned to users",
            )

        self.repo.delete(session, access)
        logger.info("Access level %s deleted", level)
