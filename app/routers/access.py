# app/routers/access.py
from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import require_auth, require_permission
from app.database import get_session
from app.models.user import User
from app.repositories.access_repo import AccessRepository
from app.repositories.user_repo import UserRepository
from app.schemas.access import (
    AccessLevelCreate,
    AccessLevelRead,
    AccessLevelUpdate,
    RoleRead,
)
from app.services.access_service import AccessService

router = APIRouter(prefix="/master", tags=["Access Levels"])

repo = AccessRepository()
user_repo = UserRepository()
service = AccessService(repo, user_repo)

require_sys_admin = require_permission("sys_admin")


@router.get(
    "/access",
    response_model=list[AccessLevelRead],
    dependencies=[Depends(require_auth)],
)
def list_access_levels(session: Session = Depends(get_session)):
    """
    All access levels with their permission flags.

    Any signed-in user may read them (the back office uses this to
    decide which menus to show).
    """
    return service.list_levels(session)


@router.get(
    "/access/{level}",
    response_model=AccessLevelRead,
    dependencies=[Depends(require_auth)],
)
def get_access_level(level: int, session: Session = Depends(get_session)):
    return service.get_level(session, level)


@router.post(
    "/access",
    response_model=AccessLevelRead,
    status_code=status.HTTP_201_CREATED,
)
def create_access_level(
    payload: AccessLevelCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_sys_admin),
):
    return service.create_level(session, payload, current_user)


@router.patch("/access/{level}", response_model=AccessLevelRead)
def update_access_level(
    level: int,
    payload: AccessLevelUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_sys_admin),
):
    """
    Rename a level or change its permissions.
    Built-in levels (0 and 999) can only be renamed.
    """
    return service.update_level(session, level, payload, current_user)


@router.delete("/access/{level}", dependencies=[Depends(require_sys_admin)])
def delete_access_level(
    level: int,
    session: Session = Depends(get_session),
) -> dict[str, str]:
    service.delete_level(session, level)
    return {"message": "Access level deleted successfully"}


@router.get(
    "/role",
    response_model=list[RoleRead],
    dependencies=[Depends(require_sys_admin)],
)
def list_roles(session: Session = Depends(get_session)):
    """
    Access levels with audit names and user counts.
    """
    return service.list_roles(session)
