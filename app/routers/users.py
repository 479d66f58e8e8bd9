# app/routers/users.py
from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import require_permission
from app.database import get_session
from app.models.user import User
from app.repositories.access_repo import AccessRepository
from app.repositories.user_repo import AddressRepository, UserRepository
from app.schemas.address import AddressCreate, AddressRead, AddressUpdate
from app.schemas.user import UserCreate, UserRead, UserUpdate
from app.services.address_service import AddressService
from app.services.user_service import UserService

router = APIRouter(prefix="/admin/user", tags=["Admin Users"])

repo = UserRepository()
access_repo = AccessRepository()
service = UserService(repo, access_repo)
address_service = AddressService(AddressRepository())

require_user_mgr = require_permission("user_mgr")


@router.get(
    "",
    response_model=list[UserRead],
    dependencies=[Depends(require_user_mgr)],
)
def list_users(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
    search: str | None = None,
    access_level: int | None = None,
):
    """
    List users.

    Query params:
      - search: matches username, full name or email
      - access_level: only users at this level
    """
    return service.list_users(session, skip, limit, search, access_level)


@router.post(
    "",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_user_mgr)],
)
def create_user(
    payload: UserCreate,
    session: Session = Depends(get_session),
):
    return service.create_user(session, payload)


@router.get(
    "/{user_id}",
    response_model=UserRead,
    dependencies=[Depends(require_user_mgr)],
)
def get_user(
    user_id: int,
    session: Session = Depends(get_session),
):
    return service.get_user(session, user_id)


@router.patch("/{user_id}", response_model=UserRead)
def update_user(
    user_id: int,
    payload: UserUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user_mgr),
):
    """
    Partial update of any account, including its access level.
    """
    return service.update_user(session, user_id, payload, current_user)


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user_mgr),
) -> dict[str, str]:
    service.delete_user(session, user_id, current_user)
    return {"message": "User deleted successfully"}


# -------- Addresses of a user --------


@router.get(
    "/{user_id}/address",
    response_model=list[AddressRead],
    dependencies=[Depends(require_user_mgr)],
)
def list_user_addresses(
    user_id: int,
    session: Session = Depends(get_session),
):
    service.get_user(session, user_id)
    return address_service.list_addresses(session, user_id)


@router.post(
    "/{user_id}/address",
    response_model=AddressRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_user_mgr)],
)
def create_user_address(
    user_id: int,
    payload: AddressCreate,
    session: Session = Depends(get_session),
):
    service.get_user(session, user_id)
    return address_service.create_address(session, user_id, payload)


@router.patch(
    "/{user_id}/address/{address_id}",
    response_model=AddressRead,
    dependencies=[Depends(require_user_mgr)],
)
def update_user_address(
    user_id: int,
    address_id: int,
    payload: AddressUpdate,
    session: Session = Depends(get_session),
):
    return address_service.update_address(session, user_id, address_id, payload)


@router.delete(
    "/{user_id}/address/{address_id}",
    dependencies=[Depends(require_user_mgr)],
)
def delete_user_address(
    user_id: int,
    address_id: int,
    session: Session = Depends(get_session),
) -> dict[str, str]:
    address_service.delete_address(session, user_id, address_id)
    return {"message": "Address deleted successfully"}
