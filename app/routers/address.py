# app/routers/address.py
from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import require_auth
from app.database import get_session
from app.models.user import User
from app.repositories.user_repo import AddressRepository
from app.schemas.address import AddressCreate, AddressRead, AddressUpdate
from app.services.address_service import AddressService

router = APIRouter(prefix="/address", tags=["Address"])

repo = AddressRepository()
service = AddressService(repo)


@router.get("", response_model=list[AddressRead])
def list_my_addresses(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    List the current user's addresses, default first.
    """
    return service.list_addresses(session, current_user.id)


@router.post("", response_model=AddressRead, status_code=status.HTTP_201_CREATED)
def create_address(
    payload: AddressCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Add an address. The first address becomes the default.
    """
    return service.create_address(session, current_user.id, payload)


@router.get("/{address_id}", response_model=AddressRead)
def get_address(
    address_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return service.get_address(session, current_user.id, address_id)


@router.patch("/{address_id}", response_model=AddressRead)
def update_address(
    address_id: int,
    payload: AddressUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return service.update_address(session, current_user.id, address_id, payload)


@router.patch("/{address_id}/default", response_model=AddressRead)
def set_default_address(
    address_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Make this address the default; the previous default is cleared.
    """
    return service.set_default(session, current_user.id, address_id)


@router.delete("/{address_id}")
def delete_address(
    address_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
) -> dict[str, str]:
    """
    Delete an address. Deleting the default promotes the oldest remaining one.
    """
    service.delete_address(session, current_user.id, address_id)
    return {"message": "Address deleted successfully"}
