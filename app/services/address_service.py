# app/services/address_service.py
import logging

from fastapi import HTTPException, status
from sqlmodel import Session

from app.models.user import Address
from app.repositories.user_repo import AddressRepository
from app.schemas.address import AddressCreate, AddressUpdate

logger = logging.getLogger(__name__)


class AddressService:
    """
    Address book of a user.

    Invariant: a user with at least one address has exactly one default.
      - the first address becomes the default
      - choosing a new default clears the previous one
      - deleting the default promotes the oldest remaining address
    """

    def __init__(self, repo: AddressRepository):
        self.repo = repo

    def list_addresses(self, session: Session, user_id: int) -> list[Address]:
        return self.repo.list_for_user(session, user_id)

    def get_address(self, session: Session, user_id: int, address_id: int) -> Address:
        """
        Raises:
            HTTPException(404): missing, or owned by another user.
        """
        address = self.repo.get_by_id(session, address_id)
        if not address or address.user_id != user_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Address not found",
            )
        return address

    def create_address(
        self,
        session: Session,
        user_id: int,
        payload: AddressCreate,
    ) -> Address:
        first = self.repo.oldest_for_user(session, user_id) is None
        make_default = first or payload.is_default

        if make_default:
            self.repo.clear_default(session, user_id)

        address = Address(
            user_id=user_id,
            **payload.model_dump(exclude={"is_default"}),
            is_default=make_default,
        )
        self.repo.add(session, address)
        session.commit()
        session.refresh(address)
        return address

    def update_address(
        self,
        session: Session,
        user_id: int,
        address_id: int,
        payload: AddressUpdate,
    ) -> Address:
        address = self.get_address(session, user_id, address_id)
        changes = payload.model_dump(exclude_unset=True)
        is_default = changes.pop("is_default", None)

        for key, value in changes.items():
            if value is None and key not in ("address_2", "phone"):
                continue
            setattr(address, key, value)

        if is_default is True and not address.is_default:
            self.repo.clear_default(session, user_id, exclude_id=address.id)
            address.is_default = True
        elif is_default is False and address.is_default:
            # Unsetting the only default hands it to another address, if any
            other = self.repo.oldest_for_user(session, user_id, exclude_id=address.id)
            if other is not None:
                address.is_default = False
                other.is_default = True
                session.add(other)

        session.add(address)
        session.commit()
        session.refresh(address)
        return address

    def set_default(self, session: Session, user_id: int, address_id: int) -> Address:
        address = self.get_address(session, user_id, address_id)
        self.repo.clear_default(session, user_id, exclude_id=address.id)
        address.is_default = True
        session.add(address)
        session.commit()
        session.refresh(address)
        return address

    def delete_address(self, session: Session, user_id: int, address_id: int) -> None:
        address = self.get_address(session, user_id, address_id)
        was_default = address.is_default
        self.repo.delete(session, address)

        if was_default:
            successor = self.repo.oldest_for_user(session, user_id)
            if successor is not None:
                successor.is_default = True
                session.add(successor)
                logger.info(
                    "Address id=%s promoted to default for user id=%s",
                    successor.id,
                    user_id,
                )

        session.commit()
