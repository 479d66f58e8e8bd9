# app/services/contact_service.py
import logging

from fastapi import HTTPException, status
from sqlmodel import Session

from app.models.contact import ContactMessage
from app.repositories.contact_repo import ContactRepository
from app.schemas.contact import ContactCreate

logger = logging.getLogger(__name__)

# filter name -> is_read value passed to the repository
READ_FILTERS: dict[str, bool | None] = {"all": None, "read": True, "unread": False}


class ContactService:
    def __init__(self, repo: ContactRepository):
        self.repo = repo

    def submit(self, session: Session, payload: ContactCreate) -> ContactMessage:
        message = self.repo.create(session, ContactMessage(**payload.model_dump()))
        logger.info("Contact message id=%s received", message.id)
        return message

    def list_messages(
        self,
        session: Session,
        read_filter: str = "all",
        skip: int = 0,
        limit: int = 50,
    ) -> list[ContactMessage]:
        if read_filter not in READ_FILTERS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="filter must be one of: all, read, unread",
            )
        return self.repo.list_messages(session, READ_FILTERS[read_filter], skip, limit)

    def mark_read(self, session: Session, message_id: int) -> ContactMessage:
        message = self.repo.get_by_id(session, message_id)
        if not message:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Message not found",
            )
        if not message.is_read:
            message.is_read = True
            message = self.repo.update(session, message)
        return message
