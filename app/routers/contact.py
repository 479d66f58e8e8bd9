# app/routers/contact.py
from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from app.core.auth import require_staff
from app.database import get_session
from app.repositories.contact_repo import ContactRepository
from app.schemas.contact import ContactCreate, ContactRead
from app.services.contact_service import ContactService

router = APIRouter(tags=["Contact"])

service = ContactService(ContactRepository())


@router.post("/contact", status_code=status.HTTP_201_CREATED)
def submit_contact_message(
    payload: ContactCreate,
    session: Session = Depends(get_session),
) -> dict[str, str]:
    """
    Public contact form.
    """
    service.submit(session, payload)
    return {"message": "Message sent"}


@router.get(
    "/admin/contact-messages",
    response_model=list[ContactRead],
    dependencies=[Depends(require_staff)],
)
def list_contact_messages(
    read_filter: Literal["all", "read", "unread"] = Query(default="all", alias="filter"),
    skip: int = 0,
    limit: int = 50,
    session: Session = Depends(get_session),
):
    """
    Contact form inbox, newest first. Any staff account may read it.
    """
    return service.list_messages(session, read_filter, skip, limit)


@router.patch(
    "/admin/contact-messages/{message_id}/read",
    response_model=ContactRead,
    dependencies=[Depends(require_staff)],
)
def mark_contact_message_read(
    message_id: int,
    session: Session = Depends(get_session),
):
    return service.mark_read(session, message_id)
