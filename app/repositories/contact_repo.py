# app/repositories/contact_repo.py
from sqlmodel import Session, select

from app.models.contact import ContactMessage


class ContactRepository:

    def get_by_id(self, session: Session, message_id: int) -> ContactMessage | None:
        return session.get(ContactMessage, message_id)

    def list_messages(
        self,
        session: Session,
        is_read: bool | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[ContactMessage]:
        stmt = select(ContactMessage)
        if is_read is not None:
            stmt = stmt.where(ContactMessage.is_read == is_read)
        stmt = stmt.order_by(ContactMessage.created_at.desc(), ContactMessage.id.desc())
        stmt = stmt.offset(skip).limit(limit)
        return session.exec(stmt).all()

    def create(self, session: Session, message: ContactMessage) -> ContactMessage:
        session.add(message)
        session.commit()
        session.refresh(message)
        return message

    def update(self, session: Session, message: ContactMessage) -> ContactMessage:
        session.add(message)
        session.commit()
        session.refresh(message)
        return message
