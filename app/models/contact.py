# app/models/contact.py
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class ContactMessage(SQLModel, table=True):
    """Message submitted through the public contact form."""

    __tablename__ = "contact_messages"

    id: int | None = Field(default=None, primary_key=True)

    name: str = Field(max_length=100)
    email: str = Field(max_length=255)
    phone: str | None = Field(default=None, max_length=20)
    subject: str = Field(max_length=200)
    message: str

    is_read: bool = Field(default=False, index=True)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
    )
