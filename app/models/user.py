# app/models/user.py
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    """
    Persistent user account (customers and back-office staff).

    Access:
      - access_level points at access_levels.level
      - level 0 = customer; any level with a permission flag = staff

    Passwords are stored as a keyed digest (see app.core.security).
    """

    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)

    username: str = Field(
        max_length=50,
        unique=True,
        index=True,
        description="Login name (unique)",
    )

    full_name: str = Field(
        max_length=100,
        description="Display name; defaults to username",
    )

    email: str | None = Field(
        default=None,
        unique=True,
        index=True,
        description="Optional email, also accepted as login",
    )

    phone: str | None = Field(default=None, max_length=20)

    password_hash: str = Field(description="werkzeug password hash (method$salt$hash)")

    access_level: int = Field(
        default=0,
        foreign_key="access_levels.level",
        index=True,
        description="Permission bundle key",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )


class Address(SQLModel, table=True):
    """
    Delivery address book entry.

    At most one row per user has is_default=True (enforced by AddressService).
    """

    __tablename__ = "addresses"

    id: int | None = Field(default=None, primary_key=True)

    user_id: int = Field(foreign_key="users.id", index=True)

    address_1: str = Field(description="House number, building, street")
    address_2: str | None = None
    sub_district: str
    district: str
    province: str
    zip_code: str = Field(max_length=10)
    phone: str | None = Field(default=None, max_length=20)

    is_default: bool = Field(default=False, index=True)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
