# app/schemas/user.py
from datetime import datetime

from pydantic import EmailStr, ConfigDict, field_validator
from sqlmodel import SQLModel, Field


def _strip_required(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("field cannot be empty")
    return v


def _strip_optional(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    return v or None


class RegisterRequest(SQLModel):
    """
    Public sign-up payload.

    New accounts always start at access level 0 (customer).
    """

    model_config = ConfigDict(extra="forbid")

    username: str = Field(min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    full_name: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, max_length=20)

    @field_validator("username")
    @classmethod
    def normalize_username(cls, v: str) -> str:
        v = _strip_required(v)
        if " " in v:
            raise ValueError("username cannot contain spaces")
        return v

    @field_validator("full_name", "phone")
    @classmethod
    def normalize_optional(cls, v: str | None) -> str | None:
        return _strip_optional(v)


class LoginRequest(SQLModel):
    """
    Login accepts either the username or the email in `login`.
    """

    model_config = ConfigDict(extra="forbid")

    login: str
    password: str

    @field_validator("login")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return _strip_required(v)


class UserRead(SQLModel):
    """Response schema returned to clients."""

    id: int
    username: str
    full_name: str
    email: str | None
    phone: str | None
    access_level: int
    created_at: datetime


class TokenResponse(SQLModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserRead


class ProfileUpdate(SQLModel):
    """
    Partial profile update for authenticated users.

    Changing the password requires the current one.
    """

    model_config = ConfigDict(extra="forbid")

    full_name: str | None = Field(default=None, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=20)
    current_password: str | None = None
    new_password: str | None = Field(default=None, min_length=6, max_length=128)

    @field_validator("full_name")
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return _strip_required(v)

    @field_validator("phone")
    @classmethod
    def normalize_phone(cls, v: str | None) -> str | None:
        return _strip_optional(v)


class UserCreate(SQLModel):
    """
    Admin payload for creating an account at any access level.
    """

    model_config = ConfigDict(extra="forbid")

    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=6, max_length=128)
    full_name: str | None = Field(default=None, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=20)
    access_level: int = 0

    @field_validator("username")
    @classmethod
    def normalize_username(cls, v: str) -> str:
        return _strip_required(v)

    @field_validator("full_name", "phone")
    @classmethod
    def normalize_optional(cls, v: str | None) -> str | None:
        return _strip_optional(v)


class UserUpdate(SQLModel):
    """
    Admin partial update. Omitted fields are left untouched.
    """

    model_config = ConfigDict(extra="forbid")

    full_name: str | None = Field(default=None, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=20)
    access_level: int | None = None
    password: str | None = Field(default=None, min_length=6, max_length=128)

    @field_validator("full_name")
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return _strip_required(v)

    @field_validator("phone")
    @classmethod
    def normalize_phone(cls, v: str | None) -> str | None:
        return _strip_optional(v)
