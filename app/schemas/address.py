# app/schemas/address.py
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field


class AddressCreate(SQLModel):
    """
    Payload for adding an address to an address book.

    The first address of a user always becomes the default,
    whatever `is_default` says.
    """

    model_config = ConfigDict(extra="forbid")

    address_1: str = Field(max_length=255)
    address_2: str | None = Field(default=None, max_length=255)
    sub_district: str = Field(max_length=100)
    district: str = Field(max_length=100)
    province: str = Field(max_length=100)
    zip_code: str = Field(max_length=10)
    phone: str | None = Field(default=None, max_length=20)
    is_default: bool = False

    @field_validator("address_1", "sub_district", "district", "province", "zip_code")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("address_2", "phone")
    @classmethod
    def normalize_optional(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class AddressUpdate(SQLModel):
    """Partial address update; omitted fields are left untouched."""

    model_config = ConfigDict(extra="forbid")

    address_1: str | None = Field(default=None, max_length=255)
    address_2: str | None = Field(default=None, max_length=255)
    sub_district: str | None = Field(default=None, max_length=100)
    district: str | None = Field(default=None, max_length=100)
    province: str | None = Field(default=None, max_length=100)
    zip_code: str | None = Field(default=None, max_length=10)
    phone: str | None = Field(default=None, max_length=20)
    is_default: bool | None = None

    @field_validator("address_1", "sub_district", "district", "province", "zip_code")
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("address_2", "phone")
    @classmethod
    def normalize_optional(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class AddressRead(SQLModel):
    id: int
    user_id: int
    address_1: str
    address_2: str | None
    sub_district: str
    district: str
    province: str
    zip_code: str
    phone: str | None
    is_default: bool
    created_at: datetime
