# app/schemas/access.py
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field


class AccessLevelCreate(SQLModel):
    """
    Payload for a new access level.

    `level` is chosen by the caller; 0 and 999 are reserved.
    """

    model_config = ConfigDict(extra="forbid")

    level: int = Field(ge=0)
    name: str = Field(max_length=50)
    sys_admin: bool = False
    user_mgr: bool = False
    stock_mgr: bool = False
    order_mgr: bool = False
    report: bool = False
    dashboard: bool = False

    @field_validator("name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


class AccessLevelUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=50)
    sys_admin: bool | None = None
    user_mgr: bool | None = None
    stock_mgr: bool | None = None
    order_mgr: bool | None = None
    report: bool | None = None
    dashboard: bool | None = None

    @field_validator("name")
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


class AccessLevelRead(SQLModel):
    level: int
    name: str
    sys_admin: bool
    user_mgr: bool
    stock_mgr: bool
    order_mgr: bool
    report: bool
    dashboard: bool


class RoleRead(AccessLevelRead):
    """
    Access level with audit columns and the number of users holding it.
    """

    create_by: int | None
    create_by_name: str | None = None
    create_date: datetime
    update_by: int | None
    update_by_name: str | None = None
    update_date: datetime | None
    user_count: int = 0
