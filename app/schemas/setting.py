# app/schemas/setting.py
from datetime import datetime
from typing import Any, Literal

from pydantic import ConfigDict
from sqlmodel import SQLModel

SettingType = Literal["string", "number", "boolean", "json", "image"]
SettingGroup = Literal["general", "order", "payment", "system"]


class SettingRead(SQLModel):
    """
    One setting as shown in the back office: definition plus current value.

    `value` is the raw stored text; `parsed` is the same value converted
    according to `type`.
    """

    key: str
    label: str
    description: str | None
    type: SettingType
    group: SettingGroup
    default: str
    value: str
    parsed: Any
    update_by: int | None = None
    update_at: datetime | None = None


class SettingUpdate(SQLModel):
    """
    New raw value for a setting.

    Booleans accept True/False/1/0; numbers any numeric text;
    json any valid JSON document.
    """

    model_config = ConfigDict(extra="forbid")

    value: str


class SettingHistoryRead(SQLModel):
    id: int
    key: str
    old_value: str | None
    new_value: str | None
    changed_by: int | None
    changed_by_name: str | None = None
    changed_at: datetime


class SettingUpdateResponse(SQLModel):
    message: str
    setting: SettingRead
