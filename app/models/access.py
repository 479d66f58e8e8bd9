# app/models/access.py
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field

CUSTOMER_LEVEL = 0
SYSTEM_ADMIN_LEVEL = 999

# Flag columns in the order they are shown in the back office
PERMISSION_FLAGS = (
    "sys_admin",
    "user_mgr",
    "stock_mgr",
    "order_mgr",
    "report",
    "dashboard",
)


class AccessLevel(SQLModel, table=True):
    """
    Flat permission bag keyed by an integer level.

    Level 0 (Customer) and 999 (System Admin) are seeded on startup.
    `sys_admin` implies every other flag.
    """

    __tablename__ = "access_levels"

    level: int = Field(primary_key=True)

    name: str = Field(max_length=50)

    sys_admin: bool = False
    user_mgr: bool = False
    stock_mgr: bool = False
    order_mgr: bool = False
    report: bool = False
    dashboard: bool = False

    create_by: int | None = None
    create_date: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    update_by: int | None = None
    update_date: datetime | None = None

    def allows(self, flag: str) -> bool:
        if flag not in PERMISSION_FLAGS:
            raise ValueError(f"Unknown permission flag: {flag}")
        return self.sys_admin or bool(getattr(self, flag))

    @property
    def is_staff(self) -> bool:
        return any(getattr(self, flag) for flag in PERMISSION_FLAGS)
