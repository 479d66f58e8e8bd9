# app/routers/admin_stats.py
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from app.core.auth import require_permission
from app.database import get_session
from app.repositories.product_repo import ProductRepository
from app.repositories.stats_repo import StatsRepository
from app.schemas.stats import AdminDashboardStats, DailyReport, InventoryReport
from app.services.stats_service import ReportService, StatsService

router = APIRouter(prefix="/admin", tags=["Admin Stats"])

repo = StatsRepository()
service = StatsService(repo)
report_service = ReportService(repo, ProductRepository())


@router.get(
    "/dashboard",
    response_model=AdminDashboardStats,
    dependencies=[Depends(require_permission("dashboard"))],
)
def get_admin_dashboard_stats(
    year: int | None = None,
    month: int | None = None,
    session: Session = Depends(get_session),
):
    """
    Aggregated statistics for the admin dashboard.

    Query params (optional):
      - year: integer, defaults to current year
      - month: integer 1-12, defaults to current month
    """
    return service.get_admin_dashboard_stats(
        session=session,
        year=year,
        month=month,
    )


@router.get(
    "/report/daily",
    response_model=DailyReport,
    dependencies=[Depends(require_permission("report"))],
)
def daily_report(
    report_date: date | None = Query(default=None, alias="date"),
    session: Session = Depends(get_session),
):
    """
    Orders placed on `date` (YYYY-MM-DD, default today) with totals.
    """
    return report_service.daily_report(session, report_date)


@router.get(
    "/report/inventory",
    response_model=InventoryReport,
    dependencies=[Depends(require_permission("report"))],
)
def inventory_report(session: Session = Depends(get_session)):
    return report_service.inventory_report(session)
