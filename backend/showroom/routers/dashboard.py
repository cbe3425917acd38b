"""Dashboard and closing endpoints."""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ..auth import PermissionChecker, get_current_user
from ..database import get_db
from ..models import User
from ..schemas import (
    AdminDashboardResponse,
    BaseDashboardResponse,
    CashierDashboardResponse,
    DailyClosingCreate,
    DailyClosingResponse,
    DashboardOverview,
    MechanicDashboardResponse,
    MonthlyClosingCreate,
    MonthlyClosingResponse,
    MonthlyStats,
    TopPerformance,
)
from ..use_cases.dashboard import (
    create_daily_closing_use_case,
    create_monthly_closing_use_case,
    get_admin_dashboard_use_case,
    get_base_dashboard_use_case,
    get_cashier_dashboard_use_case,
    get_mechanic_dashboard_use_case,
    get_metrics_use_case,
    get_monthly_stats_use_case,
    get_top_performance_use_case,
    refresh_metrics_use_case,
)

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

_reports = [Depends(PermissionChecker("canViewReports"))]
_close_books = [Depends(PermissionChecker("canCloseBooks"))]


def _current_period(month: Optional[int], year: Optional[int]) -> tuple[int, int]:
    today = date.today()
    return month or today.month, year or today.year


@router.get("/metrics", response_model=DashboardOverview, dependencies=_reports)
def get_metrics(
    metric_date: Optional[date] = None,
    db: Session = Depends(get_db),
):
    return get_metrics_use_case(db=db, on=metric_date)


@router.post("/metrics/refresh", response_model=DashboardOverview, dependencies=_reports)
def refresh_metrics(db: Session = Depends(get_db)):
    """Recompute today's snapshot row."""
    return refresh_metrics_use_case(db=db)


@router.get("", response_model=BaseDashboardResponse, dependencies=_reports)
def get_dashboard(db: Session = Depends(get_db)):
    return get_base_dashboard_use_case(db=db)


@router.get("/admin", response_model=AdminDashboardResponse)
def get_admin_dashboard(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if current_user.role != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return get_admin_dashboard_use_case(db=db)


@router.get("/cashier", response_model=CashierDashboardResponse, dependencies=_reports)
def get_cashier_dashboard(db: Session = Depends(get_db)):
    return get_cashier_dashboard_use_case(db=db)


@router.get("/mechanic", response_model=MechanicDashboardResponse)
def get_mechanic_dashboard(
    current_user: User = Depends(PermissionChecker("canWorkRepairs")),
    db: Session = Depends(get_db),
):
    """Open work, today's completions and parts in use for the calling mechanic."""
    return get_mechanic_dashboard_use_case(db=db, mechanic=current_user)


@router.get("/monthly-stats", response_model=MonthlyStats, dependencies=_reports)
def get_monthly_stats(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000),
    db: Session = Depends(get_db),
):
    month, year = _current_period(month, year)
    return get_monthly_stats_use_case(db=db, month=month, year=year)


@router.get("/top-performance", response_model=TopPerformance, dependencies=_reports)
def get_top_performance(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000),
    db: Session = Depends(get_db),
):
    month, year = _current_period(month, year)
    return get_top_performance_use_case(db=db, month=month, year=year)


@router.post(
    "/closings/daily",
    response_model=DailyClosingResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=_close_books,
)
def create_daily_closing(
    data: DailyClosingCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return create_daily_closing_use_case(db=db, payload=data, current_user=current_user)


@router.post(
    "/closings/monthly",
    response_model=MonthlyClosingResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=_close_books,
)
def create_monthly_closing(
    data: MonthlyClosingCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return create_monthly_closing_use_case(db=db, payload=data, current_user=current_user)
