"""Dashboard rollups shared by API reads, closings and the metrics refresh task."""
from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models import DashboardMetric, PurchaseTransaction, RepairOrder, SalesTransaction, SparePart, Vehicle
from .inventory_rules import low_stock_clause
from .repair_rules import sum_money

logger = logging.getLogger(__name__)

METRIC_FIELDS: tuple[str, ...] = (
    "vehicles_available",
    "vehicles_in_repair",
    "vehicles_sold_today",
    "revenue_today",
    "profit_today",
    "pending_repairs",
    "low_stock_items",
)


def month_bounds(month: int, year: int) -> tuple[date, date]:
    """First day of the month and first day of the next one."""
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, end


def day_bounds(start: date, end_exclusive: date) -> tuple[datetime, datetime]:
    return datetime.combine(start, time.min), datetime.combine(end_exclusive, time.min)


def _count(db: Session, model, *criteria) -> int:
    return db.query(func.count(model.id)).filter(*criteria).scalar() or 0


def compute_metrics(*, db: Session, on: date) -> dict[str, Any]:
    """Live headline numbers for one day."""
    sales_today = (
        db.query(SalesTransaction.selling_price, SalesTransaction.profit)
        .filter(SalesTransaction.transaction_date == on)
        .all()
    )
    return {
        "metric_date": on,
        "vehicles_available": _count(db, Vehicle, Vehicle.status == "available"),
        "vehicles_in_repair": _count(db, Vehicle, Vehicle.status == "in_repair"),
        "vehicles_sold_today": len(sales_today),
        "revenue_today": sum_money(row.selling_price for row in sales_today),
        "profit_today": sum_money(row.profit for row in sales_today),
        "pending_repairs": _count(db, RepairOrder, RepairOrder.status == "pending"),
        "low_stock_items": _count(db, SparePart, low_stock_clause()),
    }


def upsert_metrics(*, db: Session, on: date) -> DashboardMetric:
    """Write today's snapshot row, replacing any earlier one. Caller commits."""
    values = compute_metrics(db=db, on=on)
    metric = db.query(DashboardMetric).filter(DashboardMetric.metric_date == on).first()
    if metric is None:
        metric = DashboardMetric(metric_date=on)
        db.add(metric)
    for field in METRIC_FIELDS:
        setattr(metric, field, values[field])
    db.flush()
    logger.info("Dashboard metrics for %s refreshed", on.isoformat())
    return metric


def period_totals(*, db: Session, start: date, end_exclusive: date) -> dict[str, Any]:
    """Money and volume totals for transactions dated in [start, end_exclusive)."""
    purchases = (
        db.query(PurchaseTransaction.purchase_price)
        .filter(
            PurchaseTransaction.transaction_date >= start,
            PurchaseTransaction.transaction_date < end_exclusive,
        )
        .all()
    )
    sales = (
        db.query(SalesTransaction.selling_price, SalesTransaction.profit)
        .filter(
            SalesTransaction.transaction_date >= start,
            SalesTransaction.transaction_date < end_exclusive,
        )
        .all()
    )
    window_start, window_end = day_bounds(start, end_exclusive)
    repair_costs = (
        db.query(RepairOrder.actual_cost)
        .filter(
            RepairOrder.status == "completed",
            RepairOrder.completed_at >= window_start,
            RepairOrder.completed_at < window_end,
        )
        .all()
    )
    return {
        "total_purchase": sum_money(row.purchase_price for row in purchases),
        "total_sales": sum_money(row.selling_price for row in sales),
        "total_repair_cost": sum_money(row.actual_cost for row in repair_costs),
        "total_profit": sum_money(row.profit for row in sales),
        "vehicles_purchased": len(purchases),
        "vehicles_sold": len(sales),
        "vehicles_in_stock": _count(db, Vehicle, Vehicle.status == "available"),
    }


def next_day(value: date) -> date:
    return value + timedelta(days=1)
