"""Role dashboards and period closings."""
from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ..database import atomic
from ..domain_errors import ConflictError, InvalidStateError
from ..models import (
    DailyClosing,
    DashboardMetric,
    MonthlyClosing,
    PurchaseTransaction,
    RepairOrder,
    RepairSparePart,
    SalesTransaction,
    SparePart,
    User,
    Vehicle,
    VehicleBrand,
)
from ..schemas import (
    AdminDashboardResponse,
    AvailableVehicleItem,
    BaseDashboardResponse,
    CashierDashboardResponse,
    DailyClosingCreate,
    DashboardOverview,
    LowStockItem,
    MechanicDashboardResponse,
    MonthlyClosingCreate,
    MonthlyStats,
    PendingRepairItem,
    PurchaseTransactionRow,
    RequiredPartItem,
    SalesTransactionRow,
    TopPerformance,
)
from ..services.dashboard_metrics import (
    compute_metrics,
    day_bounds,
    month_bounds,
    next_day,
    period_totals,
    upsert_metrics,
)
from ..services.inventory_rules import low_stock_clause

logger = logging.getLogger(__name__)

RECENT_TRANSACTIONS_LIMIT = 10
DASHBOARD_LIST_LIMIT = 5


def _sales_row(transaction: SalesTransaction) -> SalesTransactionRow:
    return SalesTransactionRow(
        id=transaction.id,
        invoice_number=transaction.invoice_number,
        transaction_date=transaction.transaction_date,
        amount=transaction.selling_price,
        profit=transaction.profit,
        payment_status=transaction.payment_status,
        customer_name=transaction.customer.name if transaction.customer else None,
        vehicle_code=transaction.vehicle.code if transaction.vehicle else None,
    )


def _purchase_row(transaction: PurchaseTransaction) -> PurchaseTransactionRow:
    return PurchaseTransactionRow(
        id=transaction.id,
        invoice_number=transaction.invoice_number,
        transaction_date=transaction.transaction_date,
        amount=transaction.purchase_price,
        payment_status=transaction.payment_status,
        source_type=transaction.source_type,
        vehicle_code=transaction.vehicle.code if transaction.vehicle else None,
    )


def _transaction_rows(*, db: Session, on: date | None = None, limit: int | None = None):
    sales_query = db.query(SalesTransaction).options(
        joinedload(SalesTransaction.customer), joinedload(SalesTransaction.vehicle)
    )
    purchase_query = db.query(PurchaseTransaction).options(joinedload(PurchaseTransaction.vehicle))
    if on is not None:
        sales_query = sales_query.filter(SalesTransaction.transaction_date == on)
        purchase_query = purchase_query.filter(PurchaseTransaction.transaction_date == on)

    sales_query = sales_query.order_by(SalesTransaction.created_at.desc(), SalesTransaction.id.desc())
    purchase_query = purchase_query.order_by(PurchaseTransaction.created_at.desc(), PurchaseTransaction.id.desc())
    if limit:
        sales_query = sales_query.limit(limit)
        purchase_query = purchase_query.limit(limit)

    merged = [(tx.created_at, _sales_row(tx)) for tx in sales_query.all()]
    merged += [(tx.created_at, _purchase_row(tx)) for tx in purchase_query.all()]
    merged.sort(key=lambda item: (item[1].transaction_date, _sortable(item[0])), reverse=True)
    rows = [row for _, row in merged]
    return rows[:limit] if limit else rows


def _sortable(value):
    # created_at may come back naive or aware depending on the backend.
    return value.replace(tzinfo=None) if value is not None else datetime.min


def _pending_repair_item(order: RepairOrder) -> PendingRepairItem:
    return PendingRepairItem(
        id=order.id,
        code=order.code,
        vehicle_code=order.vehicle.code if order.vehicle else None,
        mechanic_name=order.mechanic.full_name if order.mechanic else None,
        status=order.status,
        estimated_cost=order.estimated_cost,
        created_at=order.created_at,
    )


def _open_repairs_query(db: Session):
    return (
        db.query(RepairOrder)
        .options(joinedload(RepairOrder.vehicle), joinedload(RepairOrder.mechanic))
        .filter(RepairOrder.status.in_(("pending", "in_progress")))
        .order_by(RepairOrder.created_at.asc(), RepairOrder.id.asc())
    )


def get_metrics_use_case(*, db: Session, on: date | None = None) -> DashboardOverview:
    """Stored snapshot for the day if one exists, otherwise live numbers."""
    on = on or date.today()
    stored = db.query(DashboardMetric).filter(DashboardMetric.metric_date == on).first()
    if stored is not None:
        return DashboardOverview.model_validate(stored)
    return DashboardOverview(**compute_metrics(db=db, on=on))


def refresh_metrics_use_case(*, db: Session, on: date | None = None) -> DashboardOverview:
    on = on or date.today()
    with atomic(db, operation="refresh dashboard metrics"):
        metric = upsert_metrics(db=db, on=on)
    return DashboardOverview.model_validate(metric)


def _base_sections(*, db: Session) -> dict:
    today = date.today()
    low_stock = (
        db.query(SparePart)
        .filter(low_stock_clause())
        .order_by(SparePart.stock_quantity, SparePart.name)
        .limit(DASHBOARD_LIST_LIMIT)
        .all()
    )
    vehicles = (
        db.query(Vehicle)
        .options(joinedload(Vehicle.brand))
        .filter(Vehicle.status == "available")
        .order_by(Vehicle.created_at.desc(), Vehicle.id.desc())
        .limit(DASHBOARD_LIST_LIMIT)
        .all()
    )
    return {
        "overview": DashboardOverview(**compute_metrics(db=db, on=today)),
        "recent_transactions": _transaction_rows(db=db, limit=RECENT_TRANSACTIONS_LIMIT),
        "pending_repairs": [
            _pending_repair_item(order) for order in _open_repairs_query(db).limit(DASHBOARD_LIST_LIMIT).all()
        ],
        "low_stock_items": [
            LowStockItem(
                id=part.id,
                code=part.code,
                name=part.name,
                stock_quantity=part.stock_quantity,
                minimum_stock=part.minimum_stock,
            )
            for part in low_stock
        ],
        "available_vehicles": [
            AvailableVehicleItem(
                id=vehicle.id,
                code=vehicle.code,
                brand_name=vehicle.brand.name if vehicle.brand else None,
                model=vehicle.model,
                year=vehicle.year,
                hpp_price=vehicle.hpp_price,
                selling_price=vehicle.selling_price,
            )
            for vehicle in vehicles
        ],
    }


def get_base_dashboard_use_case(*, db: Session) -> BaseDashboardResponse:
    return BaseDashboardResponse(**_base_sections(db=db))


def get_monthly_stats_use_case(*, db: Session, month: int, year: int) -> MonthlyStats:
    """Closed figures for a closed month, live figures otherwise."""
    closing = (
        db.query(MonthlyClosing)
        .filter(MonthlyClosing.month == month, MonthlyClosing.year == year)
        .first()
    )
    if closing is not None:
        return MonthlyStats(
            month=month,
            year=year,
            total_purchase=closing.total_purchase,
            total_sales=closing.total_sales,
            total_repair_cost=closing.total_repair_cost,
            total_profit=closing.total_profit,
            vehicles_purchased=closing.vehicles_purchased,
            vehicles_sold=closing.vehicles_sold,
            vehicles_in_stock=closing.vehicles_in_stock,
        )
    start, end = month_bounds(month, year)
    return MonthlyStats(month=month, year=year, **period_totals(db=db, start=start, end_exclusive=end))


def get_top_performance_use_case(*, db: Session, month: int, year: int) -> TopPerformance:
    start, end = month_bounds(month, year)
    result = TopPerformance()

    top_brand = (
        db.query(VehicleBrand.name, func.count(SalesTransaction.id).label("sales"))
        .join(Vehicle, Vehicle.brand_id == VehicleBrand.id)
        .join(SalesTransaction, SalesTransaction.vehicle_id == Vehicle.id)
        .filter(SalesTransaction.transaction_date >= start, SalesTransaction.transaction_date < end)
        .group_by(VehicleBrand.name)
        .order_by(func.count(SalesTransaction.id).desc(), VehicleBrand.name)
        .first()
    )
    if top_brand is not None:
        result.top_brand = top_brand.name
        result.top_brand_sales = top_brand.sales

    window_start, window_end = day_bounds(start, end)
    top_mechanic = (
        db.query(User.full_name, func.count(RepairOrder.id).label("repairs"))
        .join(RepairOrder, RepairOrder.mechanic_id == User.id)
        .filter(
            RepairOrder.status == "completed",
            RepairOrder.completed_at >= window_start,
            RepairOrder.completed_at < window_end,
        )
        .group_by(User.full_name)
        .order_by(func.count(RepairOrder.id).desc(), User.full_name)
        .first()
    )
    if top_mechanic is not None:
        result.top_mechanic = top_mechanic.full_name
        result.top_mechanic_repairs = top_mechanic.repairs

    best_sale = (
        db.query(SalesTransaction.invoice_number, SalesTransaction.profit)
        .filter(SalesTransaction.transaction_date >= start, SalesTransaction.transaction_date < end)
        .order_by(SalesTransaction.profit.desc(), SalesTransaction.id)
        .first()
    )
    if best_sale is not None:
        result.highest_profit_invoice = best_sale.invoice_number
        result.highest_profit = Decimal(best_sale.profit)

    return result


def get_admin_dashboard_use_case(*, db: Session) -> AdminDashboardResponse:
    today = date.today()
    return AdminDashboardResponse(
        **_base_sections(db=db),
        monthly_stats=get_monthly_stats_use_case(db=db, month=today.month, year=today.year),
        top_performance=get_top_performance_use_case(db=db, month=today.month, year=today.year),
    )


def get_cashier_dashboard_use_case(*, db: Session) -> CashierDashboardResponse:
    pending = (
        db.query(SalesTransaction)
        .options(joinedload(SalesTransaction.customer), joinedload(SalesTransaction.vehicle))
        .filter(SalesTransaction.payment_status.in_(("pending", "partial")))
        .order_by(SalesTransaction.transaction_date.asc(), SalesTransaction.id.asc())
        .limit(RECENT_TRANSACTIONS_LIMIT)
        .all()
    )
    return CashierDashboardResponse(
        **_base_sections(db=db),
        today_transactions=_transaction_rows(db=db, on=date.today()),
        pending_payments=[_sales_row(tx) for tx in pending],
    )


def get_mechanic_dashboard_use_case(*, db: Session, mechanic: User) -> MechanicDashboardResponse:
    today = date.today()
    assigned = _open_repairs_query(db).filter(RepairOrder.mechanic_id == mechanic.id).all()

    window_start, window_end = day_bounds(today, next_day(today))
    completed_today = (
        db.query(func.count(RepairOrder.id))
        .filter(
            RepairOrder.mechanic_id == mechanic.id,
            RepairOrder.status == "completed",
            RepairOrder.completed_at >= window_start,
            RepairOrder.completed_at < window_end,
        )
        .scalar()
        or 0
    )

    parts = (
        db.query(
            SparePart.id,
            SparePart.code,
            SparePart.name,
            SparePart.stock_quantity,
            func.sum(RepairSparePart.quantity_used).label("quantity_used"),
        )
        .join(RepairSparePart, RepairSparePart.spare_part_id == SparePart.id)
        .join(RepairOrder, RepairOrder.id == RepairSparePart.repair_order_id)
        .filter(
            RepairOrder.mechanic_id == mechanic.id,
            RepairOrder.status.in_(("pending", "in_progress")),
        )
        .group_by(SparePart.id, SparePart.code, SparePart.name, SparePart.stock_quantity)
        .order_by(SparePart.name)
        .all()
    )

    return MechanicDashboardResponse(
        assigned_repairs=[_pending_repair_item(order) for order in assigned],
        completed_today=completed_today,
        required_parts=[
            RequiredPartItem(
                spare_part_id=row.id,
                code=row.code,
                name=row.name,
                quantity_used=int(row.quantity_used or 0),
                stock_quantity=row.stock_quantity,
            )
            for row in parts
        ],
    )


def create_daily_closing_use_case(*, db: Session, payload: DailyClosingCreate, current_user: User) -> DailyClosing:
    if payload.closing_date > date.today():
        raise InvalidStateError(
            code="CLOSING_DATE_IN_FUTURE",
            message="Cannot close a future date",
            details={"closing_date": payload.closing_date.isoformat()},
        )
    with atomic(db, operation="create daily closing"):
        if db.query(DailyClosing.id).filter(DailyClosing.closing_date == payload.closing_date).first():
            raise ConflictError(
                code="DAILY_CLOSING_EXISTS",
                message="Daily closing already exists for this date",
                details={"closing_date": payload.closing_date.isoformat()},
            )
        totals = period_totals(db=db, start=payload.closing_date, end_exclusive=next_day(payload.closing_date))
        closing = DailyClosing(
            closing_date=payload.closing_date,
            total_purchase=totals["total_purchase"],
            total_sales=totals["total_sales"],
            total_repair_cost=totals["total_repair_cost"],
            total_profit=totals["total_profit"],
            cash_in_hand=payload.cash_in_hand,
            notes=payload.notes,
            closed_by_id=current_user.id,
        )
        db.add(closing)

    logger.info("Daily closing for %s recorded by %s", payload.closing_date.isoformat(), current_user.username)
    return closing


def create_monthly_closing_use_case(
    *,
    db: Session,
    payload: MonthlyClosingCreate,
    current_user: User,
) -> MonthlyClosing:
    today = date.today()
    if (payload.year, payload.month) > (today.year, today.month):
        raise InvalidStateError(
            code="CLOSING_MONTH_IN_FUTURE",
            message="Cannot close a future month",
            details={"month": payload.month, "year": payload.year},
        )
    with atomic(db, operation="create monthly closing"):
        exists = (
            db.query(MonthlyClosing.id)
            .filter(MonthlyClosing.month == payload.month, MonthlyClosing.year == payload.year)
            .first()
        )
        if exists:
            raise ConflictError(
                code="MONTHLY_CLOSING_EXISTS",
                message="Monthly closing already exists for this period",
                details={"month": payload.month, "year": payload.year},
            )
        start, end = month_bounds(payload.month, payload.year)
        closing = MonthlyClosing(
            month=payload.month,
            year=payload.year,
            notes=payload.notes,
            closed_by_id=current_user.id,
            **period_totals(db=db, start=start, end_exclusive=end),
        )
        db.add(closing)

    logger.info("Monthly closing for %02d/%s recorded by %s", payload.month, payload.year, current_user.username)
    return closing
