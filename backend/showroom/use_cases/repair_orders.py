"""Repair order lifecycle use-cases used by repair router endpoints."""
from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session, joinedload, selectinload

from ..config import settings
from ..database import atomic
from ..domain_errors import ConflictError, InvalidStateError, NotFoundError
from ..models import RepairOrder, RepairSparePart, User
from ..repositories import SparePartRepository, UserRepository, VehicleRepository
from ..schemas import RepairOrderCreate, RepairOrderUpdate, RepairProgressUpdate, RepairSparePartRequest
from ..services.document_codes import next_repair_code, retry_on_number_collision
from ..services.pagination import normalize_page, page_offset
from ..services.repair_rules import (
    ZERO,
    apply_repair_timestamps,
    average_completion_hours,
    is_deletable,
    is_locked_for_parts,
    line_total,
    sum_money,
    validate_repair_transition,
    vehicle_status_for,
)

logger = logging.getLogger(__name__)

_REOPEN_STATUSES: set[str] = {"pending", "in_progress"}


def _repair_query(db: Session):
    return db.query(RepairOrder).options(
        joinedload(RepairOrder.vehicle),
        joinedload(RepairOrder.mechanic),
        joinedload(RepairOrder.assigned_by),
        selectinload(RepairOrder.spare_parts).joinedload(RepairSparePart.spare_part),
    )


def _get_repair_or_404(*, db: Session, repair_order_id: int, for_update: bool = False) -> RepairOrder:
    query = db.query(RepairOrder).filter(RepairOrder.id == repair_order_id)
    if for_update:
        query = query.with_for_update()
    order = query.first()
    if not order:
        raise NotFoundError(
            code="REPAIR_ORDER_NOT_FOUND",
            message="Repair order not found",
            details={"repair_order_id": repair_order_id},
        )
    return order


def _load_full(*, db: Session, repair_order_id: int) -> RepairOrder:
    order = _repair_query(db).filter(RepairOrder.id == repair_order_id).first()
    if not order:
        raise NotFoundError(
            code="REPAIR_ORDER_NOT_FOUND",
            message="Repair order not found",
            details={"repair_order_id": repair_order_id},
        )
    return order


def _attach_spare_part(*, db: Session, order: RepairOrder, spare_part_id: int, quantity_used: int) -> RepairSparePart:
    """Insert a line item and consume stock. Caller owns the transaction."""
    if is_locked_for_parts(order.status):
        raise InvalidStateError(
            code="REPAIR_ORDER_COMPLETED",
            message="Spare parts of a completed repair order cannot be changed",
            details={"repair_order_id": order.id},
        )

    parts = SparePartRepository(db)
    part = parts.require(spare_part_id, for_update=True)
    if not part.is_active:
        raise InvalidStateError(
            code="SPARE_PART_INACTIVE",
            message="Inactive spare parts cannot be used in repairs",
            details={"spare_part_id": part.id},
        )
    unit_price = Decimal(part.selling_price)

    # Guarded decrement raises InsufficientStockError before anything is inserted.
    parts.update_stock(spare_part_id, quantity_used, "subtract")

    line = RepairSparePart(
        repair_order_id=order.id,
        spare_part_id=spare_part_id,
        quantity_used=quantity_used,
        unit_price=unit_price,
        total_price=line_total(unit_price, quantity_used),
    )
    db.add(line)
    db.flush()
    logger.info(
        "Repair %s consumed %s x %s (stock left %s)",
        order.code,
        quantity_used,
        part.code,
        part.stock_quantity,
    )
    return line


def _restock_lines(*, db: Session, lines: list[RepairSparePart]) -> None:
    parts = SparePartRepository(db)
    for line in lines:
        parts.update_stock(line.spare_part_id, line.quantity_used, "add")
        db.delete(line)
    db.flush()


def _open_repair_order(*, db: Session, payload: RepairOrderCreate, current_user: User) -> int:
    vehicles = VehicleRepository(db)

    with atomic(db, operation="create repair order"):
        vehicle = vehicles.require(payload.vehicle_id, for_update=True)
        mechanic = UserRepository(db).get_by_id(payload.mechanic_id)
        if mechanic is None:
            raise NotFoundError(
                code="MECHANIC_NOT_FOUND",
                message="Mechanic not found",
                details={"mechanic_id": payload.mechanic_id},
            )
        if settings.ENFORCE_MECHANIC_ROLE and mechanic.role != "mechanic":
            raise ConflictError(
                code="REPAIR_ASSIGNEE_NOT_MECHANIC",
                message="Repair orders can only be assigned to mechanics",
                details={"mechanic_id": mechanic.id, "role": mechanic.role},
            )
        if vehicle.status == "sold":
            raise ConflictError(
                code="VEHICLE_ALREADY_SOLD",
                message="Cannot open a repair order for a sold vehicle",
                details={"vehicle_id": vehicle.id},
            )

        order = RepairOrder(
            code=next_repair_code(db=db, on=date.today()),
            vehicle_id=vehicle.id,
            mechanic_id=mechanic.id,
            assigned_by_id=current_user.id,
            description=payload.description,
            estimated_cost=payload.estimated_cost,
            actual_cost=ZERO,
            status="pending",
            notes=payload.notes,
        )
        db.add(order)
        vehicles.update_status(vehicle, "in_repair")
        db.flush()
        order_id = order.id

    logger.info("Repair order %s opened for vehicle %s", order.code, vehicle.code)
    return order_id


def create_repair_order_use_case(*, db: Session, payload: RepairOrderCreate, current_user: User) -> RepairOrder:
    """Open a repair order and put the vehicle into the workshop."""
    order_id = retry_on_number_collision(
        lambda: _open_repair_order(db=db, payload=payload, current_user=current_user),
        column=RepairOrder.code,
    )
    return _load_full(db=db, repair_order_id=order_id)


def get_repair_order_use_case(*, db: Session, repair_order_id: int) -> RepairOrder:
    return _load_full(db=db, repair_order_id=repair_order_id)


def get_repair_order_by_code_use_case(*, db: Session, code: str) -> RepairOrder:
    order = _repair_query(db).filter(RepairOrder.code == code).first()
    if not order:
        raise NotFoundError(
            code="REPAIR_ORDER_NOT_FOUND",
            message="Repair order not found",
            details={"code": code},
        )
    return order


def update_repair_order_use_case(*, db: Session, repair_order_id: int, payload: RepairOrderUpdate) -> RepairOrder:
    """Edit description, estimate or notes. Status only moves through progress updates."""
    with atomic(db, operation="update repair order"):
        order = _get_repair_or_404(db=db, repair_order_id=repair_order_id, for_update=True)
        if order.status == "completed":
            raise InvalidStateError(
                code="REPAIR_ORDER_COMPLETED",
                message="Completed repair orders cannot be edited",
                details={"repair_order_id": order.id},
            )
        for field, value in payload.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(order, field, value)

    return _load_full(db=db, repair_order_id=repair_order_id)


def update_repair_progress_use_case(
    *,
    db: Session,
    repair_order_id: int,
    payload: RepairProgressUpdate,
) -> RepairOrder:
    """Move a repair order through its workflow.

    Supplied spare parts are attached first so a completion in the same
    request prices them into the vehicle's repair cost.
    """
    vehicles = VehicleRepository(db)

    with atomic(db, operation="update repair progress"):
        order = _get_repair_or_404(db=db, repair_order_id=repair_order_id, for_update=True)
        old_status = order.status
        next_status = validate_repair_transition(current_status=old_status, next_status=payload.status)

        vehicle = vehicles.require(order.vehicle_id, for_update=True)
        if next_status in _REOPEN_STATUSES and vehicle.status == "sold":
            raise ConflictError(
                code="VEHICLE_ALREADY_SOLD",
                message="Cannot reopen a repair order for a sold vehicle",
                details={"vehicle_id": vehicle.id, "repair_order_id": order.id},
            )

        for item in payload.spare_parts:
            _attach_spare_part(
                db=db,
                order=order,
                spare_part_id=item.spare_part_id,
                quantity_used=item.quantity_used,
            )

        timestamps = apply_repair_timestamps(
            next_status=next_status,
            started_at=order.started_at,
            completed_at=order.completed_at,
        )
        order.started_at = timestamps["started_at"]
        order.completed_at = timestamps["completed_at"]
        order.status = next_status
        if payload.actual_cost is not None:
            order.actual_cost = payload.actual_cost
        if payload.notes is not None:
            order.notes = payload.notes

        if next_status == "completed":
            totals = [
                row.total_price
                for row in db.query(RepairSparePart.total_price)
                .filter(RepairSparePart.repair_order_id == order.id)
                .all()
            ]
            vehicles.update_repair_cost(vehicle, sum_money(totals))

        vehicle_status = vehicle_status_for(next_status)
        # A sale is final; closing a stale order must not put the vehicle back on the floor.
        if vehicle_status is not None and vehicle.status != "sold":
            vehicles.update_status(vehicle, vehicle_status)

    logger.info("Repair order %s status %s -> %s", order.code, old_status, next_status)
    return _load_full(db=db, repair_order_id=repair_order_id)


def delete_repair_order_use_case(*, db: Session, repair_order_id: int) -> None:
    """Delete a pending or cancelled order and return its parts to stock."""
    with atomic(db, operation="delete repair order"):
        order = _get_repair_or_404(db=db, repair_order_id=repair_order_id, for_update=True)
        if not is_deletable(order.status):
            raise InvalidStateError(
                code="REPAIR_ORDER_NOT_DELETABLE",
                message="Only pending or cancelled repair orders can be deleted",
                details={"repair_order_id": order.id, "status": order.status},
            )

        lines = db.query(RepairSparePart).filter(RepairSparePart.repair_order_id == order.id).all()
        _restock_lines(db=db, lines=lines)

        if order.status == "pending":
            vehicles = VehicleRepository(db)
            vehicle = vehicles.get_by_id(order.vehicle_id, for_update=True)
            if vehicle is not None and vehicle.status != "sold":
                vehicles.update_status(vehicle, "available")

        code = order.code
        db.delete(order)

    logger.info("Repair order %s deleted", code)


def add_repair_spare_part_use_case(
    *,
    db: Session,
    repair_order_id: int,
    payload: RepairSparePartRequest,
) -> RepairSparePart:
    with atomic(db, operation="attach spare part"):
        order = _get_repair_or_404(db=db, repair_order_id=repair_order_id, for_update=True)
        line = _attach_spare_part(
            db=db,
            order=order,
            spare_part_id=payload.spare_part_id,
            quantity_used=payload.quantity_used,
        )
        line_id = line.id

    return (
        db.query(RepairSparePart)
        .options(joinedload(RepairSparePart.spare_part))
        .filter(RepairSparePart.id == line_id)
        .one()
    )


def remove_repair_spare_part_use_case(*, db: Session, repair_order_id: int, spare_part_id: int) -> int:
    """Detach every line of a spare part from an order; returns the restocked quantity."""
    with atomic(db, operation="detach spare part"):
        order = _get_repair_or_404(db=db, repair_order_id=repair_order_id, for_update=True)
        lines = (
            db.query(RepairSparePart)
            .filter(
                RepairSparePart.repair_order_id == repair_order_id,
                RepairSparePart.spare_part_id == spare_part_id,
            )
            .all()
        )
        if not lines:
            raise NotFoundError(
                code="REPAIR_SPARE_PART_NOT_FOUND",
                message="Spare part is not attached to this repair order",
                details={"repair_order_id": repair_order_id, "spare_part_id": spare_part_id},
            )
        if is_locked_for_parts(order.status):
            raise InvalidStateError(
                code="REPAIR_ORDER_COMPLETED",
                message="Spare parts of a completed repair order cannot be changed",
                details={"repair_order_id": order.id},
            )
        restored = sum(line.quantity_used for line in lines)
        _restock_lines(db=db, lines=lines)

    logger.info("Repair order %s returned %s of spare part %s to stock", order.code, restored, spare_part_id)
    return restored


def list_repair_spare_parts_use_case(*, db: Session, repair_order_id: int) -> list[RepairSparePart]:
    _get_repair_or_404(db=db, repair_order_id=repair_order_id)
    return (
        db.query(RepairSparePart)
        .options(joinedload(RepairSparePart.spare_part))
        .filter(RepairSparePart.repair_order_id == repair_order_id)
        .order_by(RepairSparePart.id)
        .all()
    )


def _date_bounds(date_from: date | None, date_to: date | None) -> tuple[datetime | None, datetime | None]:
    start = datetime.combine(date_from, time.min) if date_from else None
    end = datetime.combine(date_to + timedelta(days=1), time.min) if date_to else None
    return start, end


def _apply_repair_filters(
    query,
    *,
    status: str | None = None,
    mechanic_id: int | None = None,
    vehicle_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
):
    if status:
        query = query.filter(RepairOrder.status == status)
    if mechanic_id:
        query = query.filter(RepairOrder.mechanic_id == mechanic_id)
    if vehicle_id:
        query = query.filter(RepairOrder.vehicle_id == vehicle_id)
    start, end = _date_bounds(date_from, date_to)
    if start is not None:
        query = query.filter(RepairOrder.created_at >= start)
    if end is not None:
        query = query.filter(RepairOrder.created_at < end)
    return query


def list_repair_orders_use_case(
    *,
    db: Session,
    status: str | None = None,
    mechanic_id: int | None = None,
    vehicle_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    page: int | None = 1,
    page_size: int | None = None,
) -> tuple[list[RepairOrder], int, int, int]:
    """Return (items, total, page, page_size) newest first."""
    page, page_size = normalize_page(page, page_size)
    filters = dict(
        status=status,
        mechanic_id=mechanic_id,
        vehicle_id=vehicle_id,
        date_from=date_from,
        date_to=date_to,
    )
    total = _apply_repair_filters(db.query(RepairOrder), **filters).count()
    items = (
        _apply_repair_filters(_repair_query(db), **filters)
        .order_by(RepairOrder.created_at.desc(), RepairOrder.id.desc())
        .offset(page_offset(page, page_size))
        .limit(page_size)
        .all()
    )
    return items, total, page, page_size


def get_repair_stats_use_case(
    *,
    db: Session,
    mechanic_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> dict[str, Any]:
    rows = (
        _apply_repair_filters(
            db.query(
                RepairOrder.status,
                RepairOrder.estimated_cost,
                RepairOrder.actual_cost,
                RepairOrder.started_at,
                RepairOrder.completed_at,
            ),
            mechanic_id=mechanic_id,
            date_from=date_from,
            date_to=date_to,
        ).all()
    )

    counts = {status: 0 for status in ("pending", "in_progress", "completed", "cancelled")}
    for row in rows:
        counts[row.status] = counts.get(row.status, 0) + 1

    return {
        "total_repairs": len(rows),
        "pending_repairs": counts["pending"],
        "in_progress_repairs": counts["in_progress"],
        "completed_repairs": counts["completed"],
        "cancelled_repairs": counts["cancelled"],
        "total_estimated_cost": sum_money(row.estimated_cost for row in rows),
        "total_actual_cost": sum_money(row.actual_cost for row in rows),
        "average_completion_hours": average_completion_hours(
            (row.started_at, row.completed_at) for row in rows
        ),
    }


def get_mechanic_workload_use_case(*, db: Session) -> list[dict[str, Any]]:
    mechanics = UserRepository(db).list_active_mechanics()
    open_orders = (
        db.query(RepairOrder.mechanic_id, RepairOrder.status)
        .filter(RepairOrder.status.in_(("pending", "in_progress")))
        .all()
    )

    workload = []
    for mechanic in mechanics:
        statuses = [row.status for row in open_orders if row.mechanic_id == mechanic.id]
        pending = statuses.count("pending")
        in_progress = statuses.count("in_progress")
        workload.append(
            {
                "mechanic_id": mechanic.id,
                "mechanic_name": mechanic.full_name,
                "pending_repairs": pending,
                "in_progress_repairs": in_progress,
                "total_active": pending + in_progress,
            }
        )
    return workload
