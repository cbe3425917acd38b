"""Spare-part catalogue and stock use-cases."""
from __future__ import annotations

import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..database import atomic
from ..domain_errors import ConflictError, InvalidStateError, NotFoundError
from ..models import RepairSparePart, SparePart
from ..repositories import SparePartRepository
from ..schemas import BulkStockUpdateRequest, SparePartCreate, SparePartUpdate, StockUpdateRequest
from ..services.inventory_rules import (
    ensure_selling_not_below_purchase,
    low_stock_clause,
    stock_status_clause,
)
from ..services.pagination import normalize_page, page_offset

logger = logging.getLogger(__name__)


def create_spare_part_use_case(*, db: Session, payload: SparePartCreate) -> SparePart:
    ensure_selling_not_below_purchase(
        purchase_price=payload.purchase_price,
        selling_price=payload.selling_price,
    )
    with atomic(db, operation="create spare part"):
        if db.query(SparePart.id).filter(SparePart.code == payload.code).first():
            raise ConflictError(
                code="SPARE_PART_CODE_EXISTS",
                message=f"Spare part code {payload.code} already exists",
                details={"code": payload.code},
            )
        part = SparePart(**payload.model_dump(), is_active=True)
        db.add(part)

    logger.info("Spare part %s created with stock %s", part.code, part.stock_quantity)
    return part


def get_spare_part_use_case(*, db: Session, spare_part_id: int) -> SparePart:
    return SparePartRepository(db).require(spare_part_id)


def get_spare_part_by_code_use_case(*, db: Session, code: str) -> SparePart:
    part = db.query(SparePart).filter(SparePart.code == code).first()
    if not part:
        raise NotFoundError(
            code="SPARE_PART_NOT_FOUND",
            message="Spare part not found",
            details={"code": code},
        )
    return part


def update_spare_part_use_case(*, db: Session, spare_part_id: int, payload: SparePartUpdate) -> SparePart:
    changes = {key: value for key, value in payload.model_dump(exclude_unset=True).items() if value is not None}
    with atomic(db, operation="update spare part"):
        part = SparePartRepository(db).require(spare_part_id, for_update=True)
        ensure_selling_not_below_purchase(
            purchase_price=changes.get("purchase_price", part.purchase_price),
            selling_price=changes.get("selling_price", part.selling_price),
        )
        for field, value in changes.items():
            setattr(part, field, value)
    return part


def delete_spare_part_use_case(*, db: Session, spare_part_id: int) -> None:
    with atomic(db, operation="delete spare part"):
        part = SparePartRepository(db).require(spare_part_id, for_update=True)
        if db.query(RepairSparePart.id).filter(RepairSparePart.spare_part_id == part.id).first():
            raise InvalidStateError(
                code="SPARE_PART_IN_USE",
                message="Spare part is referenced by repair orders; deactivate it instead",
                details={"spare_part_id": part.id},
            )
        db.delete(part)


def list_spare_parts_use_case(
    *,
    db: Session,
    search: str | None = None,
    category: str | None = None,
    is_active: bool | None = None,
    stock_status: str | None = None,
    page: int | None = 1,
    page_size: int | None = None,
) -> tuple[list[SparePart], int, int, int]:
    page, page_size = normalize_page(page, page_size)
    query = db.query(SparePart)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(SparePart.code.ilike(pattern), SparePart.name.ilike(pattern)))
    if category:
        query = query.filter(SparePart.category == category)
    if is_active is not None:
        query = query.filter(SparePart.is_active.is_(is_active))
    if stock_status:
        clause = stock_status_clause(stock_status)
        if clause is not None:
            query = query.filter(clause)

    total = query.count()
    items = query.order_by(SparePart.name, SparePart.id).offset(page_offset(page, page_size)).limit(page_size).all()
    return items, total, page, page_size


def list_categories_use_case(*, db: Session) -> list[str]:
    rows = (
        db.query(SparePart.category)
        .filter(SparePart.category.isnot(None))
        .distinct()
        .order_by(SparePart.category)
        .all()
    )
    return [row.category for row in rows]


def list_low_stock_use_case(*, db: Session, limit: int | None = None) -> list[SparePart]:
    query = db.query(SparePart).filter(low_stock_clause()).order_by(SparePart.stock_quantity, SparePart.name)
    if limit:
        query = query.limit(limit)
    return query.all()


def check_stock_availability_use_case(*, db: Session, spare_part_id: int, quantity: int) -> bool:
    return SparePartRepository(db).check_stock_availability(spare_part_id, quantity)


def update_stock_use_case(*, db: Session, spare_part_id: int, payload: StockUpdateRequest) -> SparePart:
    with atomic(db, operation="update stock"):
        part = SparePartRepository(db).update_stock(spare_part_id, payload.quantity, payload.operation)
    logger.info("Stock of %s %s %s", part.code, payload.operation, payload.quantity)
    return part


def bulk_update_stock_use_case(*, db: Session, payload: BulkStockUpdateRequest) -> list[SparePart]:
    """Apply every adjustment or none of them."""
    repo = SparePartRepository(db)
    with atomic(db, operation="bulk stock update"):
        touched = [repo.update_stock(item.spare_part_id, item.quantity, item.operation).id for item in payload.items]
    return [repo.require(part_id) for part_id in dict.fromkeys(touched)]
