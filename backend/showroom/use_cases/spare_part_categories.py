"""Spare-part category catalogue.

Spare parts keep their category as a plain name, so renaming a category
rewrites the name on its parts in the same transaction.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy import and_, case, func
from sqlalchemy.orm import Session

from ..database import atomic
from ..domain_errors import ConflictError, InvalidStateError, NotFoundError
from ..models import SparePart, SparePartCategory
from ..schemas import SparePartCategoryCreate, SparePartCategoryUpdate
from ..services.inventory_rules import low_stock_clause
from ..services.pagination import normalize_page, page_offset

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")


def get_category_or_404(*, db: Session, category_id: int) -> SparePartCategory:
    category = db.query(SparePartCategory).filter(SparePartCategory.id == category_id).first()
    if not category:
        raise NotFoundError(
            code="SPARE_PART_CATEGORY_NOT_FOUND",
            message="Spare part category not found",
            details={"category_id": category_id},
        )
    return category


def _ensure_unique_name(*, db: Session, name: str, exclude_id: int | None = None) -> None:
    query = db.query(SparePartCategory.id).filter(func.lower(SparePartCategory.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(SparePartCategory.id != exclude_id)
    if query.first():
        raise ConflictError(
            code="SPARE_PART_CATEGORY_EXISTS",
            message=f"Category {name} already exists",
            details={"name": name},
        )


def count_parts_by_category(*, db: Session, names: list[str]) -> dict[str, int]:
    if not names:
        return {}
    rows = (
        db.query(SparePart.category, func.count(SparePart.id))
        .filter(SparePart.category.in_(names))
        .group_by(SparePart.category)
        .all()
    )
    return {name: count for name, count in rows}


def create_category_use_case(*, db: Session, payload: SparePartCategoryCreate) -> SparePartCategory:
    name = payload.name.strip()
    with atomic(db, operation="create spare part category"):
        _ensure_unique_name(db=db, name=name)
        category = SparePartCategory(name=name, description=payload.description, is_active=True)
        db.add(category)
    logger.info("Spare part category %s created", category.name)
    return category


def update_category_use_case(
    *,
    db: Session,
    category_id: int,
    payload: SparePartCategoryUpdate,
) -> SparePartCategory:
    changes = {key: value for key, value in payload.model_dump(exclude_unset=True).items() if value is not None}
    with atomic(db, operation="update spare part category"):
        category = get_category_or_404(db=db, category_id=category_id)
        new_name = changes.pop("name", category.name).strip()
        if new_name != category.name:
            _ensure_unique_name(db=db, name=new_name, exclude_id=category.id)
            renamed = (
                db.query(SparePart)
                .filter(SparePart.category == category.name)
                .update({SparePart.category: new_name}, synchronize_session=False)
            )
            logger.info("Category %s renamed to %s on %s spare parts", category.name, new_name, renamed)
            category.name = new_name
        for field, value in changes.items():
            setattr(category, field, value)
    return category


def delete_category_use_case(*, db: Session, category_id: int) -> SparePartCategory:
    """Retire a category no spare part uses; the row stays as inactive."""
    with atomic(db, operation="delete spare part category"):
        category = get_category_or_404(db=db, category_id=category_id)
        in_use = count_parts_by_category(db=db, names=[category.name]).get(category.name, 0)
        if in_use:
            raise InvalidStateError(
                code="SPARE_PART_CATEGORY_IN_USE",
                message="Category is still used by spare parts",
                details={"category_id": category.id, "spare_part_count": in_use},
            )
        category.is_active = False
    logger.info("Spare part category %s deactivated", category.name)
    return category


def list_categories_use_case(
    *,
    db: Session,
    search: str | None = None,
    is_active: bool | None = None,
    page: int | None = 1,
    page_size: int | None = None,
) -> tuple[list[tuple[SparePartCategory, int]], int, int, int]:
    """Categories with the number of spare parts filed under each."""
    page, page_size = normalize_page(page, page_size)
    query = db.query(SparePartCategory)
    if search:
        query = query.filter(SparePartCategory.name.ilike(f"%{search.strip()}%"))
    if is_active is not None:
        query = query.filter(SparePartCategory.is_active.is_(is_active))
    total = query.count()
    categories = (
        query.order_by(SparePartCategory.name, SparePartCategory.id)
        .offset(page_offset(page, page_size))
        .limit(page_size)
        .all()
    )
    counts = count_parts_by_category(db=db, names=[category.name for category in categories])
    return [(category, counts.get(category.name, 0)) for category in categories], total, page, page_size


def get_category_stats_use_case(*, db: Session, include_inactive: bool = False) -> list[dict[str, Any]]:
    """Stock figures per category over active spare parts."""
    query = (
        db.query(
            SparePartCategory.id,
            SparePartCategory.name,
            func.count(SparePart.id),
            func.coalesce(func.sum(SparePart.stock_quantity), 0),
            func.coalesce(func.sum(case((low_stock_clause(), 1), else_=0)), 0),
            func.coalesce(func.sum(SparePart.stock_quantity * SparePart.purchase_price), 0),
            func.avg(SparePart.selling_price),
        )
        .outerjoin(
            SparePart,
            and_(SparePart.category == SparePartCategory.name, SparePart.is_active.is_(True)),
        )
        .group_by(SparePartCategory.id, SparePartCategory.name)
        .order_by(SparePartCategory.name)
    )
    if not include_inactive:
        query = query.filter(SparePartCategory.is_active.is_(True))

    return [
        {
            "category_id": category_id,
            "category_name": name,
            "part_count": int(part_count),
            "total_stock": int(total_stock),
            "low_stock_count": int(low_stock),
            "total_value": Decimal(str(total_value)).quantize(_CENT),
            "average_price": Decimal(str(average_price or 0)).quantize(_CENT),
        }
        for category_id, name, part_count, total_stock, low_stock, total_value, average_price in query.all()
    ]
