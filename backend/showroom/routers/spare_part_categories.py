"""Spare part category endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth import PermissionChecker
from ..database import get_db
from ..schemas import (
    SparePartCategoryCreate,
    SparePartCategoryListResponse,
    SparePartCategoryResponse,
    SparePartCategoryStats,
    SparePartCategoryUpdate,
)
from ..services.pagination import total_pages
from ..services.response_builder import category_to_response
from ..use_cases.spare_part_categories import (
    count_parts_by_category,
    create_category_use_case,
    delete_category_use_case,
    get_category_or_404,
    get_category_stats_use_case,
    list_categories_use_case,
    update_category_use_case,
)

router = APIRouter(prefix="/spare-part-categories", tags=["spare-parts"])

_view = [Depends(PermissionChecker("canViewInventory"))]
_manage = [Depends(PermissionChecker("canManageInventory"))]


def _with_count(db: Session, category) -> SparePartCategoryResponse:
    counts = count_parts_by_category(db=db, names=[category.name])
    return category_to_response(category, counts.get(category.name, 0))


@router.get("", response_model=SparePartCategoryListResponse, dependencies=_view)
def get_categories(
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    page: int = Query(1),
    page_size: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    items, total, page, page_size = list_categories_use_case(
        db=db, search=search, is_active=is_active, page=page, page_size=page_size
    )
    return SparePartCategoryListResponse(
        items=[category_to_response(category, count) for category, count in items],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages(total, page_size),
    )


@router.get("/stats", response_model=list[SparePartCategoryStats], dependencies=_view)
def get_category_stats(include_inactive: bool = False, db: Session = Depends(get_db)):
    """Part count, stock, low-stock count, stock value and average price per category."""
    return get_category_stats_use_case(db=db, include_inactive=include_inactive)


@router.post(
    "",
    response_model=SparePartCategoryResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=_manage,
)
def create_category(data: SparePartCategoryCreate, db: Session = Depends(get_db)):
    return category_to_response(create_category_use_case(db=db, payload=data))


@router.get("/{category_id}", response_model=SparePartCategoryResponse, dependencies=_view)
def get_category(category_id: int, db: Session = Depends(get_db)):
    return _with_count(db, get_category_or_404(db=db, category_id=category_id))


@router.put("/{category_id}", response_model=SparePartCategoryResponse, dependencies=_manage)
def update_category(category_id: int, data: SparePartCategoryUpdate, db: Session = Depends(get_db)):
    return _with_count(db, update_category_use_case(db=db, category_id=category_id, payload=data))


@router.delete(
    "/{category_id}",
    response_model=SparePartCategoryResponse,
    dependencies=[Depends(PermissionChecker("canDeleteRecords"))],
)
def delete_category(category_id: int, db: Session = Depends(get_db)):
    """Deactivate an unused category."""
    return category_to_response(delete_category_use_case(db=db, category_id=category_id))
