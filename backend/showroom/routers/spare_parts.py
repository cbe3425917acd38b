"""Spare part catalogue and stock endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth import PermissionChecker
from ..database import get_db
from ..schemas import (
    BulkStockUpdateRequest,
    SparePartCreate,
    SparePartListResponse,
    SparePartResponse,
    SparePartUpdate,
    StockAvailabilityResponse,
    StockUpdateRequest,
)
from ..services.pagination import total_pages
from ..services.response_builder import spare_part_to_response
from ..use_cases.spare_parts import (
    bulk_update_stock_use_case,
    check_stock_availability_use_case,
    create_spare_part_use_case,
    delete_spare_part_use_case,
    get_spare_part_by_code_use_case,
    get_spare_part_use_case,
    list_categories_use_case,
    list_low_stock_use_case,
    list_spare_parts_use_case,
    update_spare_part_use_case,
    update_stock_use_case,
)

router = APIRouter(prefix="/spare-parts", tags=["spare-parts"])

_view = [Depends(PermissionChecker("canViewInventory"))]
_manage = [Depends(PermissionChecker("canManageInventory"))]


@router.get("", response_model=SparePartListResponse, dependencies=_view)
def get_spare_parts(
    search: Optional[str] = None,
    category: Optional[str] = None,
    is_active: Optional[bool] = None,
    stock_status: Optional[str] = Query(None, description="in_stock | low_stock | out_of_stock"),
    page: int = Query(1),
    page_size: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    items, total, page, page_size = list_spare_parts_use_case(
        db=db,
        search=search,
        category=category,
        is_active=is_active,
        stock_status=stock_status,
        page=page,
        page_size=page_size,
    )
    return SparePartListResponse(
        items=[spare_part_to_response(item) for item in items],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages(total, page_size),
    )


@router.post(
    "",
    response_model=SparePartResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=_manage,
)
def create_spare_part(data: SparePartCreate, db: Session = Depends(get_db)):
    return spare_part_to_response(create_spare_part_use_case(db=db, payload=data))


@router.get("/categories", response_model=list[str], dependencies=_view)
def get_categories(db: Session = Depends(get_db)):
    return list_categories_use_case(db=db)


@router.get("/low-stock", response_model=list[SparePartResponse], dependencies=_view)
def get_low_stock(
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
):
    """Active parts at or below their minimum stock level."""
    return [spare_part_to_response(item) for item in list_low_stock_use_case(db=db, limit=limit)]


@router.post("/bulk-stock", response_model=list[SparePartResponse], dependencies=_manage)
def bulk_update_stock(data: BulkStockUpdateRequest, db: Session = Depends(get_db)):
    """Apply several stock adjustments in one transaction."""
    return [spare_part_to_response(item) for item in bulk_update_stock_use_case(db=db, payload=data)]


@router.get("/code/{code}", response_model=SparePartResponse, dependencies=_view)
def get_spare_part_by_code(code: str, db: Session = Depends(get_db)):
    return spare_part_to_response(get_spare_part_by_code_use_case(db=db, code=code))


@router.get("/{spare_part_id}", response_model=SparePartResponse, dependencies=_view)
def get_spare_part(spare_part_id: int, db: Session = Depends(get_db)):
    return spare_part_to_response(get_spare_part_use_case(db=db, spare_part_id=spare_part_id))


@router.put("/{spare_part_id}", response_model=SparePartResponse, dependencies=_manage)
def update_spare_part(spare_part_id: int, data: SparePartUpdate, db: Session = Depends(get_db)):
    return spare_part_to_response(
        update_spare_part_use_case(db=db, spare_part_id=spare_part_id, payload=data)
    )


@router.delete("/{spare_part_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=_manage)
def delete_spare_part(spare_part_id: int, db: Session = Depends(get_db)):
    delete_spare_part_use_case(db=db, spare_part_id=spare_part_id)


@router.post("/{spare_part_id}/stock", response_model=SparePartResponse, dependencies=_manage)
def update_stock(spare_part_id: int, data: StockUpdateRequest, db: Session = Depends(get_db)):
    return spare_part_to_response(
        update_stock_use_case(db=db, spare_part_id=spare_part_id, payload=data)
    )


@router.get(
    "/{spare_part_id}/availability",
    response_model=StockAvailabilityResponse,
    dependencies=_view,
)
def check_availability(
    spare_part_id: int,
    quantity: int = Query(..., ge=1),
    db: Session = Depends(get_db),
):
    available = check_stock_availability_use_case(db=db, spare_part_id=spare_part_id, quantity=quantity)
    return StockAvailabilityResponse(spare_part_id=spare_part_id, quantity=quantity, available=available)
