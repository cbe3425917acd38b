"""Vehicle and brand endpoints."""
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth import PermissionChecker, get_current_user
from ..database import get_db
from ..models import User
from ..schemas import (
    VehicleBrandCreate,
    VehicleBrandResponse,
    VehicleCreate,
    VehicleListResponse,
    VehicleResponse,
    VehicleSellingPriceUpdate,
    VehicleSort,
    VehicleUpdate,
)
from ..services.pagination import total_pages
from ..use_cases.vehicles import (
    create_brand_use_case,
    create_vehicle_use_case,
    delete_vehicle_use_case,
    get_vehicle_use_case,
    list_brands_use_case,
    list_vehicles_use_case,
    set_selling_price_use_case,
    update_vehicle_use_case,
)

router = APIRouter(prefix="/vehicles", tags=["vehicles"])


@router.get("/brands", response_model=list[VehicleBrandResponse])
def get_brands(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return list_brands_use_case(db=db)


@router.post(
    "/brands",
    response_model=VehicleBrandResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(PermissionChecker("canManageVehicles"))],
)
def create_brand(
    data: VehicleBrandCreate,
    db: Session = Depends(get_db),
):
    return create_brand_use_case(db=db, payload=data)


@router.get("", response_model=VehicleListResponse)
def get_vehicles(
    status: Optional[str] = None,
    brand_id: Optional[int] = None,
    brand: Optional[str] = None,
    search: Optional[str] = None,
    year_from: Optional[int] = None,
    year_to: Optional[int] = None,
    price_min: Optional[Decimal] = Query(None, ge=0),
    price_max: Optional[Decimal] = Query(None, ge=0),
    sort_by: VehicleSort = "newest",
    page: int = Query(1),
    page_size: Optional[int] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Search vehicles; newest intake first unless another sort is asked for."""
    items, total, page, page_size = list_vehicles_use_case(
        db=db,
        status=status,
        brand_id=brand_id,
        brand=brand,
        search=search,
        year_from=year_from,
        year_to=year_to,
        price_min=price_min,
        price_max=price_max,
        sort_by=sort_by,
        page=page,
        page_size=page_size,
    )
    return VehicleListResponse(
        items=[VehicleResponse.model_validate(item) for item in items],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages(total, page_size),
    )


@router.post(
    "",
    response_model=VehicleResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_vehicle(
    data: VehicleCreate,
    current_user: User = Depends(PermissionChecker("canManageVehicles")),
    db: Session = Depends(get_db),
):
    """Take a vehicle into stock."""
    return create_vehicle_use_case(db=db, payload=data, current_user=current_user)


@router.get("/{vehicle_id}", response_model=VehicleResponse)
def get_vehicle(
    vehicle_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_vehicle_use_case(db=db, vehicle_id=vehicle_id)


@router.put(
    "/{vehicle_id}",
    response_model=VehicleResponse,
    dependencies=[Depends(PermissionChecker("canManageVehicles"))],
)
def update_vehicle(
    vehicle_id: int,
    data: VehicleUpdate,
    db: Session = Depends(get_db),
):
    return update_vehicle_use_case(db=db, vehicle_id=vehicle_id, payload=data)


@router.put(
    "/{vehicle_id}/selling-price",
    response_model=VehicleResponse,
    dependencies=[Depends(PermissionChecker("canManageVehicles"))],
)
def set_selling_price(
    vehicle_id: int,
    data: VehicleSellingPriceUpdate,
    db: Session = Depends(get_db),
):
    """Set the asking price; must not undercut HPP."""
    return set_selling_price_use_case(db=db, vehicle_id=vehicle_id, selling_price=data.selling_price)


@router.delete(
    "/{vehicle_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(PermissionChecker("canManageVehicles"))],
)
def delete_vehicle(
    vehicle_id: int,
    db: Session = Depends(get_db),
):
    delete_vehicle_use_case(db=db, vehicle_id=vehicle_id)
