"""Repair order endpoints."""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth import PermissionChecker
from ..database import get_db
from ..models import User
from ..schemas import (
    MechanicWorkloadItem,
    RepairOrderCreate,
    RepairOrderListResponse,
    RepairOrderResponse,
    RepairOrderUpdate,
    RepairProgressUpdate,
    RepairSparePartRequest,
    RepairSparePartResponse,
    RepairStatsResponse,
    RepairStatus,
)
from ..services.pagination import total_pages
from ..services.response_builder import repair_line_to_response, repair_order_to_response
from ..use_cases.repair_orders import (
    add_repair_spare_part_use_case,
    create_repair_order_use_case,
    delete_repair_order_use_case,
    get_mechanic_workload_use_case,
    get_repair_order_by_code_use_case,
    get_repair_order_use_case,
    get_repair_stats_use_case,
    list_repair_orders_use_case,
    list_repair_spare_parts_use_case,
    remove_repair_spare_part_use_case,
    update_repair_order_use_case,
    update_repair_progress_use_case,
)

router = APIRouter(prefix="/repairs", tags=["repairs"])

_view = [Depends(PermissionChecker("canViewRepairs"))]
_work = [Depends(PermissionChecker("canWorkRepairs"))]


@router.get("", response_model=RepairOrderListResponse, dependencies=_view)
def get_repair_orders(
    status: Optional[RepairStatus] = None,
    mechanic_id: Optional[int] = None,
    vehicle_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    page: int = Query(1),
    page_size: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    """List repair orders, newest first."""
    items, total, page, page_size = list_repair_orders_use_case(
        db=db,
        status=status,
        mechanic_id=mechanic_id,
        vehicle_id=vehicle_id,
        date_from=date_from,
        date_to=date_to,
        page=page,
        page_size=page_size,
    )
    return RepairOrderListResponse(
        items=[repair_order_to_response(item) for item in items],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages(total, page_size),
    )


@router.post("", response_model=RepairOrderResponse, status_code=status.HTTP_201_CREATED)
def create_repair_order(
    data: RepairOrderCreate,
    current_user: User = Depends(PermissionChecker("canAssignRepairs")),
    db: Session = Depends(get_db),
):
    """Open a repair order and send the vehicle to the workshop."""
    order = create_repair_order_use_case(db=db, payload=data, current_user=current_user)
    return repair_order_to_response(order)


@router.get("/stats", response_model=RepairStatsResponse, dependencies=_view)
def get_repair_stats(
    mechanic_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
):
    return get_repair_stats_use_case(db=db, mechanic_id=mechanic_id, date_from=date_from, date_to=date_to)


@router.get("/workload", response_model=list[MechanicWorkloadItem], dependencies=_view)
def get_mechanic_workload(db: Session = Depends(get_db)):
    return get_mechanic_workload_use_case(db=db)


@router.get("/code/{code}", response_model=RepairOrderResponse, dependencies=_view)
def get_repair_order_by_code(code: str, db: Session = Depends(get_db)):
    return repair_order_to_response(get_repair_order_by_code_use_case(db=db, code=code))


@router.get("/{repair_order_id}", response_model=RepairOrderResponse, dependencies=_view)
def get_repair_order(repair_order_id: int, db: Session = Depends(get_db)):
    return repair_order_to_response(get_repair_order_use_case(db=db, repair_order_id=repair_order_id))


@router.put(
    "/{repair_order_id}",
    response_model=RepairOrderResponse,
    dependencies=[Depends(PermissionChecker("canAssignRepairs"))],
)
def update_repair_order(
    repair_order_id: int,
    data: RepairOrderUpdate,
    db: Session = Depends(get_db),
):
    """Edit description, estimate or notes."""
    order = update_repair_order_use_case(db=db, repair_order_id=repair_order_id, payload=data)
    return repair_order_to_response(order)


@router.put("/{repair_order_id}/progress", response_model=RepairOrderResponse, dependencies=_work)
def update_repair_progress(
    repair_order_id: int,
    data: RepairProgressUpdate,
    db: Session = Depends(get_db),
):
    order = update_repair_progress_use_case(db=db, repair_order_id=repair_order_id, payload=data)
    return repair_order_to_response(order)


@router.delete(
    "/{repair_order_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(PermissionChecker("canDeleteRepairs"))],
)
def delete_repair_order(repair_order_id: int, db: Session = Depends(get_db)):
    delete_repair_order_use_case(db=db, repair_order_id=repair_order_id)


@router.get(
    "/{repair_order_id}/spare-parts",
    response_model=list[RepairSparePartResponse],
    dependencies=_view,
)
def get_repair_spare_parts(repair_order_id: int, db: Session = Depends(get_db)):
    lines = list_repair_spare_parts_use_case(db=db, repair_order_id=repair_order_id)
    return [repair_line_to_response(line) for line in lines]


@router.post(
    "/{repair_order_id}/spare-parts",
    response_model=RepairSparePartResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=_work,
)
def add_repair_spare_part(
    repair_order_id: int,
    data: RepairSparePartRequest,
    db: Session = Depends(get_db),
):
    """Consume stock for a repair order."""
    line = add_repair_spare_part_use_case(db=db, repair_order_id=repair_order_id, payload=data)
    return repair_line_to_response(line)


@router.delete("/{repair_order_id}/spare-parts/{spare_part_id}", dependencies=_work)
def remove_repair_spare_part(
    repair_order_id: int,
    spare_part_id: int,
    db: Session = Depends(get_db),
):
    """Return a spare part's quantity on this order to stock."""
    restored = remove_repair_spare_part_use_case(
        db=db,
        repair_order_id=repair_order_id,
        spare_part_id=spare_part_id,
    )
    return {"repair_order_id": repair_order_id, "spare_part_id": spare_part_id, "restored_quantity": restored}
