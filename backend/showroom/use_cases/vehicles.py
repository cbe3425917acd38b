"""Vehicle intake and catalogue use-cases."""
from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from ..database import atomic
from ..domain_errors import ConflictError, InvalidAmountError, InvalidStateError, NotFoundError
from ..models import PurchaseTransaction, RepairOrder, User, Vehicle, VehicleBrand
from ..repositories import VehicleRepository
from ..schemas import VehicleBrandCreate, VehicleCreate, VehicleUpdate
from ..services.pagination import normalize_page, page_offset
from ..services.repair_rules import ZERO

logger = logging.getLogger(__name__)


def create_brand_use_case(*, db: Session, payload: VehicleBrandCreate) -> VehicleBrand:
    name = payload.name.strip()
    with atomic(db, operation="create vehicle brand"):
        if db.query(VehicleBrand.id).filter(VehicleBrand.name == name).first():
            raise ConflictError(
                code="VEHICLE_BRAND_EXISTS",
                message=f"Brand {name} already exists",
                details={"name": name},
            )
        brand = VehicleBrand(name=name)
        db.add(brand)
    return brand


def list_brands_use_case(*, db: Session) -> list[VehicleBrand]:
    return db.query(VehicleBrand).order_by(VehicleBrand.name).all()


def create_vehicle_use_case(*, db: Session, payload: VehicleCreate, current_user: User) -> Vehicle:
    """Take a vehicle into stock: available, no repair cost, HPP equal to purchase price."""
    with atomic(db, operation="create vehicle"):
        if db.query(Vehicle.id).filter(Vehicle.code == payload.code).first():
            raise ConflictError(
                code="VEHICLE_CODE_EXISTS",
                message=f"Vehicle code {payload.code} already exists",
                details={"code": payload.code},
            )
        if not db.query(VehicleBrand.id).filter(VehicleBrand.id == payload.brand_id).first():
            raise NotFoundError(
                code="VEHICLE_BRAND_NOT_FOUND",
                message="Vehicle brand not found",
                details={"brand_id": payload.brand_id},
            )

        vehicle = Vehicle(
            **payload.model_dump(),
            status="available",
            repair_cost=ZERO,
            hpp_price=payload.purchase_price,
            created_by_id=current_user.id,
        )
        db.add(vehicle)
        db.flush()
        vehicle_id = vehicle.id

    logger.info("Vehicle %s taken into stock at %s", payload.code, payload.purchase_price)
    return get_vehicle_use_case(db=db, vehicle_id=vehicle_id)


def get_vehicle_use_case(*, db: Session, vehicle_id: int) -> Vehicle:
    vehicle = (
        db.query(Vehicle)
        .options(joinedload(Vehicle.brand))
        .filter(Vehicle.id == vehicle_id)
        .first()
    )
    if not vehicle:
        raise NotFoundError(
            code="VEHICLE_NOT_FOUND",
            message="Vehicle not found",
            details={"vehicle_id": vehicle_id},
        )
    return vehicle


_asking_price = func.coalesce(Vehicle.selling_price, Vehicle.hpp_price)

VEHICLE_SORTS = {
    "newest": (Vehicle.created_at.desc(), Vehicle.id.desc()),
    "oldest": (Vehicle.created_at.asc(), Vehicle.id.asc()),
    "price_asc": (_asking_price.asc(), Vehicle.id.asc()),
    "price_desc": (_asking_price.desc(), Vehicle.id.desc()),
    "year_asc": (Vehicle.year.asc(), Vehicle.id.asc()),
    "year_desc": (Vehicle.year.desc(), Vehicle.id.desc()),
}


def list_vehicles_use_case(
    *,
    db: Session,
    status: str | None = None,
    brand_id: int | None = None,
    brand: str | None = None,
    search: str | None = None,
    year_from: int | None = None,
    year_to: int | None = None,
    price_min: Decimal | None = None,
    price_max: Decimal | None = None,
    sort_by: str = "newest",
    page: int | None = 1,
    page_size: int | None = None,
) -> tuple[list[Vehicle], int, int, int]:
    """Search the catalogue.

    ``search`` matches code, model, plate and chassis number; price bounds
    apply to the asking price (selling price, or HPP while none is set).
    """
    page, page_size = normalize_page(page, page_size)
    query = db.query(Vehicle)
    if status:
        query = query.filter(Vehicle.status == status)
    if brand_id:
        query = query.filter(Vehicle.brand_id == brand_id)
    if brand:
        query = query.join(Vehicle.brand).filter(VehicleBrand.name.ilike(f"%{brand.strip()}%"))
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Vehicle.code.ilike(pattern),
                Vehicle.model.ilike(pattern),
                Vehicle.license_plate.ilike(pattern),
                Vehicle.chassis_number.ilike(pattern),
            )
        )
    if year_from is not None:
        query = query.filter(Vehicle.year >= year_from)
    if year_to is not None:
        query = query.filter(Vehicle.year <= year_to)
    if price_min is not None:
        query = query.filter(_asking_price >= price_min)
    if price_max is not None:
        query = query.filter(_asking_price <= price_max)
    total = query.count()
    items = (
        query.options(joinedload(Vehicle.brand))
        .order_by(*VEHICLE_SORTS[sort_by])
        .offset(page_offset(page, page_size))
        .limit(page_size)
        .all()
    )
    return items, total, page, page_size


def update_vehicle_use_case(*, db: Session, vehicle_id: int, payload: VehicleUpdate) -> Vehicle:
    """Edit descriptive fields; status and costs stay with the workflows."""
    with atomic(db, operation="update vehicle"):
        vehicle = VehicleRepository(db).require(vehicle_id, for_update=True)
        for field, value in payload.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(vehicle, field, value)
    return get_vehicle_use_case(db=db, vehicle_id=vehicle_id)


def set_selling_price_use_case(*, db: Session, vehicle_id: int, selling_price: Decimal) -> Vehicle:
    with atomic(db, operation="set selling price"):
        vehicle = VehicleRepository(db).require(vehicle_id, for_update=True)
        if vehicle.status != "available":
            raise ConflictError(
                code="VEHICLE_NOT_AVAILABLE",
                message="Selling price can only be set on an available vehicle",
                details={"vehicle_id": vehicle.id, "status": vehicle.status},
            )
        if Decimal(selling_price) < Decimal(vehicle.hpp_price):
            raise InvalidAmountError(
                code="SELLING_PRICE_BELOW_HPP",
                message="Selling price must not be lower than HPP",
                details={"hpp_price": str(vehicle.hpp_price), "selling_price": str(selling_price)},
            )
        vehicle.selling_price = selling_price
    return get_vehicle_use_case(db=db, vehicle_id=vehicle_id)


def delete_vehicle_use_case(*, db: Session, vehicle_id: int) -> None:
    with atomic(db, operation="delete vehicle"):
        vehicle = VehicleRepository(db).require(vehicle_id, for_update=True)
        if vehicle.status in ("sold", "in_repair"):
            raise InvalidStateError(
                code="VEHICLE_NOT_DELETABLE",
                message=f"Vehicle with status {vehicle.status} cannot be deleted",
                details={"vehicle_id": vehicle.id, "status": vehicle.status},
            )
        has_history = (
            db.query(RepairOrder.id).filter(RepairOrder.vehicle_id == vehicle.id).first()
            or db.query(PurchaseTransaction.id).filter(PurchaseTransaction.vehicle_id == vehicle.id).first()
        )
        if has_history:
            raise InvalidStateError(
                code="VEHICLE_HAS_HISTORY",
                message="Vehicle has repair or purchase history and cannot be deleted",
                details={"vehicle_id": vehicle.id},
            )
        db.delete(vehicle)
