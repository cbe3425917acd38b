"""Vehicle row access for the repair and sales workflows."""
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from ..domain_errors import NotFoundError
from ..models import Vehicle
from ..services.repair_rules import compute_hpp

logger = logging.getLogger(__name__)


class VehicleRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, vehicle_id: int, *, for_update: bool = False) -> Vehicle | None:
        query = self.db.query(Vehicle).filter(Vehicle.id == vehicle_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def require(self, vehicle_id: int, *, for_update: bool = False) -> Vehicle:
        vehicle = self.get_by_id(vehicle_id, for_update=for_update)
        if vehicle is None:
            raise NotFoundError(
                code="VEHICLE_NOT_FOUND",
                message="Vehicle not found",
                details={"vehicle_id": vehicle_id},
            )
        return vehicle

    def update_status(self, vehicle: Vehicle, status: str) -> None:
        if vehicle.status != status:
            logger.info("Vehicle %s status %s -> %s", vehicle.code, vehicle.status, status)
        vehicle.status = status

    def update_repair_cost(self, vehicle: Vehicle, repair_cost: Decimal) -> None:
        """Set repair cost and recompute HPP from the fixed purchase price."""
        vehicle.repair_cost = Decimal(repair_cost)
        vehicle.hpp_price = compute_hpp(purchase_price=vehicle.purchase_price, repair_cost=repair_cost)

    def mark_as_sold(self, vehicle: Vehicle, *, sold_price: Decimal, sold_at: datetime) -> None:
        vehicle.status = "sold"
        vehicle.sold_price = Decimal(sold_price)
        vehicle.sold_date = sold_at
        logger.info("Vehicle %s sold for %s", vehicle.code, sold_price)

    def revert_sale(self, vehicle: Vehicle) -> None:
        """Put a sold vehicle back on the floor after its sale is voided."""
        vehicle.status = "available"
        vehicle.sold_price = None
        vehicle.sold_date = None
        logger.info("Vehicle %s sale reverted, available again", vehicle.code)
