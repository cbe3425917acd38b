"""Spare-part row access with guarded stock mutation."""
from __future__ import annotations

import logging

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..domain_errors import InsufficientStockError, NotFoundError
from ..models import SparePart

logger = logging.getLogger(__name__)


class SparePartRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, spare_part_id: int, *, for_update: bool = False) -> SparePart | None:
        query = self.db.query(SparePart).filter(SparePart.id == spare_part_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def require(self, spare_part_id: int, *, for_update: bool = False) -> SparePart:
        part = self.get_by_id(spare_part_id, for_update=for_update)
        if part is None:
            raise NotFoundError(
                code="SPARE_PART_NOT_FOUND",
                message="Spare part not found",
                details={"spare_part_id": spare_part_id},
            )
        return part

    def check_stock_availability(self, spare_part_id: int, quantity: int) -> bool:
        part = self.require(spare_part_id)
        return part.stock_quantity >= quantity

    def update_stock(self, spare_part_id: int, quantity: int, operation: str) -> SparePart:
        """Add or subtract stock in one conditional UPDATE.

        Subtraction only matches rows that still hold enough stock, so a
        concurrent consumer cannot drive the quantity below zero.
        """
        if operation not in ("add", "subtract"):
            raise ValueError(f"Unknown stock operation: {operation}")

        stmt = update(SparePart).where(SparePart.id == spare_part_id)
        if operation == "subtract":
            stmt = stmt.where(SparePart.stock_quantity >= quantity).values(
                stock_quantity=SparePart.stock_quantity - quantity
            )
        else:
            stmt = stmt.values(stock_quantity=SparePart.stock_quantity + quantity)

        result = self.db.execute(stmt.execution_options(synchronize_session="fetch"))
        if result.rowcount == 0:
            part = self.require(spare_part_id)
            raise InsufficientStockError(
                code="INSUFFICIENT_STOCK",
                message=f"Insufficient stock for spare part {part.code}",
                details={
                    "spare_part_id": spare_part_id,
                    "available": part.stock_quantity,
                    "requested": quantity,
                },
            )

        part = self.require(spare_part_id)
        logger.debug("Spare part %s stock %s %s -> %s", part.code, operation, quantity, part.stock_quantity)
        return part
