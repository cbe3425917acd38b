"""Spare-part stock and pricing invariants."""
from __future__ import annotations

from decimal import Decimal

from sqlalchemy import and_

from ..domain_errors import InvalidAmountError
from ..models import SparePart

STOCK_STATUS_FILTERS: tuple[str, ...] = ("low_stock", "out_of_stock", "in_stock", "available", "inactive")


def is_low_stock(*, stock_quantity: int, minimum_stock: int) -> bool:
    return int(stock_quantity) <= int(minimum_stock)


def ensure_selling_not_below_purchase(*, purchase_price: Decimal, selling_price: Decimal) -> None:
    if Decimal(selling_price) < Decimal(purchase_price):
        raise InvalidAmountError(
            code="SPARE_PART_PRICE_BELOW_PURCHASE",
            message="Selling price must not be lower than purchase price",
            details={"purchase_price": str(purchase_price), "selling_price": str(selling_price)},
        )


def stock_status_clause(stock_status: str):
    """SQL filter for a stock status name; None for an unknown name."""
    if stock_status == "out_of_stock":
        return SparePart.stock_quantity == 0
    if stock_status == "low_stock":
        return and_(
            SparePart.is_active.is_(True),
            SparePart.stock_quantity > 0,
            SparePart.stock_quantity <= SparePart.minimum_stock,
        )
    if stock_status == "in_stock":
        return and_(SparePart.is_active.is_(True), SparePart.stock_quantity > SparePart.minimum_stock)
    if stock_status == "available":
        return and_(SparePart.is_active.is_(True), SparePart.stock_quantity > 0)
    if stock_status == "inactive":
        return SparePart.is_active.is_(False)
    return None


def low_stock_clause():
    return and_(
        SparePart.is_active.is_(True),
        SparePart.stock_quantity <= SparePart.minimum_stock,
    )
