"""Response serialization helpers for repair orders, spare parts and categories."""
from __future__ import annotations

from ..models import RepairOrder, RepairSparePart, SparePart, SparePartCategory
from ..schemas import (
    RepairOrderResponse,
    RepairSparePartResponse,
    SparePartCategoryResponse,
    SparePartResponse,
    UserBrief,
    VehicleBrief,
)
from .inventory_rules import is_low_stock


def repair_line_to_response(line: RepairSparePart) -> RepairSparePartResponse:
    part = line.spare_part
    return RepairSparePartResponse(
        id=line.id,
        repair_order_id=line.repair_order_id,
        spare_part_id=line.spare_part_id,
        spare_part_code=part.code if part else None,
        spare_part_name=part.name if part else None,
        quantity_used=line.quantity_used,
        unit_price=line.unit_price,
        total_price=line.total_price,
        created_at=line.created_at,
    )


def repair_order_to_response(order: RepairOrder) -> RepairOrderResponse:
    """Serialize an order with its nested vehicle, users and line items."""
    return RepairOrderResponse(
        id=order.id,
        code=order.code,
        vehicle_id=order.vehicle_id,
        mechanic_id=order.mechanic_id,
        assigned_by_id=order.assigned_by_id,
        description=order.description,
        estimated_cost=order.estimated_cost,
        actual_cost=order.actual_cost,
        status=order.status,
        started_at=order.started_at,
        completed_at=order.completed_at,
        notes=order.notes,
        created_at=order.created_at,
        updated_at=order.updated_at,
        vehicle=VehicleBrief.model_validate(order.vehicle) if order.vehicle else None,
        mechanic=UserBrief.model_validate(order.mechanic) if order.mechanic else None,
        assigned_by=UserBrief.model_validate(order.assigned_by) if order.assigned_by else None,
        spare_parts=[repair_line_to_response(line) for line in order.spare_parts],
    )


def spare_part_to_response(part: SparePart) -> SparePartResponse:
    response = SparePartResponse.model_validate(part)
    response.is_low_stock = is_low_stock(
        stock_quantity=part.stock_quantity,
        minimum_stock=part.minimum_stock,
    )
    return response


def category_to_response(category: SparePartCategory, spare_part_count: int = 0) -> SparePartCategoryResponse:
    return SparePartCategoryResponse(
        id=category.id,
        name=category.name,
        description=category.description,
        is_active=category.is_active,
        spare_part_count=spare_part_count,
        created_at=category.created_at,
    )
