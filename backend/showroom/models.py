"""SQLAlchemy models for showroom inventory, workshop and sales."""
from sqlalchemy import (
    Boolean, Column, String, Integer, Date, DateTime, Text, Numeric,
    ForeignKey, CheckConstraint, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from datetime import datetime, timezone
from .database import Base


Money = Numeric(15, 2)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """Staff account (admin, cashier or mechanic)."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(100), nullable=True)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=True)
    role = Column(String(20), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(role.in_(["admin", "cashier", "mechanic"]), name="chk_user_role"),
    )

    assigned_repairs = relationship(
        "RepairOrder", foreign_keys="RepairOrder.mechanic_id", back_populates="mechanic"
    )


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, index=True)
    phone = Column(String(20), nullable=True)
    email = Column(String(100), nullable=True)
    address = Column(Text, nullable=True)
    id_card_number = Column(String(50), nullable=True, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Supplier(Base):
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, index=True)
    contact_person = Column(String(100), nullable=True)
    phone = Column(String(20), nullable=True)
    email = Column(String(100), nullable=True)
    address = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class VehicleBrand(Base):
    __tablename__ = "vehicle_brands"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    vehicles = relationship("Vehicle", back_populates="brand")


class Vehicle(Base):
    """Vehicle in showroom stock.

    status and the cost fields (repair_cost, hpp_price, sold_*) are owned by
    the repair and sales workflows; general edits never touch them.
    """
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(50), unique=True, nullable=False, index=True)
    brand_id = Column(Integer, ForeignKey("vehicle_brands.id"), nullable=False, index=True)
    model = Column(String(100), nullable=False)
    year = Column(Integer, nullable=False)
    color = Column(String(30), nullable=True)
    license_plate = Column(String(20), nullable=True)
    chassis_number = Column(String(50), nullable=True)
    engine_number = Column(String(50), nullable=True)
    engine_capacity = Column(String(20), nullable=True)
    fuel_type = Column(String(20), nullable=True)
    transmission_type = Column(String(20), nullable=True)
    odometer = Column(Integer, nullable=False, default=0)
    source_type = Column(String(20), nullable=False, default="supplier")
    source_id = Column(Integer, nullable=True)
    condition_status = Column(String(20), nullable=False, default="good")
    status = Column(String(20), nullable=False, default="available", index=True)
    purchase_price = Column(Money, nullable=False)
    repair_cost = Column(Money, nullable=False, default=0)
    hpp_price = Column(Money, nullable=False)
    selling_price = Column(Money, nullable=True)
    sold_price = Column(Money, nullable=True)
    sold_date = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(status.in_(["available", "in_repair", "sold", "reserved"]), name="chk_vehicle_status"),
        CheckConstraint(source_type.in_(["customer", "supplier"]), name="chk_vehicle_source_type"),
        CheckConstraint(
            condition_status.in_(["excellent", "good", "fair", "poor", "needs_repair"]),
            name="chk_vehicle_condition",
        ),
        CheckConstraint("year >= 1980", name="chk_vehicle_year"),
    )

    brand = relationship("VehicleBrand", back_populates="vehicles")
    repair_orders = relationship("RepairOrder", back_populates="vehicle")


class SparePartCategory(Base):
    """Managed category names; spare parts refer to them by name."""
    __tablename__ = "spare_part_categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class SparePart(Base):
    __tablename__ = "spare_parts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(50), nullable=True, index=True)
    unit = Column(String(20), nullable=False, default="pcs")
    purchase_price = Column(Money, nullable=False)
    selling_price = Column(Money, nullable=False)
    stock_quantity = Column(Integer, nullable=False, default=0)
    minimum_stock = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="chk_spare_part_stock"),
        CheckConstraint("minimum_stock >= 0", name="chk_spare_part_minimum_stock"),
    )


class RepairOrder(Base):
    """Unit of workshop work: one mechanic repairing one vehicle."""
    __tablename__ = "repair_orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(50), unique=True, nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)
    mechanic_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    assigned_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    description = Column(Text, nullable=False)
    estimated_cost = Column(Money, nullable=False, default=0)
    actual_cost = Column(Money, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="pending", index=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utc_now, server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(
            status.in_(["pending", "in_progress", "completed", "cancelled"]),
            name="chk_repair_order_status",
        ),
        CheckConstraint("estimated_cost >= 0", name="chk_repair_order_estimated_cost"),
        CheckConstraint("actual_cost >= 0", name="chk_repair_order_actual_cost"),
    )

    vehicle = relationship("Vehicle", back_populates="repair_orders")
    mechanic = relationship("User", foreign_keys=[mechanic_id], back_populates="assigned_repairs")
    assigned_by = relationship("User", foreign_keys=[assigned_by_id])
    spare_parts = relationship(
        "RepairSparePart",
        back_populates="repair_order",
        order_by="RepairSparePart.id",
    )


class RepairSparePart(Base):
    """Spare part consumed by a repair order; price is a snapshot at attach time."""
    __tablename__ = "repair_spare_parts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    repair_order_id = Column(Integer, ForeignKey("repair_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    spare_part_id = Column(Integer, ForeignKey("spare_parts.id"), nullable=False, index=True)
    quantity_used = Column(Integer, nullable=False)
    unit_price = Column(Money, nullable=False)
    total_price = Column(Money, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("quantity_used > 0", name="chk_repair_spare_part_quantity"),
        Index("idx_repair_spare_parts_order_part", "repair_order_id", "spare_part_id"),
    )

    repair_order = relationship("RepairOrder", back_populates="spare_parts")
    spare_part = relationship("SparePart")


class SalesTransaction(Base):
    __tablename__ = "sales_transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    invoice_number = Column(String(50), unique=True, nullable=False, index=True)
    transaction_date = Column(Date, nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)
    hpp_price = Column(Money, nullable=False)
    selling_price = Column(Money, nullable=False)
    profit = Column(Money, nullable=False)
    payment_method = Column(String(20), nullable=False, default="cash")
    payment_status = Column(String(20), nullable=False, default="pending", index=True)
    down_payment = Column(Money, nullable=False, default=0)
    remaining_payment = Column(Money, nullable=False, default=0)
    notes = Column(Text, nullable=True)
    processed_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utc_now, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(payment_method.in_(["cash", "transfer", "credit"]), name="chk_sales_payment_method"),
        CheckConstraint(payment_status.in_(["pending", "partial", "paid"]), name="chk_sales_payment_status"),
    )

    customer = relationship("Customer")
    vehicle = relationship("Vehicle")
    processed_by = relationship("User")


class PurchaseTransaction(Base):
    __tablename__ = "purchase_transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    invoice_number = Column(String(50), unique=True, nullable=False, index=True)
    transaction_date = Column(Date, nullable=False, index=True)
    source_type = Column(String(20), nullable=False)
    source_id = Column(Integer, nullable=False)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)
    purchase_price = Column(Money, nullable=False)
    payment_method = Column(String(20), nullable=False, default="cash")
    payment_status = Column(String(20), nullable=False, default="pending")
    notes = Column(Text, nullable=True)
    processed_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utc_now, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(source_type.in_(["customer", "supplier"]), name="chk_purchase_source_type"),
        CheckConstraint(payment_method.in_(["cash", "transfer", "credit"]), name="chk_purchase_payment_method"),
        CheckConstraint(payment_status.in_(["pending", "partial", "paid"]), name="chk_purchase_payment_status"),
    )

    vehicle = relationship("Vehicle")
    processed_by = relationship("User")


class DashboardMetric(Base):
    """Daily snapshot of headline numbers, overwritten by upsert."""
    __tablename__ = "dashboard_metrics"

    id = Column(Integer, primary_key=True, autoincrement=True)
    metric_date = Column(Date, nullable=False, unique=True)
    vehicles_available = Column(Integer, nullable=False, default=0)
    vehicles_in_repair = Column(Integer, nullable=False, default=0)
    vehicles_sold_today = Column(Integer, nullable=False, default=0)
    revenue_today = Column(Money, nullable=False, default=0)
    profit_today = Column(Money, nullable=False, default=0)
    pending_repairs = Column(Integer, nullable=False, default=0)
    low_stock_items = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class DailyClosing(Base):
    __tablename__ = "daily_closings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    closing_date = Column(Date, nullable=False, unique=True)
    total_purchase = Column(Money, nullable=False, default=0)
    total_sales = Column(Money, nullable=False, default=0)
    total_repair_cost = Column(Money, nullable=False, default=0)
    total_profit = Column(Money, nullable=False, default=0)
    cash_in_hand = Column(Money, nullable=False, default=0)
    notes = Column(Text, nullable=True)
    closed_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class MonthlyClosing(Base):
    __tablename__ = "monthly_closings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    total_purchase = Column(Money, nullable=False, default=0)
    total_sales = Column(Money, nullable=False, default=0)
    total_repair_cost = Column(Money, nullable=False, default=0)
    total_profit = Column(Money, nullable=False, default=0)
    vehicles_purchased = Column(Integer, nullable=False, default=0)
    vehicles_sold = Column(Integer, nullable=False, default=0)
    vehicles_in_stock = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)
    closed_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("month", "year", name="uq_monthly_closing_period"),
        CheckConstraint("month BETWEEN 1 AND 12", name="chk_monthly_closing_month"),
    )
