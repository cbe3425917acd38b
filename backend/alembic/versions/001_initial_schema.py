"""initial showroom schema

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _money(name: str, nullable: bool = False, default: str | None = "0") -> sa.Column:
    return sa.Column(
        name,
        sa.Numeric(15, 2),
        nullable=nullable,
        server_default=default if not nullable else None,
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("email", sa.String(length=100), nullable=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=100), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint("role IN ('admin', 'cashier', 'mechanic')", name="chk_user_role"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_role", "users", ["role"], unique=False)

    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("email", sa.String(length=100), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("id_card_number", sa.String(length=50), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("id_card_number"),
    )
    op.create_index("ix_customers_name", "customers", ["name"], unique=False)

    op.create_table(
        "suppliers",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("contact_person", sa.String(length=100), nullable=True),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("email", sa.String(length=100), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_suppliers_name", "suppliers", ["name"], unique=False)

    op.create_table(
        "vehicle_brands",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "vehicles",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("brand_id", sa.Integer(), nullable=False),
        sa.Column("model", sa.String(length=100), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("color", sa.String(length=30), nullable=True),
        sa.Column("license_plate", sa.String(length=20), nullable=True),
        sa.Column("chassis_number", sa.String(length=50), nullable=True),
        sa.Column("engine_number", sa.String(length=50), nullable=True),
        sa.Column("engine_capacity", sa.String(length=20), nullable=True),
        sa.Column("fuel_type", sa.String(length=20), nullable=True),
        sa.Column("transmission_type", sa.String(length=20), nullable=True),
        sa.Column("odometer", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("source_type", sa.String(length=20), nullable=False, server_default="supplier"),
        sa.Column("source_id", sa.Integer(), nullable=True),
        sa.Column("condition_status", sa.String(length=20), nullable=False, server_default="good"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="available"),
        _money("purchase_price", default=None),
        _money("repair_cost"),
        _money("hpp_price", default=None),
        _money("selling_price", nullable=True),
        _money("sold_price", nullable=True),
        sa.Column("sold_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by_id", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('available', 'in_repair', 'sold', 'reserved')", name="chk_vehicle_status"
        ),
        sa.CheckConstraint("source_type IN ('customer', 'supplier')", name="chk_vehicle_source_type"),
        sa.CheckConstraint(
            "condition_status IN ('excellent', 'good', 'fair', 'poor', 'needs_repair')",
            name="chk_vehicle_condition",
        ),
        sa.CheckConstraint("year >= 1980", name="chk_vehicle_year"),
        sa.ForeignKeyConstraint(["brand_id"], ["vehicle_brands.id"]),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_vehicles_code", "vehicles", ["code"], unique=True)
    op.create_index("ix_vehicles_brand_id", "vehicles", ["brand_id"], unique=False)
    op.create_index("ix_vehicles_status", "vehicles", ["status"], unique=False)

    op.create_table(
        "spare_parts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=50), nullable=True),
        sa.Column("unit", sa.String(length=20), nullable=False, server_default="pcs"),
        _money("purchase_price", default=None),
        _money("selling_price", default=None),
        sa.Column("stock_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("minimum_stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint("stock_quantity >= 0", name="chk_spare_part_stock"),
        sa.CheckConstraint("minimum_stock >= 0", name="chk_spare_part_minimum_stock"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_spare_parts_code", "spare_parts", ["code"], unique=True)
    op.create_index("ix_spare_parts_category", "spare_parts", ["category"], unique=False)

    op.create_table(
        "repair_orders",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("vehicle_id", sa.Integer(), nullable=False),
        sa.Column("mechanic_id", sa.Integer(), nullable=False),
        sa.Column("assigned_by_id", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        _money("estimated_cost"),
        _money("actual_cost"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('pending', 'in_progress', 'completed', 'cancelled')",
            name="chk_repair_order_status",
        ),
        sa.CheckConstraint("estimated_cost >= 0", name="chk_repair_order_estimated_cost"),
        sa.CheckConstraint("actual_cost >= 0", name="chk_repair_order_actual_cost"),
        sa.ForeignKeyConstraint(["vehicle_id"], ["vehicles.id"]),
        sa.ForeignKeyConstraint(["mechanic_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["assigned_by_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_repair_orders_code", "repair_orders", ["code"], unique=True)
    op.create_index("ix_repair_orders_vehicle_id", "repair_orders", ["vehicle_id"], unique=False)
    op.create_index("ix_repair_orders_mechanic_id", "repair_orders", ["mechanic_id"], unique=False)
    op.create_index("ix_repair_orders_status", "repair_orders", ["status"], unique=False)
    op.create_index("ix_repair_orders_created_at", "repair_orders", ["created_at"], unique=False)

    op.create_table(
        "repair_spare_parts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("repair_order_id", sa.Integer(), nullable=False),
        sa.Column("spare_part_id", sa.Integer(), nullable=False),
        sa.Column("quantity_used", sa.Integer(), nullable=False),
        _money("unit_price", default=None),
        _money("total_price", default=None),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.CheckConstraint("quantity_used > 0", name="chk_repair_spare_part_quantity"),
        sa.ForeignKeyConstraint(["repair_order_id"], ["repair_orders.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["spare_part_id"], ["spare_parts.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_repair_spare_parts_repair_order_id", "repair_spare_parts", ["repair_order_id"], unique=False)
    op.create_index("ix_repair_spare_parts_spare_part_id", "repair_spare_parts", ["spare_part_id"], unique=False)
    op.create_index(
        "idx_repair_spare_parts_order_part",
        "repair_spare_parts",
        ["repair_order_id", "spare_part_id"],
        unique=False,
    )

    op.create_table(
        "sales_transactions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("invoice_number", sa.String(length=50), nullable=False),
        sa.Column("transaction_date", sa.Date(), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("vehicle_id", sa.Integer(), nullable=False),
        _money("hpp_price", default=None),
        _money("selling_price", default=None),
        _money("profit", default=None),
        sa.Column("payment_method", sa.String(length=20), nullable=False, server_default="cash"),
        sa.Column("payment_status", sa.String(length=20), nullable=False, server_default="pending"),
        _money("down_payment"),
        _money("remaining_payment"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("processed_by_id", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("payment_method IN ('cash', 'transfer', 'credit')", name="chk_sales_payment_method"),
        sa.CheckConstraint("payment_status IN ('pending', 'partial', 'paid')", name="chk_sales_payment_status"),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.ForeignKeyConstraint(["vehicle_id"], ["vehicles.id"]),
        sa.ForeignKeyConstraint(["processed_by_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sales_transactions_invoice_number", "sales_transactions", ["invoice_number"], unique=True)
    op.create_index("ix_sales_transactions_transaction_date", "sales_transactions", ["transaction_date"], unique=False)
    op.create_index("ix_sales_transactions_customer_id", "sales_transactions", ["customer_id"], unique=False)
    op.create_index("ix_sales_transactions_vehicle_id", "sales_transactions", ["vehicle_id"], unique=False)
    op.create_index("ix_sales_transactions_payment_status", "sales_transactions", ["payment_status"], unique=False)

    op.create_table(
        "purchase_transactions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("invoice_number", sa.String(length=50), nullable=False),
        sa.Column("transaction_date", sa.Date(), nullable=False),
        sa.Column("source_type", sa.String(length=20), nullable=False),
        sa.Column("source_id", sa.Integer(), nullable=False),
        sa.Column("vehicle_id", sa.Integer(), nullable=False),
        _money("purchase_price", default=None),
        sa.Column("payment_method", sa.String(length=20), nullable=False, server_default="cash"),
        sa.Column("payment_status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("processed_by_id", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("source_type IN ('customer', 'supplier')", name="chk_purchase_source_type"),
        sa.CheckConstraint("payment_method IN ('cash', 'transfer', 'credit')", name="chk_purchase_payment_method"),
        sa.CheckConstraint("payment_status IN ('pending', 'partial', 'paid')", name="chk_purchase_payment_status"),
        sa.ForeignKeyConstraint(["vehicle_id"], ["vehicles.id"]),
        sa.ForeignKeyConstraint(["processed_by_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_purchase_transactions_invoice_number", "purchase_transactions", ["invoice_number"], unique=True
    )
    op.create_index(
        "ix_purchase_transactions_transaction_date", "purchase_transactions", ["transaction_date"], unique=False
    )
    op.create_index("ix_purchase_transactions_vehicle_id", "purchase_transactions", ["vehicle_id"], unique=False)

    op.create_table(
        "dashboard_metrics",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("metric_date", sa.Date(), nullable=False),
        sa.Column("vehicles_available", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("vehicles_in_repair", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("vehicles_sold_today", sa.Integer(), nullable=False, server_default="0"),
        _money("revenue_today"),
        _money("profit_today"),
        sa.Column("pending_repairs", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("low_stock_items", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("metric_date"),
    )

    op.create_table(
        "daily_closings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("closing_date", sa.Date(), nullable=False),
        _money("total_purchase"),
        _money("total_sales"),
        _money("total_repair_cost"),
        _money("total_profit"),
        _money("cash_in_hand"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("closed_by_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.ForeignKeyConstraint(["closed_by_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("closing_date"),
    )

    op.create_table(
        "monthly_closings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        _money("total_purchase"),
        _money("total_sales"),
        _money("total_repair_cost"),
        _money("total_profit"),
        sa.Column("vehicles_purchased", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("vehicles_sold", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("vehicles_in_stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("closed_by_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.CheckConstraint("month BETWEEN 1 AND 12", name="chk_monthly_closing_month"),
        sa.ForeignKeyConstraint(["closed_by_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("month", "year", name="uq_monthly_closing_period"),
    )


def downgrade() -> None:
    for table in (
        "monthly_closings",
        "daily_closings",
        "dashboard_metrics",
        "purchase_transactions",
        "sales_transactions",
        "repair_spare_parts",
        "repair_orders",
        "spare_parts",
        "vehicles",
        "vehicle_brands",
        "suppliers",
        "customers",
        "users",
    ):
        op.drop_table(table)
