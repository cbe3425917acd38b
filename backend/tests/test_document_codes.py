from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from showroom.domain_errors import StorageError
from showroom.models import RepairOrder, SalesTransaction, Vehicle
from showroom.schemas import RepairOrderCreate, SalesTransactionCreate
from showroom.services import document_codes
from showroom.services.document_codes import (
    MAX_NUMBER_ATTEMPTS,
    is_number_collision,
    next_purchase_invoice,
    next_repair_code,
    next_sales_invoice,
)
from showroom.use_cases import repair_orders, transactions
from showroom.use_cases.repair_orders import create_repair_order_use_case
from showroom.use_cases.transactions import create_sales_transaction_use_case


def test_first_numbers_of_the_day(db) -> None:
    day = date(2026, 3, 9)

    assert next_repair_code(db=db, on=day) == "RPR-20260309-001"
    assert next_sales_invoice(db=db, on=day) == "INV-SAL-20260309-0001"
    assert next_purchase_invoice(db=db, on=day) == "INV-PUR-20260309-0001"


def test_repair_code_skips_numbers_already_taken(db, make) -> None:
    mechanic = make.user(role="mechanic")
    # A gap left by a deleted order: only 002 remains, so the count-based guess collides.
    db.add(
        RepairOrder(
            code="RPR-20260309-002",
            vehicle_id=make.vehicle().id,
            mechanic_id=mechanic.id,
            assigned_by_id=mechanic.id,
            description="Tune-up",
            status="pending",
        )
    )
    db.commit()

    assert next_repair_code(db=db, on=date(2026, 3, 9)) == "RPR-20260309-003"
    assert next_repair_code(db=db, on=date(2026, 3, 10)) == "RPR-20260310-001"


def _open(db, make, mechanic, admin):
    return create_repair_order_use_case(
        db=db,
        payload=RepairOrderCreate(vehicle_id=make.vehicle().id, mechanic_id=mechanic.id, description="Service"),
        current_user=admin,
    )


def test_repair_order_retries_when_another_writer_took_the_code(db, make, monkeypatch) -> None:
    mechanic = make.user(role="mechanic")
    admin = make.user()
    first = _open(db, make, mechanic, admin)
    calls: list[str] = []

    def stale_then_fresh(*, db, on):
        # The first pick was made before the other writer committed `first`.
        code = first.code if not calls else document_codes.next_repair_code(db=db, on=on)
        calls.append(code)
        return code

    monkeypatch.setattr(repair_orders, "next_repair_code", stale_then_fresh)

    second = _open(db, make, mechanic, admin)

    assert calls[0] == first.code
    assert len(calls) == 2
    assert second.code == calls[1]
    assert second.code != first.code
    assert db.query(RepairOrder).count() == 2


def test_repair_order_gives_up_after_bounded_attempts(db, make, monkeypatch) -> None:
    mechanic = make.user(role="mechanic")
    admin = make.user()
    first = _open(db, make, mechanic, admin)
    taken = first.code
    vehicle = make.vehicle()
    calls: list[str] = []

    def always_taken(*, db, on):
        calls.append(taken)
        return taken

    monkeypatch.setattr(repair_orders, "next_repair_code", always_taken)

    with pytest.raises(StorageError) as exc:
        create_repair_order_use_case(
            db=db,
            payload=RepairOrderCreate(vehicle_id=vehicle.id, mechanic_id=mechanic.id, description="Service"),
            current_user=admin,
        )

    assert exc.value.code == "STORAGE_FAILURE"
    assert len(calls) == MAX_NUMBER_ATTEMPTS
    db.expire_all()
    assert db.get(Vehicle, vehicle.id).status == "available"
    assert db.query(RepairOrder).count() == 1


def test_sales_invoice_retries_when_another_writer_took_the_number(db, make, monkeypatch) -> None:
    cashier = make.user(role="cashier")
    customer = make.customer()
    first = create_sales_transaction_use_case(
        db=db,
        payload=SalesTransactionCreate(customer_id=customer.id, vehicle_id=make.vehicle().id, selling_price=Decimal("1500")),
        current_user=cashier,
    )
    calls: list[str] = []

    def stale_then_fresh(*, db, on):
        number = first.invoice_number if not calls else document_codes.next_sales_invoice(db=db, on=on)
        calls.append(number)
        return number

    monkeypatch.setattr(transactions, "next_sales_invoice", stale_then_fresh)
    vehicle = make.vehicle()

    second = create_sales_transaction_use_case(
        db=db,
        payload=SalesTransactionCreate(customer_id=customer.id, vehicle_id=vehicle.id, selling_price=Decimal("1500")),
        current_user=cashier,
    )

    assert len(calls) == 2
    assert second.invoice_number == calls[1] != first.invoice_number
    assert second.vehicle.status == "sold"
    assert db.query(SalesTransaction).count() == 2


def test_only_unique_violations_on_the_number_column_count_as_collisions() -> None:
    assert not is_number_collision(StorageError(code="STORAGE_FAILURE", message="boom"), RepairOrder.code)
    assert not is_number_collision(ValueError("repair_orders.code"), RepairOrder.code)
