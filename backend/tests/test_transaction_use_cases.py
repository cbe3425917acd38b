from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from showroom.domain_errors import ConflictError, InvalidAmountError, InvalidStateError, NotFoundError
from showroom.models import DailyClosing, SalesTransaction, Vehicle
from showroom.schemas import (
    PurchasePaymentUpdate,
    PurchaseTransactionCreate,
    SalesPaymentUpdate,
    SalesTransactionCreate,
    SalesTransactionUpdate,
)
from showroom.use_cases.transactions import (
    create_purchase_transaction_use_case,
    create_sales_transaction_use_case,
    delete_sales_transaction_use_case,
    derive_payment_status,
    list_purchase_transactions_use_case,
    list_sales_transactions_use_case,
    update_purchase_payment_use_case,
    update_sales_payment_use_case,
    update_sales_transaction_use_case,
)


def _sell(db, *, vehicle, customer, cashier, price, down_payment="0", **kwargs):
    return create_sales_transaction_use_case(
        db=db,
        payload=SalesTransactionCreate(
            customer_id=customer.id,
            vehicle_id=vehicle.id,
            selling_price=Decimal(price),
            down_payment=Decimal(down_payment),
            **kwargs,
        ),
        current_user=cashier,
    )


def test_derive_payment_status() -> None:
    assert derive_payment_status(down_payment=Decimal("0"), remaining_payment=Decimal("1500")) == "pending"
    assert derive_payment_status(down_payment=Decimal("500"), remaining_payment=Decimal("1000")) == "partial"
    assert derive_payment_status(down_payment=Decimal("1500"), remaining_payment=Decimal("0")) == "paid"


def test_sale_records_profit_and_marks_vehicle_sold(db, make) -> None:
    cashier = make.user(role="cashier")
    customer = make.customer()
    vehicle = make.vehicle(purchase_price="1000", hpp_price=Decimal("1100"))

    sale = _sell(db, vehicle=vehicle, customer=customer, cashier=cashier, price="1500", down_payment="500")

    assert sale.invoice_number == f"INV-SAL-{date.today().strftime('%Y%m%d')}-0001"
    assert sale.transaction_date == date.today()
    assert sale.hpp_price == Decimal("1100")
    assert sale.profit == Decimal("400")
    assert sale.remaining_payment == Decimal("1000")
    assert sale.payment_status == "partial"
    assert sale.customer.id == customer.id

    db.expire_all()
    sold = db.get(Vehicle, vehicle.id)
    assert sold.status == "sold"
    assert sold.sold_price == Decimal("1500")
    assert sold.sold_date is not None


def test_explicit_payment_status_wins(db, make) -> None:
    sale = _sell(
        db,
        vehicle=make.vehicle(),
        customer=make.customer(),
        cashier=make.user(role="cashier"),
        price="1200",
        payment_status="paid",
    )

    assert sale.payment_status == "paid"


def test_sale_below_hpp_is_rejected_and_vehicle_stays_available(db, make) -> None:
    vehicle = make.vehicle(purchase_price="1000", hpp_price=Decimal("1100"))

    with pytest.raises(InvalidAmountError) as exc:
        _sell(db, vehicle=vehicle, customer=make.customer(), cashier=make.user(), price="1099.99")

    assert exc.value.code == "SALE_PRICE_BELOW_HPP"
    assert exc.value.http_status == 422
    db.expire_all()
    assert db.get(Vehicle, vehicle.id).status == "available"
    assert db.query(SalesTransaction).count() == 0


def test_down_payment_cannot_exceed_price(db, make) -> None:
    with pytest.raises(InvalidAmountError) as exc:
        _sell(
            db,
            vehicle=make.vehicle(),
            customer=make.customer(),
            cashier=make.user(),
            price="1200",
            down_payment="1300",
        )

    assert exc.value.code == "DOWN_PAYMENT_EXCEEDS_PRICE"


def test_vehicle_can_only_be_sold_once(db, make) -> None:
    cashier = make.user(role="cashier")
    customer = make.customer()
    vehicle = make.vehicle()
    _sell(db, vehicle=vehicle, customer=customer, cashier=cashier, price="1200")

    with pytest.raises(ConflictError) as exc:
        _sell(db, vehicle=vehicle, customer=customer, cashier=cashier, price="1300")

    assert exc.value.code == "VEHICLE_NOT_AVAILABLE"
    assert db.query(SalesTransaction).count() == 1


def test_vehicle_in_repair_is_not_for_sale(db, make) -> None:
    with pytest.raises(ConflictError):
        _sell(
            db,
            vehicle=make.vehicle(status="in_repair"),
            customer=make.customer(),
            cashier=make.user(),
            price="2000",
        )


def test_sale_requires_existing_customer(db, make) -> None:
    vehicle = make.vehicle()
    with pytest.raises(NotFoundError) as exc:
        create_sales_transaction_use_case(
            db=db,
            payload=SalesTransactionCreate(customer_id=4242, vehicle_id=vehicle.id, selling_price=Decimal("1500")),
            current_user=make.user(),
        )

    assert exc.value.code == "CUSTOMER_NOT_FOUND"


def test_sales_payment_update_fills_missing_half_of_split(db, make) -> None:
    sale = _sell(db, vehicle=make.vehicle(), customer=make.customer(), cashier=make.user(), price="1500")

    updated = update_sales_payment_use_case(
        db=db,
        transaction_id=sale.id,
        payload=SalesPaymentUpdate(payment_status="partial", down_payment=Decimal("600")),
    )

    assert updated.down_payment == Decimal("600")
    assert updated.remaining_payment == Decimal("900")
    assert updated.payment_status == "partial"


def test_sales_payment_split_must_match_price(db, make) -> None:
    sale = _sell(db, vehicle=make.vehicle(), customer=make.customer(), cashier=make.user(), price="1500")

    with pytest.raises(InvalidAmountError) as exc:
        update_sales_payment_use_case(
            db=db,
            transaction_id=sale.id,
            payload=SalesPaymentUpdate(
                payment_status="paid",
                down_payment=Decimal("1000"),
                remaining_payment=Decimal("100"),
            ),
        )

    assert exc.value.code == "PAYMENT_SPLIT_MISMATCH"
    db.expire_all()
    assert db.get(SalesTransaction, sale.id).payment_status == "pending"


def test_purchase_leaves_vehicle_status_alone(db, make) -> None:
    supplier = make.supplier()
    vehicle = make.vehicle(status="in_repair")

    purchase = create_purchase_transaction_use_case(
        db=db,
        payload=PurchaseTransactionCreate(
            source_type="supplier",
            source_id=supplier.id,
            vehicle_id=vehicle.id,
            purchase_price=Decimal("900"),
        ),
        current_user=make.user(),
    )

    assert purchase.invoice_number.startswith("INV-PUR-")
    assert purchase.payment_status == "pending"
    db.expire_all()
    assert db.get(Vehicle, vehicle.id).status == "in_repair"

    updated = update_purchase_payment_use_case(
        db=db,
        transaction_id=purchase.id,
        payload=PurchasePaymentUpdate(payment_status="paid", notes="settled"),
    )
    assert updated.payment_status == "paid"
    assert updated.notes == "settled"


def test_purchase_validates_source_and_vehicle(db, make) -> None:
    user = make.user()
    vehicle = make.vehicle()

    with pytest.raises(NotFoundError) as missing_source:
        create_purchase_transaction_use_case(
            db=db,
            payload=PurchaseTransactionCreate(
                source_type="customer",
                source_id=777,
                vehicle_id=vehicle.id,
                purchase_price=Decimal("900"),
            ),
            current_user=user,
        )
    assert missing_source.value.code == "CUSTOMER_NOT_FOUND"

    sold = make.vehicle(status="sold")
    with pytest.raises(ConflictError):
        create_purchase_transaction_use_case(
            db=db,
            payload=PurchaseTransactionCreate(
                source_type="supplier",
                source_id=make.supplier().id,
                vehicle_id=sold.id,
                purchase_price=Decimal("900"),
            ),
            current_user=user,
        )


def test_transaction_lists_filter_by_status_and_date(db, make) -> None:
    cashier = make.user(role="cashier")
    customer = make.customer()
    _sell(db, vehicle=make.vehicle(), customer=customer, cashier=cashier, price="1500", down_payment="1500")
    _sell(db, vehicle=make.vehicle(), customer=customer, cashier=cashier, price="1500")
    _sell(
        db,
        vehicle=make.vehicle(),
        customer=customer,
        cashier=cashier,
        price="1500",
        transaction_date=date(2024, 1, 15),
    )

    items, total, _, _ = list_sales_transactions_use_case(db=db, payment_status="paid")
    assert total == 1
    assert items[0].payment_status == "paid"

    _, total, _, _ = list_sales_transactions_use_case(db=db, date_from=date(2024, 1, 1), date_to=date(2024, 1, 31))
    assert total == 1

    items, total, _, _ = list_purchase_transactions_use_case(db=db)
    assert (items, total) == ([], 0)


def test_sales_update_recomputes_profit_and_balance(db, make) -> None:
    vehicle = make.vehicle(purchase_price="1000", hpp_price=Decimal("1100"))
    sale = _sell(db, vehicle=vehicle, customer=make.customer(), cashier=make.user(role="cashier"), price="1500", down_payment="500")

    updated = update_sales_transaction_use_case(
        db=db,
        transaction_id=sale.id,
        payload=SalesTransactionUpdate(selling_price=Decimal("1400"), payment_method="transfer"),
    )

    assert updated.profit == Decimal("300")
    assert updated.down_payment == Decimal("500")
    assert updated.remaining_payment == Decimal("900")
    assert updated.payment_status == "partial"
    assert updated.payment_method == "transfer"
    assert updated.vehicle.status == "sold"
    db.expire_all()
    assert db.get(Vehicle, vehicle.id).sold_price == Decimal("1400")

    paid = update_sales_transaction_use_case(
        db=db,
        transaction_id=sale.id,
        payload=SalesTransactionUpdate(down_payment=Decimal("1400")),
    )
    assert paid.remaining_payment == Decimal("0")
    assert paid.payment_status == "paid"


def test_sales_update_keeps_price_floor_and_split(db, make) -> None:
    vehicle = make.vehicle(purchase_price="1000", hpp_price=Decimal("1100"))
    sale = _sell(db, vehicle=vehicle, customer=make.customer(), cashier=make.user(role="cashier"), price="1500")

    with pytest.raises(InvalidAmountError) as exc:
        update_sales_transaction_use_case(
            db=db, transaction_id=sale.id, payload=SalesTransactionUpdate(selling_price=Decimal("1000"))
        )
    assert exc.value.code == "SALE_PRICE_BELOW_HPP"
    with pytest.raises(InvalidAmountError) as exc:
        update_sales_transaction_use_case(
            db=db, transaction_id=sale.id, payload=SalesTransactionUpdate(down_payment=Decimal("1600"))
        )
    assert exc.value.code == "DOWN_PAYMENT_EXCEEDS_PRICE"

    db.expire_all()
    unchanged = db.get(SalesTransaction, sale.id)
    assert unchanged.selling_price == Decimal("1500")
    assert unchanged.profit == Decimal("400")


def test_voiding_a_sale_puts_the_vehicle_back_on_the_floor(db, make) -> None:
    customer = make.customer()
    cashier = make.user(role="cashier")
    vehicle = make.vehicle()
    sale = _sell(db, vehicle=vehicle, customer=customer, cashier=cashier, price="1500")

    delete_sales_transaction_use_case(db=db, transaction_id=sale.id)

    db.expire_all()
    assert db.get(SalesTransaction, sale.id) is None
    available = db.get(Vehicle, vehicle.id)
    assert available.status == "available"
    assert available.sold_price is None
    assert available.sold_date is None

    resold = _sell(db, vehicle=vehicle, customer=customer, cashier=cashier, price="1600")
    assert resold.vehicle.status == "sold"

    with pytest.raises(NotFoundError):
        delete_sales_transaction_use_case(db=db, transaction_id=sale.id)


def test_failed_void_keeps_sale_and_vehicle_sold(db, make, monkeypatch) -> None:
    vehicle = make.vehicle()
    sale = _sell(db, vehicle=vehicle, customer=make.customer(), cashier=make.user(role="cashier"), price="1500")

    def broken_revert(self, vehicle):
        raise RuntimeError("disk full")

    monkeypatch.setattr("showroom.repositories.vehicles.VehicleRepository.revert_sale", broken_revert)

    with pytest.raises(RuntimeError):
        delete_sales_transaction_use_case(db=db, transaction_id=sale.id)

    db.expire_all()
    assert db.get(SalesTransaction, sale.id) is not None
    assert db.get(Vehicle, vehicle.id).status == "sold"


def test_sales_in_a_closed_day_are_frozen(db, make) -> None:
    admin = make.user()
    sale = _sell(db, vehicle=make.vehicle(), customer=make.customer(), cashier=admin, price="1500")
    db.add(DailyClosing(closing_date=sale.transaction_date, closed_by_id=admin.id))
    db.commit()

    with pytest.raises(InvalidStateError) as exc:
        delete_sales_transaction_use_case(db=db, transaction_id=sale.id)
    assert exc.value.code == "SALES_PERIOD_CLOSED"
    with pytest.raises(InvalidStateError):
        update_sales_transaction_use_case(
            db=db, transaction_id=sale.id, payload=SalesTransactionUpdate(notes="late fix")
        )
