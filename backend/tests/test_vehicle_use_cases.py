from __future__ import annotations

from decimal import Decimal

import pytest

from showroom.domain_errors import ConflictError, InvalidAmountError, InvalidStateError, NotFoundError
from showroom.models import Customer, Supplier, Vehicle
from showroom.schemas import (
    CustomerCreate,
    CustomerUpdate,
    PurchaseTransactionCreate,
    RepairOrderCreate,
    SalesTransactionCreate,
    SupplierCreate,
    SupplierUpdate,
    VehicleBrandCreate,
    VehicleCreate,
    VehicleUpdate,
)
from showroom.use_cases.parties import (
    create_customer_use_case,
    create_supplier_use_case,
    delete_customer_use_case,
    delete_supplier_use_case,
    list_customers_use_case,
    list_suppliers_use_case,
    update_customer_use_case,
    update_supplier_use_case,
)
from showroom.use_cases.repair_orders import create_repair_order_use_case
from showroom.use_cases.transactions import create_purchase_transaction_use_case, create_sales_transaction_use_case
from showroom.use_cases.vehicles import (
    create_brand_use_case,
    create_vehicle_use_case,
    delete_vehicle_use_case,
    list_vehicles_use_case,
    set_selling_price_use_case,
    update_vehicle_use_case,
)


def _intake(db, *, user, brand, code="VH-0001", price="12500000") -> Vehicle:
    return create_vehicle_use_case(
        db=db,
        payload=VehicleCreate(code=code, brand_id=brand.id, model="Vario 160", year=2023, purchase_price=Decimal(price)),
        current_user=user,
    )


def test_intake_starts_available_with_hpp_equal_to_purchase_price(db, make) -> None:
    vehicle = _intake(db, user=make.user(), brand=make.brand("Honda"))

    assert vehicle.status == "available"
    assert vehicle.repair_cost == Decimal("0")
    assert vehicle.hpp_price == Decimal("12500000")
    assert vehicle.brand.name == "Honda"


def test_intake_rejects_duplicate_code_and_unknown_brand(db, make) -> None:
    user = make.user()
    brand = make.brand()
    _intake(db, user=user, brand=brand)

    with pytest.raises(ConflictError) as exc:
        _intake(db, user=user, brand=brand)
    assert exc.value.code == "VEHICLE_CODE_EXISTS"

    with pytest.raises(NotFoundError):
        create_vehicle_use_case(
            db=db,
            payload=VehicleCreate(code="VH-0002", brand_id=999, model="X", year=2020, purchase_price=Decimal("1")),
            current_user=user,
        )


def test_brand_names_are_unique(db) -> None:
    create_brand_use_case(db=db, payload=VehicleBrandCreate(name="Suzuki"))

    with pytest.raises(ConflictError):
        create_brand_use_case(db=db, payload=VehicleBrandCreate(name=" Suzuki "))


def test_update_only_touches_descriptive_fields(db, make) -> None:
    vehicle = make.vehicle()

    updated = update_vehicle_use_case(
        db=db,
        vehicle_id=vehicle.id,
        payload=VehicleUpdate(color="Red", odometer=1200),
    )

    assert updated.color == "Red"
    assert updated.odometer == 1200
    assert updated.status == "available"


def test_selling_price_cannot_undercut_hpp(db, make) -> None:
    vehicle = make.vehicle(purchase_price="1000", hpp_price=Decimal("1100"))

    with pytest.raises(InvalidAmountError):
        set_selling_price_use_case(db=db, vehicle_id=vehicle.id, selling_price=Decimal("1050"))

    priced = set_selling_price_use_case(db=db, vehicle_id=vehicle.id, selling_price=Decimal("1400"))
    assert priced.selling_price == Decimal("1400")

    with pytest.raises(ConflictError):
        set_selling_price_use_case(db=db, vehicle_id=make.vehicle(status="sold").id, selling_price=Decimal("5000"))


def test_delete_guards(db, make) -> None:
    with pytest.raises(InvalidStateError) as exc:
        delete_vehicle_use_case(db=db, vehicle_id=make.vehicle(status="sold").id)
    assert exc.value.code == "VEHICLE_NOT_DELETABLE"

    repaired = make.vehicle()
    order = create_repair_order_use_case(
        db=db,
        payload=RepairOrderCreate(vehicle_id=repaired.id, mechanic_id=make.user(role="mechanic").id, description="Tune-up"),
        current_user=make.user(),
    )
    assert order.vehicle_id == repaired.id
    db.query(Vehicle).filter(Vehicle.id == repaired.id).update({"status": "available"})
    db.commit()
    with pytest.raises(InvalidStateError) as exc:
        delete_vehicle_use_case(db=db, vehicle_id=repaired.id)
    assert exc.value.code == "VEHICLE_HAS_HISTORY"

    clean = make.vehicle()
    delete_vehicle_use_case(db=db, vehicle_id=clean.id)
    db.expire_all()
    assert db.get(Vehicle, clean.id) is None


def test_list_vehicles_by_status(db, make) -> None:
    brand = make.brand()
    make.vehicle(brand=brand)
    make.vehicle(brand=brand, status="sold")
    make.vehicle()

    items, total, page, page_size = list_vehicles_use_case(db=db, status="available")
    assert total == 2
    assert all(item.status == "available" for item in items)

    _, total, _, _ = list_vehicles_use_case(db=db, brand_id=brand.id)
    assert total == 2


def test_customer_id_card_is_unique(db) -> None:
    first = create_customer_use_case(db=db, payload=CustomerCreate(name="Siti", id_card_number="3201"))
    other = create_customer_use_case(db=db, payload=CustomerCreate(name="Andi", phone="0812"))

    with pytest.raises(ConflictError):
        create_customer_use_case(db=db, payload=CustomerCreate(name="Siti Two", id_card_number="3201"))
    with pytest.raises(ConflictError):
        update_customer_use_case(db=db, customer_id=other.id, payload=CustomerUpdate(id_card_number="3201"))

    kept = update_customer_use_case(db=db, customer_id=first.id, payload=CustomerUpdate(id_card_number="3201"))
    assert kept.id_card_number == "3201"

    items, total, _, _ = list_customers_use_case(db=db, search="0812")
    assert total == 1
    assert items[0].name == "Andi"


def test_supplier_deactivation_filters_list(db) -> None:
    supplier = create_supplier_use_case(db=db, payload=SupplierCreate(name="PT Motor Jaya"))
    create_supplier_use_case(db=db, payload=SupplierCreate(name="CV Sparepart"))

    update_supplier_use_case(db=db, supplier_id=supplier.id, payload=SupplierUpdate(is_active=False))

    items, total, _, _ = list_suppliers_use_case(db=db, is_active=True)
    assert total == 1
    assert items[0].name == "CV Sparepart"

    with pytest.raises(NotFoundError):
        update_supplier_use_case(db=db, supplier_id=999, payload=SupplierUpdate(name="Ghost"))


def test_vehicle_search_filters(db, make) -> None:
    honda = make.brand("Honda")
    yamaha = make.brand("Yamaha")
    make.vehicle(brand=honda, code="VH-A", model="Vario 160", year=2023, license_plate="B 1234 XYZ")
    make.vehicle(brand=honda, code="VH-B", model="Beat", year=2019, purchase_price="900")
    make.vehicle(brand=yamaha, code="VH-C", model="NMAX", year=2021, purchase_price="2000", selling_price=Decimal("2500"))

    items, total, _, _ = list_vehicles_use_case(db=db, search="vario")
    assert [item.code for item in items] == ["VH-A"]

    items, _, _, _ = list_vehicles_use_case(db=db, search="1234")
    assert [item.code for item in items] == ["VH-A"]

    _, total, _, _ = list_vehicles_use_case(db=db, brand="hon")
    assert total == 2

    items, _, _, _ = list_vehicles_use_case(db=db, year_from=2020, year_to=2022)
    assert [item.code for item in items] == ["VH-C"]

    # The asking price is the selling price when set, otherwise HPP.
    items, _, _, _ = list_vehicles_use_case(db=db, price_min=Decimal("950"), price_max=Decimal("2400"))
    assert [item.code for item in items] == ["VH-A"]


def test_vehicle_search_sorts(db, make) -> None:
    make.vehicle(code="VH-A", year=2023, purchase_price="1000")
    make.vehicle(code="VH-B", year=2019, purchase_price="900")
    make.vehicle(code="VH-C", year=2021, purchase_price="2000", selling_price=Decimal("2500"))

    def codes(sort_by):
        return [item.code for item in list_vehicles_use_case(db=db, sort_by=sort_by)[0]]

    assert codes("price_asc") == ["VH-B", "VH-A", "VH-C"]
    assert codes("price_desc") == ["VH-C", "VH-A", "VH-B"]
    assert codes("year_asc") == ["VH-B", "VH-C", "VH-A"]
    assert codes("year_desc") == ["VH-A", "VH-C", "VH-B"]
    assert codes("oldest") == list(reversed(codes("newest")))


def test_customer_delete_is_refused_once_they_have_bought(db, make) -> None:
    buyer = make.customer(name="Siti")
    walk_in = make.customer(name="Andi")
    create_sales_transaction_use_case(
        db=db,
        payload=SalesTransactionCreate(customer_id=buyer.id, vehicle_id=make.vehicle().id, selling_price=Decimal("1500")),
        current_user=make.user(role="cashier"),
    )

    with pytest.raises(InvalidStateError) as exc:
        delete_customer_use_case(db=db, customer_id=buyer.id)
    assert exc.value.code == "CUSTOMER_HAS_TRANSACTIONS"

    delete_customer_use_case(db=db, customer_id=walk_in.id)
    db.expire_all()
    assert db.get(Customer, walk_in.id) is None
    with pytest.raises(NotFoundError):
        delete_customer_use_case(db=db, customer_id=walk_in.id)


def test_supplier_delete_is_refused_with_purchase_history(db, make) -> None:
    used = make.supplier(name="PT Motor Jaya")
    unused = make.supplier(name="CV Sparepart")
    create_purchase_transaction_use_case(
        db=db,
        payload=PurchaseTransactionCreate(
            source_type="supplier",
            source_id=used.id,
            vehicle_id=make.vehicle().id,
            purchase_price=Decimal("1000"),
        ),
        current_user=make.user(),
    )

    with pytest.raises(InvalidStateError) as exc:
        delete_supplier_use_case(db=db, supplier_id=used.id)
    assert exc.value.code == "SUPPLIER_HAS_TRANSACTIONS"

    delete_supplier_use_case(db=db, supplier_id=unused.id)
    db.expire_all()
    assert db.get(Supplier, unused.id) is None
