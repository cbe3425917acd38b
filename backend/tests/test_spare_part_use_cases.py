from __future__ import annotations

from decimal import Decimal

import pytest

from showroom.domain_errors import (
    ConflictError,
    InsufficientStockError,
    InvalidAmountError,
    InvalidStateError,
    NotFoundError,
)
from showroom.models import SparePart
from showroom.schemas import (
    BulkStockUpdateItem,
    BulkStockUpdateRequest,
    RepairOrderCreate,
    RepairSparePartRequest,
    SparePartCreate,
    SparePartUpdate,
    StockUpdateRequest,
)
from showroom.services.response_builder import spare_part_to_response
from showroom.use_cases.repair_orders import add_repair_spare_part_use_case, create_repair_order_use_case
from showroom.use_cases.spare_parts import (
    bulk_update_stock_use_case,
    check_stock_availability_use_case,
    create_spare_part_use_case,
    delete_spare_part_use_case,
    get_spare_part_by_code_use_case,
    list_categories_use_case,
    list_low_stock_use_case,
    list_spare_parts_use_case,
    update_spare_part_use_case,
    update_stock_use_case,
)


def _create_payload(**overrides) -> SparePartCreate:
    data = {
        "code": "SP-OIL",
        "name": "Engine oil",
        "category": "oil",
        "purchase_price": Decimal("40"),
        "selling_price": Decimal("55"),
        "stock_quantity": 10,
        "minimum_stock": 2,
    }
    data.update(overrides)
    return SparePartCreate(**data)


def _stock(db, part_id) -> int:
    db.expire_all()
    return db.get(SparePart, part_id).stock_quantity


def test_create_and_lookup_by_code(db) -> None:
    part = create_spare_part_use_case(db=db, payload=_create_payload())

    assert part.is_active is True
    assert get_spare_part_by_code_use_case(db=db, code="SP-OIL").id == part.id

    with pytest.raises(NotFoundError):
        get_spare_part_by_code_use_case(db=db, code="SP-NOPE")


def test_duplicate_code_conflicts(db) -> None:
    create_spare_part_use_case(db=db, payload=_create_payload())

    with pytest.raises(ConflictError) as exc:
        create_spare_part_use_case(db=db, payload=_create_payload(name="Other oil"))

    assert exc.value.code == "SPARE_PART_CODE_EXISTS"


def test_selling_price_must_cover_purchase_price(db) -> None:
    with pytest.raises(InvalidAmountError) as exc:
        create_spare_part_use_case(db=db, payload=_create_payload(selling_price=Decimal("39.99")))
    assert exc.value.code == "SPARE_PART_PRICE_BELOW_PURCHASE"

    part = create_spare_part_use_case(db=db, payload=_create_payload())
    with pytest.raises(InvalidAmountError):
        update_spare_part_use_case(
            db=db,
            spare_part_id=part.id,
            payload=SparePartUpdate(purchase_price=Decimal("60")),
        )

    updated = update_spare_part_use_case(
        db=db,
        spare_part_id=part.id,
        payload=SparePartUpdate(purchase_price=Decimal("50"), name="Synthetic oil"),
    )
    assert updated.purchase_price == Decimal("50")
    assert updated.name == "Synthetic oil"


def test_stock_subtract_cannot_go_negative(db, make) -> None:
    part = make.spare_part(stock_quantity=3)

    with pytest.raises(InsufficientStockError):
        update_stock_use_case(
            db=db,
            spare_part_id=part.id,
            payload=StockUpdateRequest(quantity=4, operation="subtract"),
        )
    assert _stock(db, part.id) == 3

    update_stock_use_case(db=db, spare_part_id=part.id, payload=StockUpdateRequest(quantity=3, operation="subtract"))
    assert _stock(db, part.id) == 0

    update_stock_use_case(db=db, spare_part_id=part.id, payload=StockUpdateRequest(quantity=7, operation="add"))
    assert _stock(db, part.id) == 7


def test_stock_update_on_missing_part_is_not_found(db) -> None:
    with pytest.raises(NotFoundError):
        update_stock_use_case(db=db, spare_part_id=123, payload=StockUpdateRequest(quantity=1, operation="add"))


def test_bulk_stock_update_is_all_or_nothing(db, make) -> None:
    plenty = make.spare_part(stock_quantity=10)
    scarce = make.spare_part(stock_quantity=1)

    with pytest.raises(InsufficientStockError):
        bulk_update_stock_use_case(
            db=db,
            payload=BulkStockUpdateRequest(
                items=[
                    BulkStockUpdateItem(spare_part_id=plenty.id, quantity=4, operation="subtract"),
                    BulkStockUpdateItem(spare_part_id=scarce.id, quantity=2, operation="subtract"),
                ]
            ),
        )

    assert _stock(db, plenty.id) == 10
    assert _stock(db, scarce.id) == 1

    parts = bulk_update_stock_use_case(
        db=db,
        payload=BulkStockUpdateRequest(
            items=[
                BulkStockUpdateItem(spare_part_id=plenty.id, quantity=4, operation="subtract"),
                BulkStockUpdateItem(spare_part_id=scarce.id, quantity=5, operation="add"),
            ]
        ),
    )
    assert {part.id: part.stock_quantity for part in parts} == {plenty.id: 6, scarce.id: 6}


def test_availability_and_low_stock(db, make) -> None:
    low = make.spare_part(stock_quantity=2, minimum_stock=2)
    empty = make.spare_part(stock_quantity=0, minimum_stock=1)
    make.spare_part(stock_quantity=9, minimum_stock=2)
    make.spare_part(stock_quantity=0, minimum_stock=5, is_active=False)

    assert check_stock_availability_use_case(db=db, spare_part_id=low.id, quantity=2) is True
    assert check_stock_availability_use_case(db=db, spare_part_id=low.id, quantity=3) is False

    low_ids = {part.id for part in list_low_stock_use_case(db=db)}
    assert low_ids == {low.id, empty.id}
    assert len(list_low_stock_use_case(db=db, limit=1)) == 1

    assert spare_part_to_response(low).is_low_stock is True


def test_list_filters(db, make) -> None:
    make.spare_part(name="Brake pad", category="brake", stock_quantity=10, minimum_stock=2)
    make.spare_part(name="Brake fluid", category="brake", stock_quantity=0, minimum_stock=2)
    make.spare_part(name="Spark plug", category="engine", stock_quantity=1, minimum_stock=3)

    items, total, _, _ = list_spare_parts_use_case(db=db, search="brake")
    assert total == 2

    _, total, _, _ = list_spare_parts_use_case(db=db, category="engine")
    assert total == 1

    items, _, _, _ = list_spare_parts_use_case(db=db, stock_status="out_of_stock")
    assert [item.name for item in items] == ["Brake fluid"]

    items, _, _, _ = list_spare_parts_use_case(db=db, stock_status="low_stock")
    assert [item.name for item in items] == ["Spark plug"]

    assert list_categories_use_case(db=db) == ["brake", "engine"]


def test_part_used_on_repair_cannot_be_deleted(db, make) -> None:
    admin = make.user()
    mechanic = make.user(role="mechanic")
    part = make.spare_part(stock_quantity=5)
    unused = make.spare_part()
    order = create_repair_order_use_case(
        db=db,
        payload=RepairOrderCreate(vehicle_id=make.vehicle().id, mechanic_id=mechanic.id, description="Oil change"),
        current_user=admin,
    )
    add_repair_spare_part_use_case(
        db=db,
        repair_order_id=order.id,
        payload=RepairSparePartRequest(spare_part_id=part.id, quantity_used=1),
    )

    with pytest.raises(InvalidStateError) as exc:
        delete_spare_part_use_case(db=db, spare_part_id=part.id)
    assert exc.value.code == "SPARE_PART_IN_USE"

    delete_spare_part_use_case(db=db, spare_part_id=unused.id)
    db.expire_all()
    assert db.get(SparePart, unused.id) is None
