"""Customer and supplier directory use-cases."""
from __future__ import annotations

import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..database import atomic
from ..domain_errors import ConflictError, InvalidStateError, NotFoundError
from ..models import Customer, PurchaseTransaction, SalesTransaction, Supplier, Vehicle
from ..schemas import CustomerCreate, CustomerUpdate, SupplierCreate, SupplierUpdate
from ..services.pagination import normalize_page, page_offset

logger = logging.getLogger(__name__)


def get_customer_or_404(*, db: Session, customer_id: int) -> Customer:
    customer = db.query(Customer).filter(Customer.id == customer_id).first()
    if not customer:
        raise NotFoundError(
            code="CUSTOMER_NOT_FOUND",
            message="Customer not found",
            details={"customer_id": customer_id},
        )
    return customer


def get_supplier_or_404(*, db: Session, supplier_id: int) -> Supplier:
    supplier = db.query(Supplier).filter(Supplier.id == supplier_id).first()
    if not supplier:
        raise NotFoundError(
            code="SUPPLIER_NOT_FOUND",
            message="Supplier not found",
            details={"supplier_id": supplier_id},
        )
    return supplier


def _ensure_unique_id_card(*, db: Session, id_card_number: str | None, exclude_id: int | None = None) -> None:
    if not id_card_number:
        return
    query = db.query(Customer.id).filter(Customer.id_card_number == id_card_number)
    if exclude_id is not None:
        query = query.filter(Customer.id != exclude_id)
    if query.first():
        raise ConflictError(
            code="CUSTOMER_ID_CARD_EXISTS",
            message="A customer with this ID card number already exists",
            details={"id_card_number": id_card_number},
        )


def create_customer_use_case(*, db: Session, payload: CustomerCreate) -> Customer:
    with atomic(db, operation="create customer"):
        _ensure_unique_id_card(db=db, id_card_number=payload.id_card_number)
        customer = Customer(**payload.model_dump())
        db.add(customer)
    return customer


def update_customer_use_case(*, db: Session, customer_id: int, payload: CustomerUpdate) -> Customer:
    changes = {key: value for key, value in payload.model_dump(exclude_unset=True).items() if value is not None}
    with atomic(db, operation="update customer"):
        customer = get_customer_or_404(db=db, customer_id=customer_id)
        _ensure_unique_id_card(db=db, id_card_number=changes.get("id_card_number"), exclude_id=customer.id)
        for field, value in changes.items():
            setattr(customer, field, value)
    return customer


def list_customers_use_case(
    *,
    db: Session,
    search: str | None = None,
    page: int | None = 1,
    page_size: int | None = None,
) -> tuple[list[Customer], int, int, int]:
    page, page_size = normalize_page(page, page_size)
    query = db.query(Customer)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(Customer.name.ilike(pattern), Customer.phone.ilike(pattern)))
    total = query.count()
    items = query.order_by(Customer.name, Customer.id).offset(page_offset(page, page_size)).limit(page_size).all()
    return items, total, page, page_size


def delete_customer_use_case(*, db: Session, customer_id: int) -> None:
    """Remove a customer nobody has traded with yet."""
    with atomic(db, operation="delete customer"):
        customer = get_customer_or_404(db=db, customer_id=customer_id)
        in_use = (
            db.query(SalesTransaction.id).filter(SalesTransaction.customer_id == customer.id).first()
            or db.query(PurchaseTransaction.id)
            .filter(PurchaseTransaction.source_type == "customer", PurchaseTransaction.source_id == customer.id)
            .first()
            or db.query(Vehicle.id)
            .filter(Vehicle.source_type == "customer", Vehicle.source_id == customer.id)
            .first()
        )
        if in_use:
            raise InvalidStateError(
                code="CUSTOMER_HAS_TRANSACTIONS",
                message="Customer has transactions or traded-in vehicles and cannot be deleted",
                details={"customer_id": customer.id},
            )
        name = customer.name
        db.delete(customer)
    logger.info("Customer %s deleted", name)


def create_supplier_use_case(*, db: Session, payload: SupplierCreate) -> Supplier:
    with atomic(db, operation="create supplier"):
        supplier = Supplier(**payload.model_dump(), is_active=True)
        db.add(supplier)
    return supplier


def update_supplier_use_case(*, db: Session, supplier_id: int, payload: SupplierUpdate) -> Supplier:
    with atomic(db, operation="update supplier"):
        supplier = get_supplier_or_404(db=db, supplier_id=supplier_id)
        for field, value in payload.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(supplier, field, value)
    return supplier


def list_suppliers_use_case(
    *,
    db: Session,
    search: str | None = None,
    is_active: bool | None = None,
    page: int | None = 1,
    page_size: int | None = None,
) -> tuple[list[Supplier], int, int, int]:
    page, page_size = normalize_page(page, page_size)
    query = db.query(Supplier)
    if search:
        query = query.filter(Supplier.name.ilike(f"%{search.strip()}%"))
    if is_active is not None:
        query = query.filter(Supplier.is_active.is_(is_active))
    total = query.count()
    items = query.order_by(Supplier.name, Supplier.id).offset(page_offset(page, page_size)).limit(page_size).all()
    return items, total, page, page_size


def delete_supplier_use_case(*, db: Session, supplier_id: int) -> None:
    """Remove a supplier with no purchase history; others can only be deactivated."""
    with atomic(db, operation="delete supplier"):
        supplier = get_supplier_or_404(db=db, supplier_id=supplier_id)
        in_use = (
            db.query(PurchaseTransaction.id)
            .filter(PurchaseTransaction.source_type == "supplier", PurchaseTransaction.source_id == supplier.id)
            .first()
            or db.query(Vehicle.id).filter(Vehicle.source_type == "supplier", Vehicle.source_id == supplier.id).first()
        )
        if in_use:
            raise InvalidStateError(
                code="SUPPLIER_HAS_TRANSACTIONS",
                message="Supplier has purchase history; deactivate it instead",
                details={"supplier_id": supplier.id},
            )
        name = supplier.name
        db.delete(supplier)
    logger.info("Supplier %s deleted", name)
