"""Sales and purchase transaction use-cases."""
from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session, joinedload

from ..database import atomic
from ..domain_errors import ConflictError, InvalidAmountError, InvalidStateError, NotFoundError
from ..models import DailyClosing, MonthlyClosing, PurchaseTransaction, SalesTransaction, User
from ..repositories import VehicleRepository
from ..schemas import (
    PurchasePaymentUpdate,
    PurchaseTransactionCreate,
    SalesPaymentUpdate,
    SalesTransactionCreate,
    SalesTransactionUpdate,
)
from ..services.document_codes import next_purchase_invoice, next_sales_invoice, retry_on_number_collision
from ..services.pagination import normalize_page, page_offset
from ..services.repair_rules import ZERO, now_utc
from .parties import get_customer_or_404, get_supplier_or_404

logger = logging.getLogger(__name__)


def derive_payment_status(*, down_payment: Decimal, remaining_payment: Decimal) -> str:
    """pending before any money is received, partial while a balance remains, else paid."""
    if Decimal(down_payment) <= ZERO:
        return "pending"
    if Decimal(remaining_payment) > ZERO:
        return "partial"
    return "paid"


def _get_sales_or_404(*, db: Session, transaction_id: int, for_update: bool = False) -> SalesTransaction:
    query = db.query(SalesTransaction).filter(SalesTransaction.id == transaction_id)
    if for_update:
        query = query.with_for_update()
    else:
        query = query.options(joinedload(SalesTransaction.customer), joinedload(SalesTransaction.vehicle))
    transaction = query.first()
    if not transaction:
        raise NotFoundError(
            code="SALES_TRANSACTION_NOT_FOUND",
            message="Sales transaction not found",
            details={"transaction_id": transaction_id},
        )
    return transaction


def _get_purchase_or_404(*, db: Session, transaction_id: int, for_update: bool = False) -> PurchaseTransaction:
    query = db.query(PurchaseTransaction).filter(PurchaseTransaction.id == transaction_id)
    if for_update:
        query = query.with_for_update()
    else:
        query = query.options(joinedload(PurchaseTransaction.vehicle))
    transaction = query.first()
    if not transaction:
        raise NotFoundError(
            code="PURCHASE_TRANSACTION_NOT_FOUND",
            message="Purchase transaction not found",
            details={"transaction_id": transaction_id},
        )
    return transaction


def _record_sale(*, db: Session, payload: SalesTransactionCreate, current_user: User) -> int:
    vehicles = VehicleRepository(db)

    with atomic(db, operation="create sales transaction"):
        vehicle = vehicles.require(payload.vehicle_id, for_update=True)
        get_customer_or_404(db=db, customer_id=payload.customer_id)

        if vehicle.status != "available":
            raise ConflictError(
                code="VEHICLE_NOT_AVAILABLE",
                message="Vehicle is not available for sale",
                details={"vehicle_id": vehicle.id, "status": vehicle.status},
            )
        hpp_price = Decimal(vehicle.hpp_price)
        selling_price = Decimal(payload.selling_price)
        if selling_price < hpp_price:
            raise InvalidAmountError(
                code="SALE_PRICE_BELOW_HPP",
                message="Selling price must not be lower than HPP",
                details={"hpp_price": str(hpp_price), "selling_price": str(selling_price)},
            )
        down_payment = Decimal(payload.down_payment)
        if down_payment > selling_price:
            raise InvalidAmountError(
                code="DOWN_PAYMENT_EXCEEDS_PRICE",
                message="Down payment must not exceed selling price",
                details={"down_payment": str(down_payment), "selling_price": str(selling_price)},
            )

        remaining = selling_price - down_payment
        sold_at = now_utc()
        transaction_date = payload.transaction_date or date.today()
        transaction = SalesTransaction(
            invoice_number=next_sales_invoice(db=db, on=transaction_date),
            transaction_date=transaction_date,
            customer_id=payload.customer_id,
            vehicle_id=vehicle.id,
            hpp_price=hpp_price,
            selling_price=selling_price,
            profit=selling_price - hpp_price,
            payment_method=payload.payment_method,
            payment_status=payload.payment_status
            or derive_payment_status(down_payment=down_payment, remaining_payment=remaining),
            down_payment=down_payment,
            remaining_payment=remaining,
            notes=payload.notes,
            processed_by_id=current_user.id,
        )
        db.add(transaction)
        vehicles.mark_as_sold(vehicle, sold_price=selling_price, sold_at=sold_at)
        db.flush()
        transaction_id = transaction.id

    logger.info("Sales %s recorded for vehicle %s", transaction.invoice_number, vehicle.code)
    return transaction_id


def create_sales_transaction_use_case(
    *,
    db: Session,
    payload: SalesTransactionCreate,
    current_user: User,
) -> SalesTransaction:
    """Sell a vehicle: record the invoice and mark the vehicle sold in one transaction."""
    transaction_id = retry_on_number_collision(
        lambda: _record_sale(db=db, payload=payload, current_user=current_user),
        column=SalesTransaction.invoice_number,
    )
    return _get_sales_or_404(db=db, transaction_id=transaction_id)


def _record_purchase(*, db: Session, payload: PurchaseTransactionCreate, current_user: User) -> int:
    with atomic(db, operation="create purchase transaction"):
        vehicle = VehicleRepository(db).require(payload.vehicle_id)
        if vehicle.status == "sold":
            raise ConflictError(
                code="VEHICLE_ALREADY_SOLD",
                message="Vehicle is already sold",
                details={"vehicle_id": vehicle.id},
            )
        if payload.source_type == "customer":
            get_customer_or_404(db=db, customer_id=payload.source_id)
        else:
            get_supplier_or_404(db=db, supplier_id=payload.source_id)

        transaction_date = payload.transaction_date or date.today()
        transaction = PurchaseTransaction(
            invoice_number=next_purchase_invoice(db=db, on=transaction_date),
            transaction_date=transaction_date,
            source_type=payload.source_type,
            source_id=payload.source_id,
            vehicle_id=vehicle.id,
            purchase_price=payload.purchase_price,
            payment_method=payload.payment_method,
            payment_status=payload.payment_status,
            notes=payload.notes,
            processed_by_id=current_user.id,
        )
        db.add(transaction)
        db.flush()
        transaction_id = transaction.id

    logger.info("Purchase %s recorded for vehicle %s", transaction.invoice_number, vehicle.code)
    return transaction_id


def create_purchase_transaction_use_case(
    *,
    db: Session,
    payload: PurchaseTransactionCreate,
    current_user: User,
) -> PurchaseTransaction:
    """Record an acquisition; the vehicle's status is left as it is."""
    transaction_id = retry_on_number_collision(
        lambda: _record_purchase(db=db, payload=payload, current_user=current_user),
        column=PurchaseTransaction.invoice_number,
    )
    return _get_purchase_or_404(db=db, transaction_id=transaction_id)


def get_sales_transaction_use_case(*, db: Session, transaction_id: int) -> SalesTransaction:
    return _get_sales_or_404(db=db, transaction_id=transaction_id)


def get_purchase_transaction_use_case(*, db: Session, transaction_id: int) -> PurchaseTransaction:
    return _get_purchase_or_404(db=db, transaction_id=transaction_id)


def list_sales_transactions_use_case(
    *,
    db: Session,
    date_from: date | None = None,
    date_to: date | None = None,
    payment_status: str | None = None,
    page: int | None = 1,
    page_size: int | None = None,
) -> tuple[list[SalesTransaction], int, int, int]:
    page, page_size = normalize_page(page, page_size)
    query = db.query(SalesTransaction)
    if date_from:
        query = query.filter(SalesTransaction.transaction_date >= date_from)
    if date_to:
        query = query.filter(SalesTransaction.transaction_date <= date_to)
    if payment_status:
        query = query.filter(SalesTransaction.payment_status == payment_status)
    total = query.count()
    items = (
        query.options(joinedload(SalesTransaction.customer), joinedload(SalesTransaction.vehicle))
        .order_by(SalesTransaction.transaction_date.desc(), SalesTransaction.id.desc())
        .offset(page_offset(page, page_size))
        .limit(page_size)
        .all()
    )
    return items, total, page, page_size


def list_purchase_transactions_use_case(
    *,
    db: Session,
    date_from: date | None = None,
    date_to: date | None = None,
    page: int | None = 1,
    page_size: int | None = None,
) -> tuple[list[PurchaseTransaction], int, int, int]:
    page, page_size = normalize_page(page, page_size)
    query = db.query(PurchaseTransaction)
    if date_from:
        query = query.filter(PurchaseTransaction.transaction_date >= date_from)
    if date_to:
        query = query.filter(PurchaseTransaction.transaction_date <= date_to)
    total = query.count()
    items = (
        query.options(joinedload(PurchaseTransaction.vehicle))
        .order_by(PurchaseTransaction.transaction_date.desc(), PurchaseTransaction.id.desc())
        .offset(page_offset(page, page_size))
        .limit(page_size)
        .all()
    )
    return items, total, page, page_size


def update_sales_payment_use_case(
    *,
    db: Session,
    transaction_id: int,
    payload: SalesPaymentUpdate,
) -> SalesTransaction:
    """Record a payment change; the split must always reconcile to the selling price."""
    with atomic(db, operation="update sales payment"):
        transaction = _get_sales_or_404(db=db, transaction_id=transaction_id, for_update=True)
        selling_price = Decimal(transaction.selling_price)
        down_payment = payload.down_payment
        remaining = payload.remaining_payment

        if down_payment is not None and remaining is None:
            remaining = selling_price - Decimal(down_payment)
        elif remaining is not None and down_payment is None:
            down_payment = selling_price - Decimal(remaining)

        if down_payment is not None:
            down_payment, remaining = Decimal(down_payment), Decimal(remaining)
            if down_payment + remaining != selling_price or min(down_payment, remaining) < ZERO:
                raise InvalidAmountError(
                    code="PAYMENT_SPLIT_MISMATCH",
                    message="Down payment plus remaining payment must equal selling price",
                    details={
                        "selling_price": str(selling_price),
                        "down_payment": str(down_payment),
                        "remaining_payment": str(remaining),
                    },
                )
            transaction.down_payment = down_payment
            transaction.remaining_payment = remaining

        transaction.payment_status = payload.payment_status
        if payload.notes is not None:
            transaction.notes = payload.notes

    logger.info("Sales %s payment status -> %s", transaction.invoice_number, payload.payment_status)
    return _get_sales_or_404(db=db, transaction_id=transaction_id)


def update_purchase_payment_use_case(
    *,
    db: Session,
    transaction_id: int,
    payload: PurchasePaymentUpdate,
) -> PurchaseTransaction:
    with atomic(db, operation="update purchase payment"):
        transaction = _get_purchase_or_404(db=db, transaction_id=transaction_id, for_update=True)
        transaction.payment_status = payload.payment_status
        if payload.notes is not None:
            transaction.notes = payload.notes
    return _get_purchase_or_404(db=db, transaction_id=transaction_id)


def _ensure_period_open(*, db: Session, transaction: SalesTransaction) -> None:
    """Closed days and months are frozen; their sales can no longer change."""
    on = transaction.transaction_date
    closed = (
        db.query(DailyClosing.id).filter(DailyClosing.closing_date == on).first()
        or db.query(MonthlyClosing.id).filter(MonthlyClosing.year == on.year, MonthlyClosing.month == on.month).first()
    )
    if closed:
        raise InvalidStateError(
            code="SALES_PERIOD_CLOSED",
            message="The sale belongs to a closed period",
            details={"transaction_id": transaction.id, "transaction_date": on.isoformat()},
        )


def update_sales_transaction_use_case(
    *,
    db: Session,
    transaction_id: int,
    payload: SalesTransactionUpdate,
) -> SalesTransaction:
    """Correct a sale; profit and remaining payment follow the new price and down payment."""
    with atomic(db, operation="update sales transaction"):
        transaction = _get_sales_or_404(db=db, transaction_id=transaction_id, for_update=True)
        _ensure_period_open(db=db, transaction=transaction)

        hpp_price = Decimal(transaction.hpp_price)
        selling_price = Decimal(
            payload.selling_price if payload.selling_price is not None else transaction.selling_price
        )
        down_payment = Decimal(payload.down_payment if payload.down_payment is not None else transaction.down_payment)
        if selling_price < hpp_price:
            raise InvalidAmountError(
                code="SALE_PRICE_BELOW_HPP",
                message="Selling price must not be lower than HPP",
                details={"hpp_price": str(hpp_price), "selling_price": str(selling_price)},
            )
        if down_payment > selling_price:
            raise InvalidAmountError(
                code="DOWN_PAYMENT_EXCEEDS_PRICE",
                message="Down payment must not exceed selling price",
                details={"down_payment": str(down_payment), "selling_price": str(selling_price)},
            )

        amounts_changed = payload.selling_price is not None or payload.down_payment is not None
        remaining = selling_price - down_payment
        transaction.selling_price = selling_price
        transaction.profit = selling_price - hpp_price
        transaction.down_payment = down_payment
        transaction.remaining_payment = remaining
        if payload.payment_status is not None:
            transaction.payment_status = payload.payment_status
        elif amounts_changed:
            transaction.payment_status = derive_payment_status(down_payment=down_payment, remaining_payment=remaining)
        if payload.payment_method is not None:
            transaction.payment_method = payload.payment_method
        if payload.notes is not None:
            transaction.notes = payload.notes

        if payload.selling_price is not None:
            vehicle = VehicleRepository(db).require(transaction.vehicle_id, for_update=True)
            vehicle.sold_price = selling_price

    logger.info("Sales %s updated", transaction.invoice_number)
    return _get_sales_or_404(db=db, transaction_id=transaction_id)


def delete_sales_transaction_use_case(*, db: Session, transaction_id: int) -> None:
    """Void a sale and put its vehicle back on the floor in the same transaction."""
    vehicles = VehicleRepository(db)
    with atomic(db, operation="delete sales transaction"):
        transaction = _get_sales_or_404(db=db, transaction_id=transaction_id, for_update=True)
        _ensure_period_open(db=db, transaction=transaction)
        vehicle = vehicles.require(transaction.vehicle_id, for_update=True)
        invoice_number = transaction.invoice_number
        db.delete(transaction)
        db.flush()
        vehicles.revert_sale(vehicle)

    logger.info("Sales %s voided, vehicle %s is available again", invoice_number, vehicle.code)
