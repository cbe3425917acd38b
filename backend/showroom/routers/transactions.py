"""Sales and purchase transaction endpoints."""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth import PermissionChecker
from ..database import get_db
from ..models import User
from ..schemas import (
    PaymentStatus,
    PurchasePaymentUpdate,
    PurchaseTransactionCreate,
    PurchaseTransactionListResponse,
    PurchaseTransactionResponse,
    SalesPaymentUpdate,
    SalesTransactionCreate,
    SalesTransactionListResponse,
    SalesTransactionResponse,
    SalesTransactionUpdate,
)
from ..services.pagination import total_pages
from ..use_cases.transactions import (
    create_purchase_transaction_use_case,
    create_sales_transaction_use_case,
    delete_sales_transaction_use_case,
    get_purchase_transaction_use_case,
    get_sales_transaction_use_case,
    list_purchase_transactions_use_case,
    list_sales_transactions_use_case,
    update_purchase_payment_use_case,
    update_sales_payment_use_case,
    update_sales_transaction_use_case,
)

router = APIRouter(prefix="/transactions", tags=["transactions"])

_sales = [Depends(PermissionChecker("canProcessSales"))]
_purchases = [Depends(PermissionChecker("canProcessPurchases"))]


@router.get("/sales", response_model=SalesTransactionListResponse, dependencies=_sales)
def get_sales_transactions(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    payment_status: Optional[PaymentStatus] = None,
    page: int = Query(1),
    page_size: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    items, total, page, page_size = list_sales_transactions_use_case(
        db=db,
        date_from=date_from,
        date_to=date_to,
        payment_status=payment_status,
        page=page,
        page_size=page_size,
    )
    return SalesTransactionListResponse(
        items=[SalesTransactionResponse.model_validate(item) for item in items],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages(total, page_size),
    )


@router.post("/sales", response_model=SalesTransactionResponse, status_code=status.HTTP_201_CREATED)
def create_sales_transaction(
    data: SalesTransactionCreate,
    current_user: User = Depends(PermissionChecker("canProcessSales")),
    db: Session = Depends(get_db),
):
    """Sell an available vehicle to a customer."""
    return create_sales_transaction_use_case(db=db, payload=data, current_user=current_user)


@router.get("/sales/{transaction_id}", response_model=SalesTransactionResponse, dependencies=_sales)
def get_sales_transaction(transaction_id: int, db: Session = Depends(get_db)):
    return get_sales_transaction_use_case(db=db, transaction_id=transaction_id)


@router.put("/sales/{transaction_id}", response_model=SalesTransactionResponse, dependencies=_sales)
def update_sales_transaction(
    transaction_id: int,
    data: SalesTransactionUpdate,
    db: Session = Depends(get_db),
):
    return update_sales_transaction_use_case(db=db, transaction_id=transaction_id, payload=data)


@router.delete(
    "/sales/{transaction_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(PermissionChecker("canDeleteRecords"))],
)
def delete_sales_transaction(transaction_id: int, db: Session = Depends(get_db)):
    """Void a sale; the vehicle becomes available again."""
    delete_sales_transaction_use_case(db=db, transaction_id=transaction_id)


@router.put("/sales/{transaction_id}/payment", response_model=SalesTransactionResponse, dependencies=_sales)
def update_sales_payment(
    transaction_id: int,
    data: SalesPaymentUpdate,
    db: Session = Depends(get_db),
):
    return update_sales_payment_use_case(db=db, transaction_id=transaction_id, payload=data)


@router.get("/purchases", response_model=PurchaseTransactionListResponse, dependencies=_purchases)
def get_purchase_transactions(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    page: int = Query(1),
    page_size: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    items, total, page, page_size = list_purchase_transactions_use_case(
        db=db,
        date_from=date_from,
        date_to=date_to,
        page=page,
        page_size=page_size,
    )
    return PurchaseTransactionListResponse(
        items=[PurchaseTransactionResponse.model_validate(item) for item in items],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages(total, page_size),
    )


@router.post("/purchases", response_model=PurchaseTransactionResponse, status_code=status.HTTP_201_CREATED)
def create_purchase_transaction(
    data: PurchaseTransactionCreate,
    current_user: User = Depends(PermissionChecker("canProcessPurchases")),
    db: Session = Depends(get_db),
):
    """Record the acquisition of a vehicle from a customer or supplier."""
    return create_purchase_transaction_use_case(db=db, payload=data, current_user=current_user)


@router.get("/purchases/{transaction_id}", response_model=PurchaseTransactionResponse, dependencies=_purchases)
def get_purchase_transaction(transaction_id: int, db: Session = Depends(get_db)):
    return get_purchase_transaction_use_case(db=db, transaction_id=transaction_id)


@router.put(
    "/purchases/{transaction_id}/payment",
    response_model=PurchaseTransactionResponse,
    dependencies=_purchases,
)
def update_purchase_payment(
    transaction_id: int,
    data: PurchasePaymentUpdate,
    db: Session = Depends(get_db),
):
    return update_purchase_payment_use_case(db=db, transaction_id=transaction_id, payload=data)
