"""Directory endpoints: customers, suppliers and the mechanic roster."""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth import PermissionChecker, get_current_user
from ..database import get_db
from ..models import User
from ..repositories import UserRepository
from ..schemas import (
    CustomerCreate,
    CustomerListResponse,
    CustomerResponse,
    CustomerUpdate,
    SupplierCreate,
    SupplierListResponse,
    SupplierResponse,
    SupplierUpdate,
    UserBrief,
)
from ..services.pagination import total_pages
from ..use_cases.parties import (
    create_customer_use_case,
    create_supplier_use_case,
    delete_customer_use_case,
    delete_supplier_use_case,
    get_customer_or_404,
    get_supplier_or_404,
    list_customers_use_case,
    list_suppliers_use_case,
    update_customer_use_case,
    update_supplier_use_case,
)

router = APIRouter(tags=["directory"])

_manage = [Depends(PermissionChecker("canManageDirectory"))]
_delete = [Depends(PermissionChecker("canDeleteRecords"))]


@router.get("/customers", response_model=CustomerListResponse, dependencies=_manage)
def get_customers(
    search: Optional[str] = None,
    page: int = Query(1),
    page_size: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    items, total, page, page_size = list_customers_use_case(db=db, search=search, page=page, page_size=page_size)
    return CustomerListResponse(
        items=[CustomerResponse.model_validate(item) for item in items],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages(total, page_size),
    )


@router.post(
    "/customers",
    response_model=CustomerResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=_manage,
)
def create_customer(data: CustomerCreate, db: Session = Depends(get_db)):
    return create_customer_use_case(db=db, payload=data)


@router.get("/customers/{customer_id}", response_model=CustomerResponse, dependencies=_manage)
def get_customer(customer_id: int, db: Session = Depends(get_db)):
    return get_customer_or_404(db=db, customer_id=customer_id)


@router.put("/customers/{customer_id}", response_model=CustomerResponse, dependencies=_manage)
def update_customer(customer_id: int, data: CustomerUpdate, db: Session = Depends(get_db)):
    return update_customer_use_case(db=db, customer_id=customer_id, payload=data)


@router.delete("/customers/{customer_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=_delete)
def delete_customer(customer_id: int, db: Session = Depends(get_db)):
    delete_customer_use_case(db=db, customer_id=customer_id)


@router.get("/suppliers", response_model=SupplierListResponse, dependencies=_manage)
def get_suppliers(
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    page: int = Query(1),
    page_size: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    items, total, page, page_size = list_suppliers_use_case(
        db=db,
        search=search,
        is_active=is_active,
        page=page,
        page_size=page_size,
    )
    return SupplierListResponse(
        items=[SupplierResponse.model_validate(item) for item in items],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages(total, page_size),
    )


@router.post(
    "/suppliers",
    response_model=SupplierResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=_manage,
)
def create_supplier(data: SupplierCreate, db: Session = Depends(get_db)):
    return create_supplier_use_case(db=db, payload=data)


@router.get("/suppliers/{supplier_id}", response_model=SupplierResponse, dependencies=_manage)
def get_supplier(supplier_id: int, db: Session = Depends(get_db)):
    return get_supplier_or_404(db=db, supplier_id=supplier_id)


@router.put("/suppliers/{supplier_id}", response_model=SupplierResponse, dependencies=_manage)
def update_supplier(supplier_id: int, data: SupplierUpdate, db: Session = Depends(get_db)):
    return update_supplier_use_case(db=db, supplier_id=supplier_id, payload=data)


@router.delete("/suppliers/{supplier_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=_delete)
def delete_supplier(supplier_id: int, db: Session = Depends(get_db)):
    delete_supplier_use_case(db=db, supplier_id=supplier_id)


@router.get("/directory/mechanics", response_model=list[UserBrief])
def list_mechanics(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Active mechanics, for assigning repair orders."""
    return [UserBrief.model_validate(user) for user in UserRepository(db).list_active_mechanics()]
