"""User management endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth import PermissionChecker
from ..database import get_db
from ..models import User
from ..schemas import (
    ResetPasswordRequest,
    ResetPasswordResponse,
    UserCreate,
    UserListResponse,
    UserResponse,
    UserRole,
    UserUpdate,
)
from ..services.pagination import total_pages
from ..use_cases.users import (
    create_user_use_case,
    delete_user_use_case,
    get_user_or_404,
    list_users_by_role_use_case,
    list_users_use_case,
    reset_password_use_case,
    toggle_user_status_use_case,
    update_user_use_case,
)

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=UserListResponse)
def get_users(
    search: Optional[str] = None,
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = None,
    page: int = Query(1),
    page_size: Optional[int] = Query(None),
    current_user: User = Depends(PermissionChecker("canManageUsers")),
    db: Session = Depends(get_db),
):
    """Get all users."""
    items, total, page, page_size = list_users_use_case(
        db=db, search=search, role=role, is_active=is_active, page=page, page_size=page_size
    )
    return UserListResponse(
        items=[UserResponse.model_validate(item) for item in items],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages(total, page_size),
    )


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    data: UserCreate,
    current_user: User = Depends(PermissionChecker("canManageUsers")),
    db: Session = Depends(get_db),
):
    return create_user_use_case(db=db, payload=data)


@router.get("/by-role/{role}", response_model=list[UserResponse])
def get_users_by_role(
    role: UserRole,
    active_only: bool = False,
    current_user: User = Depends(PermissionChecker("canManageUsers")),
    db: Session = Depends(get_db),
):
    """Get users by role."""
    return [UserResponse.model_validate(u) for u in list_users_by_role_use_case(db=db, role=role, active_only=active_only)]


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    current_user: User = Depends(PermissionChecker("canManageUsers")),
    db: Session = Depends(get_db),
):
    """Get user by ID."""
    return get_user_or_404(db=db, user_id=user_id)


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    data: UserUpdate,
    current_user: User = Depends(PermissionChecker("canManageUsers")),
    db: Session = Depends(get_db),
):
    return update_user_use_case(db=db, user_id=user_id, payload=data, current_user=current_user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    current_user: User = Depends(PermissionChecker("canManageUsers")),
    db: Session = Depends(get_db),
):
    delete_user_use_case(db=db, user_id=user_id, current_user=current_user)


@router.post("/{user_id}/toggle-status", response_model=UserResponse)
def toggle_user_status(
    user_id: int,
    current_user: User = Depends(PermissionChecker("canManageUsers")),
    db: Session = Depends(get_db),
):
    return toggle_user_status_use_case(db=db, user_id=user_id, current_user=current_user)


@router.post("/{user_id}/reset-password", response_model=ResetPasswordResponse)
def reset_password(
    user_id: int,
    data: ResetPasswordRequest,
    current_user: User = Depends(PermissionChecker("canManageUsers")),
    db: Session = Depends(get_db),
):
    """Admin password reset; a temporary password is generated when none is given."""
    user, temporary_password = reset_password_use_case(db=db, user_id=user_id, new_password=data.new_password)
    return ResetPasswordResponse(user=UserResponse.model_validate(user), temporary_password=temporary_password)
