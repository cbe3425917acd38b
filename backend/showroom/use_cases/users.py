"""Staff account management: CRUD, activation and passwords."""
from __future__ import annotations

import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..auth import generate_temporary_password, get_password_hash, verify_password
from ..database import atomic
from ..domain_errors import ConflictError, InvalidCredentialsError, InvalidStateError, NotFoundError
from ..models import DailyClosing, MonthlyClosing, PurchaseTransaction, RepairOrder, SalesTransaction, User, Vehicle
from ..repositories import UserRepository
from ..schemas import UserCreate, UserUpdate
from ..services.pagination import normalize_page, page_offset

logger = logging.getLogger(__name__)


def get_user_or_404(*, db: Session, user_id: int) -> User:
    user = UserRepository(db).get_by_id(user_id)
    if not user:
        raise NotFoundError(
            code="USER_NOT_FOUND",
            message="User not found",
            details={"user_id": user_id},
        )
    return user


def _ensure_unique(*, db: Session, username: str | None, email: str | None, exclude_id: int | None = None) -> None:
    users = UserRepository(db)
    if username:
        existing = users.get_by_username(username)
        if existing is not None and existing.id != exclude_id:
            raise ConflictError(
                code="USERNAME_EXISTS",
                message="Username already exists",
                details={"username": username},
            )
    if email:
        existing = users.get_by_email(email)
        if existing is not None and existing.id != exclude_id:
            raise ConflictError(
                code="USER_EMAIL_EXISTS",
                message="Email already exists",
                details={"email": email},
            )


def _ensure_not_self(*, user: User, current_user: User, action: str) -> None:
    if user.id == current_user.id:
        raise ConflictError(
            code="USER_CANNOT_CHANGE_SELF",
            message=f"You cannot {action} your own account",
            details={"user_id": user.id},
        )


def _has_history(db: Session, user_id: int) -> bool:
    references = (
        (RepairOrder.mechanic_id, RepairOrder.assigned_by_id),
        (SalesTransaction.processed_by_id,),
        (PurchaseTransaction.processed_by_id,),
        (Vehicle.created_by_id,),
        (DailyClosing.closed_by_id,),
        (MonthlyClosing.closed_by_id,),
    )
    for columns in references:
        if db.query(columns[0]).filter(or_(*(column == user_id for column in columns))).first():
            return True
    return False


def list_users_use_case(
    *,
    db: Session,
    search: str | None = None,
    role: str | None = None,
    is_active: bool | None = None,
    page: int | None = 1,
    page_size: int | None = None,
) -> tuple[list[User], int, int, int]:
    page, page_size = normalize_page(page, page_size)
    query = db.query(User)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(User.username.ilike(pattern), User.full_name.ilike(pattern), User.email.ilike(pattern))
        )
    if role:
        query = query.filter(User.role == role)
    if is_active is not None:
        query = query.filter(User.is_active.is_(is_active))
    total = query.count()
    items = query.order_by(User.full_name, User.id).offset(page_offset(page, page_size)).limit(page_size).all()
    return items, total, page, page_size


def list_users_by_role_use_case(*, db: Session, role: str, active_only: bool = False) -> list[User]:
    return UserRepository(db).list_by_role(role, active_only=active_only)


def create_user_use_case(*, db: Session, payload: UserCreate) -> User:
    username = payload.username.strip()
    with atomic(db, operation="create user"):
        _ensure_unique(db=db, username=username, email=payload.email)
        user = User(
            username=username,
            email=payload.email,
            password_hash=get_password_hash(payload.password),
            full_name=payload.full_name,
            phone=payload.phone,
            role=payload.role,
            is_active=True,
        )
        db.add(user)
    logger.info("User %s created with role %s", user.username, user.role)
    return user


def update_user_use_case(*, db: Session, user_id: int, payload: UserUpdate, current_user: User) -> User:
    changes = {key: value for key, value in payload.model_dump(exclude_unset=True).items() if value is not None}
    if "username" in changes:
        changes["username"] = changes["username"].strip()
    with atomic(db, operation="update user"):
        user = get_user_or_404(db=db, user_id=user_id)
        if changes.get("is_active") is False or changes.get("role", user.role) != user.role:
            _ensure_not_self(user=user, current_user=current_user, action="deactivate or change the role of")
        _ensure_unique(db=db, username=changes.get("username"), email=changes.get("email"), exclude_id=user.id)
        for field, value in changes.items():
            setattr(user, field, value)
    logger.info("User %s updated (%s)", user.username, ", ".join(sorted(changes)) or "no changes")
    return user


def delete_user_use_case(*, db: Session, user_id: int, current_user: User) -> None:
    """Remove an account that never did any work; others must be deactivated."""
    with atomic(db, operation="delete user"):
        user = get_user_or_404(db=db, user_id=user_id)
        _ensure_not_self(user=user, current_user=current_user, action="delete")
        if _has_history(db, user.id):
            raise InvalidStateError(
                code="USER_HAS_HISTORY",
                message="User has repair, transaction or closing records; deactivate the account instead",
                details={"user_id": user.id},
            )
        username = user.username
        db.delete(user)
    logger.info("User %s deleted", username)


def toggle_user_status_use_case(*, db: Session, user_id: int, current_user: User) -> User:
    with atomic(db, operation="toggle user status"):
        user = get_user_or_404(db=db, user_id=user_id)
        _ensure_not_self(user=user, current_user=current_user, action="deactivate")
        user.is_active = not user.is_active
    logger.info("User %s is now %s", user.username, "active" if user.is_active else "inactive")
    return user


def change_password_use_case(*, db: Session, user: User, old_password: str, new_password: str) -> User:
    if new_password == old_password:
        raise ConflictError(
            code="PASSWORD_UNCHANGED",
            message="New password must differ from current password",
        )
    if new_password.lower() == user.username.lower():
        raise ConflictError(
            code="PASSWORD_MATCHES_USERNAME",
            message="Password must not match username",
        )
    if not verify_password(old_password, user.password_hash):
        raise InvalidCredentialsError(
            code="INVALID_CURRENT_PASSWORD",
            message="Invalid current password",
        )
    with atomic(db, operation="change password"):
        user.password_hash = get_password_hash(new_password)
    logger.info("User %s changed their password", user.username)
    return user


def reset_password_use_case(*, db: Session, user_id: int, new_password: str | None = None) -> tuple[User, str | None]:
    """Set a new password for another account.

    Returns the generated temporary password when none was supplied.
    """
    temporary = None if new_password else generate_temporary_password()
    with atomic(db, operation="reset password"):
        user = get_user_or_404(db=db, user_id=user_id)
        user.password_hash = get_password_hash(new_password or temporary)
    logger.info("Password reset for user %s", user.username)
    return user, temporary
