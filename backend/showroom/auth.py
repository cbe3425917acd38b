"""Authentication and authorization."""
from datetime import timedelta
from typing import Optional
import logging
import secrets
import time
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from .config import settings
from .database import get_db
from .models import User

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
logger = logging.getLogger(__name__)

# Bearer token scheme
security = HTTPBearer()

TEMP_PASSWORD_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz23456789"


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def generate_temporary_password(length: int | None = None) -> str:
    """Generate a temporary password for an admin reset (returned only once)."""
    size = max(length or settings.TEMP_PASSWORD_LENGTH, settings.PASSWORD_MIN_LENGTH)
    return "".join(secrets.choice(TEMP_PASSWORD_ALPHABET) for _ in range(size))


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Invalid/corrupted hash should not crash login flow.
        logger.exception("Password verification failed due to invalid hash format")
        return False


def get_password_hash(password: str) -> str:
    """Hash password."""
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    to_encode = data.copy()
    now = int(time.time())
    if expires_delta:
        exp = now + int(expires_delta.total_seconds())
    else:
        exp = now + int(settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES) * 60
    to_encode.update({"exp": exp, "iat": now, "type": "access"})
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode JWT token."""
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise _credentials_error()


def _parse_token_subject(payload: dict) -> int:
    """Parse and validate JWT subject as a user id."""
    sub = payload.get("sub")
    if not sub:
        raise _credentials_error()
    try:
        return int(sub)
    except (TypeError, ValueError):
        raise _credentials_error()


def authenticate_user(db: Session, username: str, password: str) -> Optional[User]:
    user = db.query(User).filter(User.username == username).first()
    if user is None or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user."""
    payload = decode_token(credentials.credentials)

    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type"
        )

    user_id = _parse_token_subject(payload)
    user = db.query(User).filter(User.id == user_id, User.is_active.is_(True)).first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive"
        )
    return user


# Permission checks
class PermissionChecker:
    """Check user permissions based on role."""

    def __init__(self, required_permission: str):
        self.required_permission = required_permission

    def __call__(self, current_user: User = Depends(get_current_user)):
        """Check if user has required permission."""
        if not check_permission(current_user, self.required_permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: {self.required_permission} required"
            )
        return current_user


# Role permissions matrix
ROLE_PERMISSIONS = {
    "admin": {
        "canManageVehicles": True,
        "canManageInventory": True,
        "canViewInventory": True,
        "canAssignRepairs": True,
        "canWorkRepairs": True,
        "canViewRepairs": True,
        "canDeleteRepairs": True,
        "canProcessSales": True,
        "canProcessPurchases": True,
        "canManageDirectory": True,
        "canViewReports": True,
        "canCloseBooks": True,
        "canManageUsers": True,
        "canDeleteRecords": True,
    },
    "cashier": {
        "canManageVehicles": True,
        "canManageInventory": False,
        "canViewInventory": True,
        "canAssignRepairs": True,
        "canWorkRepairs": False,
        "canViewRepairs": True,
        "canDeleteRepairs": False,
        "canProcessSales": True,
        "canProcessPurchases": True,
        "canManageDirectory": True,
        "canViewReports": True,
        "canCloseBooks": True,
        "canManageUsers": False,
        "canDeleteRecords": False,
    },
    "mechanic": {
        "canManageVehicles": False,
        "canManageInventory": False,
        "canViewInventory": True,
        "canAssignRepairs": False,
        "canWorkRepairs": True,
        "canViewRepairs": True,
        "canDeleteRepairs": False,
        "canProcessSales": False,
        "canProcessPurchases": False,
        "canManageDirectory": False,
        "canViewReports": False,
        "canCloseBooks": False,
        "canManageUsers": False,
        "canDeleteRecords": False,
    },
}


def check_permission(user: User, permission: str) -> bool:
    """Check if user has specific permission."""
    permissions = ROLE_PERMISSIONS.get(user.role, {})
    return permissions.get(permission, False)
