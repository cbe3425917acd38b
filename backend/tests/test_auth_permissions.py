from __future__ import annotations

from datetime import timedelta
from types import SimpleNamespace

import pytest
from fastapi import HTTPException

from showroom.auth import (
    ROLE_PERMISSIONS,
    PermissionChecker,
    authenticate_user,
    check_permission,
    create_access_token,
    decode_token,
    get_password_hash,
    verify_password,
)

PERMISSION_KEYS = set(ROLE_PERMISSIONS["admin"])


def test_every_role_defines_the_same_permission_keys() -> None:
    for role, permissions in ROLE_PERMISSIONS.items():
        assert set(permissions) == PERMISSION_KEYS, role


def test_admin_can_do_everything() -> None:
    assert all(ROLE_PERMISSIONS["admin"].values())


@pytest.mark.parametrize(
    ("role", "permission", "expected"),
    [
        ("cashier", "canProcessSales", True),
        ("cashier", "canAssignRepairs", True),
        ("cashier", "canWorkRepairs", False),
        ("cashier", "canManageInventory", False),
        ("cashier", "canDeleteRepairs", False),
        ("mechanic", "canWorkRepairs", True),
        ("mechanic", "canViewInventory", True),
        ("mechanic", "canProcessSales", False),
        ("mechanic", "canManageVehicles", False),
        ("mechanic", "canCloseBooks", False),
        ("cashier", "canManageUsers", False),
        ("mechanic", "canManageUsers", False),
        ("cashier", "canDeleteRecords", False),
    ],
)
def test_role_permission_matrix(role: str, permission: str, expected: bool) -> None:
    assert check_permission(SimpleNamespace(role=role), permission) is expected


def test_unknown_role_or_permission_is_denied() -> None:
    assert check_permission(SimpleNamespace(role="visitor"), "canViewRepairs") is False
    assert check_permission(SimpleNamespace(role="admin"), "canLaunchRockets") is False


def test_permission_checker_returns_user_or_forbids() -> None:
    cashier = SimpleNamespace(role="cashier")

    assert PermissionChecker("canProcessSales")(current_user=cashier) is cashier

    with pytest.raises(HTTPException) as exc:
        PermissionChecker("canWorkRepairs")(current_user=cashier)
    assert exc.value.status_code == 403


def test_access_token_round_trip() -> None:
    token = create_access_token({"sub": "7", "role": "mechanic"})
    payload = decode_token(token)

    assert payload["sub"] == "7"
    assert payload["role"] == "mechanic"
    assert payload["type"] == "access"
    assert payload["exp"] > payload["iat"]


def test_expired_or_tampered_token_is_rejected() -> None:
    expired = create_access_token({"sub": "7"}, expires_delta=timedelta(seconds=-10))
    with pytest.raises(HTTPException) as exc:
        decode_token(expired)
    assert exc.value.status_code == 401

    with pytest.raises(HTTPException):
        decode_token(create_access_token({"sub": "7"}) + "x")


def test_password_hashing() -> None:
    hashed = get_password_hash("s3cret!")

    assert hashed != "s3cret!"
    assert verify_password("s3cret!", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("s3cret!", "not-a-bcrypt-hash")


def test_authenticate_user_skips_inactive_accounts(db, make) -> None:
    make.user(role="cashier", username="kasir", password="kasir123")
    make.user(role="cashier", username="former", password="kasir123", is_active=False)

    assert authenticate_user(db, "kasir", "kasir123").username == "kasir"
    assert authenticate_user(db, "kasir", "nope") is None
    assert authenticate_user(db, "former", "kasir123") is None
    assert authenticate_user(db, "ghost", "kasir123") is None
