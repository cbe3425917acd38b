from __future__ import annotations

import pytest

from showroom.auth import authenticate_user, verify_password
from showroom.domain_errors import ConflictError, InvalidCredentialsError, InvalidStateError, NotFoundError
from showroom.models import RepairOrder, User
from showroom.schemas import UserCreate, UserUpdate
from showroom.use_cases.users import (
    change_password_use_case,
    create_user_use_case,
    delete_user_use_case,
    get_user_or_404,
    list_users_by_role_use_case,
    list_users_use_case,
    reset_password_use_case,
    toggle_user_status_use_case,
    update_user_use_case,
)


def _create(db, username="kasir2", email=None, role="cashier", password="secret123") -> User:
    return create_user_use_case(
        db=db,
        payload=UserCreate(username=username, email=email, password=password, full_name="Dewi Lestari", role=role),
    )


def test_create_hashes_password_and_can_log_in(db) -> None:
    user = _create(db, email="dewi@example.com")

    assert user.is_active is True
    assert user.password_hash != "secret123"
    assert authenticate_user(db, "kasir2", "secret123").id == user.id


def test_create_rejects_duplicate_username_and_email(db) -> None:
    _create(db, email="dewi@example.com")

    with pytest.raises(ConflictError) as exc:
        _create(db, email="other@example.com")
    assert exc.value.code == "USERNAME_EXISTS"

    with pytest.raises(ConflictError) as exc:
        _create(db, username="kasir3", email="DEWI@example.com")
    assert exc.value.code == "USER_EMAIL_EXISTS"


def test_update_checks_duplicates_but_keeps_own_values(db, make) -> None:
    admin = make.user()
    first = _create(db, email="dewi@example.com")
    second = _create(db, username="kasir3", email="rina@example.com")

    with pytest.raises(ConflictError):
        update_user_use_case(db=db, user_id=second.id, payload=UserUpdate(username="kasir2"), current_user=admin)
    with pytest.raises(ConflictError):
        update_user_use_case(db=db, user_id=second.id, payload=UserUpdate(email="dewi@example.com"), current_user=admin)

    updated = update_user_use_case(
        db=db,
        user_id=first.id,
        payload=UserUpdate(username="kasir2", email="dewi@example.com", phone="0812", role="mechanic"),
        current_user=admin,
    )
    assert updated.phone == "0812"
    assert updated.role == "mechanic"

    with pytest.raises(NotFoundError):
        update_user_use_case(db=db, user_id=999, payload=UserUpdate(phone="1"), current_user=admin)


def test_admin_cannot_demote_or_deactivate_self(db, make) -> None:
    admin = make.user()

    with pytest.raises(ConflictError) as exc:
        update_user_use_case(db=db, user_id=admin.id, payload=UserUpdate(role="cashier"), current_user=admin)
    assert exc.value.code == "USER_CANNOT_CHANGE_SELF"
    with pytest.raises(ConflictError):
        toggle_user_status_use_case(db=db, user_id=admin.id, current_user=admin)

    renamed = update_user_use_case(db=db, user_id=admin.id, payload=UserUpdate(full_name="Boss"), current_user=admin)
    assert renamed.full_name == "Boss"
    assert renamed.is_active is True


def test_toggle_status_blocks_login(db, make) -> None:
    admin = make.user()
    cashier = _create(db)

    assert toggle_user_status_use_case(db=db, user_id=cashier.id, current_user=admin).is_active is False
    assert authenticate_user(db, "kasir2", "secret123") is None
    assert toggle_user_status_use_case(db=db, user_id=cashier.id, current_user=admin).is_active is True


def test_delete_only_users_without_history(db, make) -> None:
    admin = make.user()
    mechanic = make.user(role="mechanic")
    db.add(
        RepairOrder(
            code="RPR-20260309-001",
            vehicle_id=make.vehicle().id,
            mechanic_id=mechanic.id,
            assigned_by_id=admin.id,
            description="Tune-up",
            status="pending",
        )
    )
    db.commit()
    newcomer = _create(db)

    with pytest.raises(InvalidStateError) as exc:
        delete_user_use_case(db=db, user_id=mechanic.id, current_user=admin)
    assert exc.value.code == "USER_HAS_HISTORY"
    with pytest.raises(ConflictError):
        delete_user_use_case(db=db, user_id=admin.id, current_user=admin)

    delete_user_use_case(db=db, user_id=newcomer.id, current_user=admin)
    with pytest.raises(NotFoundError):
        get_user_or_404(db=db, user_id=newcomer.id)


def test_list_filters_and_by_role(db, make) -> None:
    make.user(role="mechanic", full_name="Budi Santoso")
    make.user(role="mechanic", full_name="Agus Salim", is_active=False)
    make.user(role="cashier", full_name="Rina")

    items, total, page, page_size = list_users_use_case(db=db, role="mechanic")
    assert total == 2
    assert [item.full_name for item in items] == ["Agus Salim", "Budi Santoso"]

    _, total, _, _ = list_users_use_case(db=db, role="mechanic", is_active=True)
    assert total == 1

    items, total, _, _ = list_users_use_case(db=db, search="rin")
    assert [item.full_name for item in items] == ["Rina"]

    assert len(list_users_by_role_use_case(db=db, role="mechanic")) == 2
    assert [u.full_name for u in list_users_by_role_use_case(db=db, role="mechanic", active_only=True)] == ["Budi Santoso"]


def test_change_password(db) -> None:
    user = _create(db)

    with pytest.raises(InvalidCredentialsError) as exc:
        change_password_use_case(db=db, user=user, old_password="wrong-one", new_password="newsecret1")
    assert exc.value.http_status == 401
    with pytest.raises(ConflictError) as exc:
        change_password_use_case(db=db, user=user, old_password="secret123", new_password="secret123")
    assert exc.value.code == "PASSWORD_UNCHANGED"

    change_password_use_case(db=db, user=user, old_password="secret123", new_password="newsecret1")

    assert authenticate_user(db, "kasir2", "secret123") is None
    assert authenticate_user(db, "kasir2", "newsecret1") is not None


def test_reset_password_generates_temporary_when_empty(db) -> None:
    user = _create(db)

    _, temporary = reset_password_use_case(db=db, user_id=user.id, new_password="chosen123")
    assert temporary is None
    assert authenticate_user(db, "kasir2", "chosen123") is not None

    reset, temporary = reset_password_use_case(db=db, user_id=user.id)
    assert temporary is not None
    assert len(temporary) >= 16
    assert verify_password(temporary, reset.password_hash)
