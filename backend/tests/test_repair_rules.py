from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from showroom.domain_errors import InvalidTransitionError
from showroom.services.repair_rules import (
    allowed_next_statuses,
    apply_repair_timestamps,
    average_completion_hours,
    compute_hpp,
    is_deletable,
    is_locked_for_parts,
    line_total,
    sum_money,
    validate_repair_transition,
    vehicle_status_for,
)


@pytest.mark.parametrize(
    ("current", "nxt"),
    [
        ("pending", "in_progress"),
        ("pending", "cancelled"),
        ("in_progress", "completed"),
        ("in_progress", "cancelled"),
        ("cancelled", "pending"),
    ],
)
def test_allowed_transitions_return_normalized_target(current: str, nxt: str) -> None:
    assert validate_repair_transition(current_status=current, next_status=nxt.upper()) == nxt


@pytest.mark.parametrize(
    ("current", "nxt"),
    [
        ("completed", "in_progress"),
        ("completed", "pending"),
        ("pending", "completed"),
        ("cancelled", "in_progress"),
        ("in_progress", "pending"),
        ("pending", "pending"),
    ],
)
def test_disallowed_transitions_raise_invalid_transition(current: str, nxt: str) -> None:
    with pytest.raises(InvalidTransitionError) as exc:
        validate_repair_transition(current_status=current, next_status=nxt)

    assert exc.value.code == "REPAIR_INVALID_TRANSITION"
    assert exc.value.http_status == 409
    assert exc.value.details == {"from": current, "to": nxt}


def test_unknown_target_status_is_rejected() -> None:
    with pytest.raises(InvalidTransitionError) as exc:
        validate_repair_transition(current_status="pending", next_status="on_hold")

    assert exc.value.code == "REPAIR_STATUS_UNKNOWN"


def test_completed_is_terminal() -> None:
    assert allowed_next_statuses("completed") == set()
    assert allowed_next_statuses("cancelled") == {"pending"}


def test_vehicle_status_follows_repair_status() -> None:
    assert vehicle_status_for("pending") is None
    assert vehicle_status_for("in_progress") == "in_repair"
    assert vehicle_status_for("completed") == "available"
    assert vehicle_status_for("cancelled") == "available"


def test_only_pending_and_cancelled_orders_are_deletable() -> None:
    assert is_deletable("pending")
    assert is_deletable("cancelled")
    assert not is_deletable("in_progress")
    assert not is_deletable("completed")
    assert is_locked_for_parts("completed")
    assert not is_locked_for_parts("in_progress")


def test_started_at_is_set_once() -> None:
    first = datetime(2026, 1, 1, 8, tzinfo=timezone.utc)
    later = first + timedelta(hours=3)

    started = apply_repair_timestamps(next_status="in_progress", started_at=None, completed_at=None, at=first)
    assert started["started_at"] == first

    restarted = apply_repair_timestamps(next_status="in_progress", started_at=first, completed_at=None, at=later)
    assert restarted["started_at"] == first


def test_completion_sets_completed_at() -> None:
    start = datetime(2026, 1, 1, 8, tzinfo=timezone.utc)
    done = start + timedelta(hours=5)

    result = apply_repair_timestamps(next_status="completed", started_at=start, completed_at=None, at=done)

    assert result == {"started_at": start, "completed_at": done}


def test_money_helpers() -> None:
    assert line_total(Decimal("50"), 2) == Decimal("100")
    assert sum_money([Decimal("100"), None, Decimal("25.50")]) == Decimal("125.50")
    assert sum_money([]) == Decimal("0")
    assert compute_hpp(purchase_price=Decimal("1000"), repair_cost=Decimal("100")) == Decimal("1100")


def test_average_completion_hours_skips_incomplete_orders() -> None:
    start = datetime(2026, 1, 1, 8, tzinfo=timezone.utc)
    pairs = [
        (start, start + timedelta(hours=2)),
        (start, start + timedelta(hours=4)),
        (start, None),
        (None, start),
    ]

    assert average_completion_hours(pairs) == pytest.approx(3.0)
    assert average_completion_hours([(start, None)]) == 0.0


def test_average_completion_hours_tolerates_naive_timestamps() -> None:
    aware = datetime(2026, 1, 1, 8, tzinfo=timezone.utc)
    naive = datetime(2026, 1, 1, 9)

    assert average_completion_hours([(aware, naive)]) == pytest.approx(1.0)
