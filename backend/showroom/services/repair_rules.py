"""Repair order workflow invariants."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable

from ..domain_errors import InvalidTransitionError


REPAIR_STATUSES: tuple[str, ...] = ("pending", "in_progress", "completed", "cancelled")
OPEN_REPAIR_STATUSES: set[str] = {"pending", "in_progress"}
DELETABLE_REPAIR_STATUSES: set[str] = {"pending", "cancelled"}
_ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"in_progress", "cancelled"},
    "in_progress": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": {"pending"},
}
# Vehicle status implied by entering a repair status; None leaves the vehicle untouched.
_VEHICLE_STATUS_ON_ENTER: dict[str, str | None] = {
    "pending": None,
    "in_progress": "in_repair",
    "completed": "available",
    "cancelled": "available",
}

ZERO = Decimal("0")


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def normalize_repair_status(status: str | None) -> str:
    if not status:
        return "pending"
    return status.strip().lower()


def allowed_next_statuses(status: str | None) -> set[str]:
    return set(_ALLOWED_TRANSITIONS.get(normalize_repair_status(status), set()))


def validate_repair_transition(*, current_status: str | None, next_status: str) -> str:
    """Return normalized target status or raise InvalidTransitionError.

    Staying in the same status is not a transition and is rejected too.
    """
    current = normalize_repair_status(current_status)
    nxt = normalize_repair_status(next_status)

    if nxt not in _ALLOWED_TRANSITIONS:
        raise InvalidTransitionError(
            code="REPAIR_STATUS_UNKNOWN",
            message=f"Unknown repair status: {nxt}",
            details={"status": nxt},
        )
    if nxt not in _ALLOWED_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError(
            code="REPAIR_INVALID_TRANSITION",
            message=f"Invalid repair status transition: {current} -> {nxt}",
            details={"from": current, "to": nxt},
        )
    return nxt


def vehicle_status_for(next_status: str) -> str | None:
    return _VEHICLE_STATUS_ON_ENTER.get(normalize_repair_status(next_status))


def is_deletable(status: str | None) -> bool:
    return normalize_repair_status(status) in DELETABLE_REPAIR_STATUSES


def is_locked_for_parts(status: str | None) -> bool:
    """Completed orders have a final cost; their spare-part lines are frozen."""
    return normalize_repair_status(status) == "completed"


def apply_repair_timestamps(
    *,
    next_status: str,
    started_at: datetime | None,
    completed_at: datetime | None,
    at: datetime | None = None,
) -> dict[str, datetime | None]:
    ts = at or now_utc()
    nxt = normalize_repair_status(next_status)

    updated_started_at = started_at
    updated_completed_at = completed_at

    if nxt == "in_progress" and updated_started_at is None:
        updated_started_at = ts
    if nxt == "completed":
        updated_completed_at = ts

    return {
        "started_at": updated_started_at,
        "completed_at": updated_completed_at,
    }


def line_total(unit_price: Decimal, quantity: int) -> Decimal:
    return Decimal(unit_price) * quantity


def sum_money(totals: Iterable[Decimal | None]) -> Decimal:
    return sum((Decimal(value) for value in totals if value is not None), ZERO)


def compute_hpp(*, purchase_price: Decimal, repair_cost: Decimal) -> Decimal:
    return Decimal(purchase_price) + Decimal(repair_cost)


def completion_hours(started_at: datetime | None, completed_at: datetime | None) -> float | None:
    """Elapsed hours between start and completion, or None if either is missing."""
    if started_at is None or completed_at is None:
        return None
    # Some backends drop tzinfo on read; compare like with like.
    if (started_at.tzinfo is None) != (completed_at.tzinfo is None):
        started_at = started_at.replace(tzinfo=None)
        completed_at = completed_at.replace(tzinfo=None)
    return (completed_at - started_at).total_seconds() / 3600.0


def average_completion_hours(pairs: Iterable[tuple[datetime | None, datetime | None]]) -> float:
    hours = [value for value in (completion_hours(start, end) for start, end in pairs) if value is not None]
    if not hours:
        return 0.0
    return sum(hours) / len(hours)
