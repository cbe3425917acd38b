"""Human-readable document numbers (repair codes, invoices).

Numbers are per-day counters: the next candidate follows the count of
documents already issued with today's prefix, skipping any candidate that
already exists. Two writers can still pick the same free number; the unique
constraint rejects the later insert and ``retry_on_number_collision`` runs
the whole transaction again with a freshly picked number.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Callable, TypeVar

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..domain_errors import StorageError
from ..models import PurchaseTransaction, RepairOrder, SalesTransaction

logger = logging.getLogger(__name__)

REPAIR_CODE_PREFIX = "RPR"
SALES_INVOICE_PREFIX = "INV-SAL"
PURCHASE_INVOICE_PREFIX = "INV-PUR"
MAX_NUMBER_ATTEMPTS = 5

T = TypeVar("T")


def _next_daily_number(*, db: Session, column, prefix: str, on: date, width: int) -> str:
    day_prefix = f"{prefix}-{on.strftime('%Y%m%d')}-"
    issued = db.query(func.count(column)).filter(column.like(f"{day_prefix}%")).scalar() or 0
    counter = issued + 1
    while True:
        candidate = f"{day_prefix}{counter:0{width}d}"
        if db.query(column).filter(column == candidate).first() is None:
            return candidate
        counter += 1


def next_repair_code(*, db: Session, on: date) -> str:
    """RPR-YYYYMMDD-NNN."""
    return _next_daily_number(db=db, column=RepairOrder.code, prefix=REPAIR_CODE_PREFIX, on=on, width=3)


def next_sales_invoice(*, db: Session, on: date) -> str:
    return _next_daily_number(
        db=db, column=SalesTransaction.invoice_number, prefix=SALES_INVOICE_PREFIX, on=on, width=4
    )


def next_purchase_invoice(*, db: Session, on: date) -> str:
    return _next_daily_number(
        db=db, column=PurchaseTransaction.invoice_number, prefix=PURCHASE_INVOICE_PREFIX, on=on, width=4
    )


def is_number_collision(exc: BaseException, column) -> bool:
    """True when exc is a unique violation on the given number column."""
    cause = exc.__cause__ if isinstance(exc, StorageError) else exc
    if not isinstance(cause, IntegrityError):
        return False
    message = str(cause.orig)
    return column.table.name in message and column.key in message


def retry_on_number_collision(
    operation: Callable[[], T],
    *,
    column,
    attempts: int = MAX_NUMBER_ATTEMPTS,
) -> T:
    """Run a numbering transaction, starting over when another writer took the number first.

    ``operation`` must pick its number and commit inside one ``atomic()`` block
    so a failed attempt leaves nothing behind.
    """
    for attempt in range(1, attempts):
        try:
            return operation()
        except StorageError as exc:
            if not is_number_collision(exc, column):
                raise
            logger.warning(
                "Number collision on %s.%s, retrying (%s/%s)",
                column.table.name,
                column.key,
                attempt,
                attempts,
            )
    return operation()
