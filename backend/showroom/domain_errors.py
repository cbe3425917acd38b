"""Domain-level exception primitives with stable machine-readable codes."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(eq=False)
class DomainError(Exception):
    """Use-case level error with stable code and HTTP mapping."""

    code: str
    http_status: int
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message


class _FixedStatusError(DomainError):
    """Error kind whose HTTP status is fixed by its class."""

    status: int = 400

    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(code=code, http_status=self.status, message=message, details=details)


class InvalidCredentialsError(_FixedStatusError):
    """Password check failed for an already identified user."""

    status = 401


class NotFoundError(_FixedStatusError):
    status = 404


class ConflictError(_FixedStatusError):
    status = 409


class InvalidTransitionError(_FixedStatusError):
    """Repair order status change not allowed by the workflow table."""

    status = 409


class InsufficientStockError(_FixedStatusError):
    status = 409


class InvalidAmountError(_FixedStatusError):
    """Monetary invariant violated (price floors, payment sums)."""

    status = 422


class InvalidStateError(_FixedStatusError):
    status = 409


class StorageError(_FixedStatusError):
    status = 500
