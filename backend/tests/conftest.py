from __future__ import annotations

import os

# Must be set before the application settings are imported.
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from decimal import Decimal

import pytest

from showroom.auth import get_password_hash
from showroom.database import Base, SessionLocal, engine
from showroom.models import Customer, SparePart, Supplier, User, Vehicle, VehicleBrand


class _Factory:
    """Persisted rows with sensible defaults for use-case tests."""

    def __init__(self, db):
        self.db = db
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def user(self, *, role: str = "admin", username: str | None = None, password: str = "secret123", **kwargs) -> User:
        n = self._next()
        return self._save(
            User(
                username=username or f"{role}{n}",
                password_hash=get_password_hash(password),
                full_name=kwargs.pop("full_name", f"{role.title()} {n}"),
                role=role,
                is_active=kwargs.pop("is_active", True),
                **kwargs,
            )
        )

    def brand(self, name: str | None = None) -> VehicleBrand:
        return self._save(VehicleBrand(name=name or f"Brand {self._next()}"))

    def vehicle(
        self,
        *,
        purchase_price: str | Decimal = "1000",
        status: str = "available",
        brand: VehicleBrand | None = None,
        **kwargs,
    ) -> Vehicle:
        brand = brand or self.brand()
        price = Decimal(purchase_price)
        return self._save(
            Vehicle(
                code=kwargs.pop("code", f"VH-{self._next():04d}"),
                brand_id=brand.id,
                model=kwargs.pop("model", "Vario 125"),
                year=kwargs.pop("year", 2020),
                purchase_price=price,
                repair_cost=Decimal("0"),
                hpp_price=kwargs.pop("hpp_price", price),
                status=status,
                **kwargs,
            )
        )

    def spare_part(
        self,
        *,
        stock_quantity: int = 5,
        selling_price: str | Decimal = "50",
        purchase_price: str | Decimal = "30",
        minimum_stock: int = 0,
        **kwargs,
    ) -> SparePart:
        n = self._next()
        return self._save(
            SparePart(
                code=kwargs.pop("code", f"SP-{n:04d}"),
                name=kwargs.pop("name", f"Part {n}"),
                unit="pcs",
                purchase_price=Decimal(purchase_price),
                selling_price=Decimal(selling_price),
                stock_quantity=stock_quantity,
                minimum_stock=minimum_stock,
                is_active=kwargs.pop("is_active", True),
                **kwargs,
            )
        )

    def customer(self, **kwargs) -> Customer:
        n = self._next()
        return self._save(Customer(name=kwargs.pop("name", f"Customer {n}"), **kwargs))

    def supplier(self, **kwargs) -> Supplier:
        n = self._next()
        return self._save(Supplier(name=kwargs.pop("name", f"Supplier {n}"), is_active=True, **kwargs))


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def make(db) -> _Factory:
    return _Factory(db)
