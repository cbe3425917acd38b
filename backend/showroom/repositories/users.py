"""User lookups."""
from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models import User


class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: int) -> User | None:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_by_username(self, username: str) -> User | None:
        return self.db.query(User).filter(User.username == username).first()

    def get_by_email(self, email: str) -> User | None:
        return self.db.query(User).filter(func.lower(User.email) == email.lower()).first()

    def list_by_role(self, role: str, *, active_only: bool = False) -> list[User]:
        query = self.db.query(User).filter(User.role == role)
        if active_only:
            query = query.filter(User.is_active.is_(True))
        return query.order_by(User.full_name, User.id).all()

    def list_active_mechanics(self) -> list[User]:
        return self.list_by_role("mechanic", active_only=True)
