"""Row-level collaborators shared by workflows that touch rows they do not own."""
from .spare_parts import SparePartRepository
from .users import UserRepository
from .vehicles import VehicleRepository

__all__ = ["SparePartRepository", "UserRepository", "VehicleRepository"]
