"""Database infrastructure - shared connection primitives."""

from infrastructure.database.exceptions import (
    DatabaseError,
    DatabaseNotConfiguredError,
)
from infrastructure.database.models import Base, TimestampMixin

__all__ = [
    "Base",
    "DatabaseError",
    "DatabaseNotConfiguredError",
    "TimestampMixin",
]
