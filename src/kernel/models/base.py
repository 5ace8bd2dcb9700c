"""
Base model with common fields and utilities.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, func, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from src.kernel.state import LifecycleState, state_from_columns, state_to_columns, utcnow


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    # Use generic Uuid type for cross-database compatibility
    type_annotation_map = {
        uuid.UUID: Uuid(),
    }


class TimestampMixin:
    """Mixin for created_at and updated_at timestamps."""

    # Python-side default keeps sub-second ordering on SQLite
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )


class LifecycleMixin:
    """Soft-delete columns, exposed only through the lifecycle state."""

    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
        index=True,
    )
    deleted_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        nullable=True,
        default=None,
    )

    @property
    def lifecycle(self) -> LifecycleState:
        return state_from_columns(self.deleted_at, self.deleted_by)

    @lifecycle.setter
    def lifecycle(self, state: LifecycleState) -> None:
        self.deleted_at, self.deleted_by = state_to_columns(state)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


# Keeps the soft-delete pair consistent at the database level
LIFECYCLE_CHECK = "(deleted_at IS NULL) = (deleted_by IS NULL)"


def generate_uuid() -> uuid.UUID:
    """Generate a new UUID."""
    return uuid.uuid4()
