"""
Lifecycle state shared by documents and comments.

A record is exactly one of:

    Active                      visible, mutable
    Deleted(at, by)             in the trash, restorable inside the recovery window
    Purged                      gone for good (the row no longer exists)

Rows persist this as a nullable ``deleted_at`` / ``deleted_by`` pair; nothing
outside the models reads those columns directly.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on round-trip)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class Active:
    """Live record."""


@dataclass(frozen=True)
class Deleted:
    """Soft-deleted record and who deleted it."""

    at: datetime
    by: uuid.UUID

    def __post_init__(self) -> None:
        object.__setattr__(self, "at", ensure_utc(self.at))


@dataclass(frozen=True)
class Purged:
    """Terminal state; the record has been removed."""


LifecycleState = Union[Active, Deleted, Purged]

ACTIVE = Active()
PURGED = Purged()


def state_from_columns(
    deleted_at: Optional[datetime],
    deleted_by: Optional[uuid.UUID],
) -> LifecycleState:
    """Rebuild the lifecycle state from persisted soft-delete columns."""
    if deleted_at is None:
        return ACTIVE
    if deleted_by is None:
        raise ValueError("deleted_at is set but deleted_by is missing")
    return Deleted(at=deleted_at, by=deleted_by)


def state_to_columns(state: LifecycleState) -> tuple[Optional[datetime], Optional[uuid.UUID]]:
    """Flatten a lifecycle state into ``(deleted_at, deleted_by)``."""
    if isinstance(state, Active):
        return None, None
    if isinstance(state, Deleted):
        return state.at, state.by
    if isinstance(state, Purged):
        raise ValueError("Purged records are removed, not stored")
    raise TypeError(f"Unknown lifecycle state: {state!r}")
