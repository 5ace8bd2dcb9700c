"""
Domain snapshots the policy engine reasons about.

These are plain frozen dataclasses so rules can be evaluated and tested
without a database; the kernel repositories build them from ORM rows.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, Optional, Tuple

from src.kernel.models.academic import Responsibility
from src.kernel.models.document import DocumentCategory
from src.kernel.models.user import STAFF_ROLES, UserRole
from src.kernel.state import ACTIVE, Active, Deleted, LifecycleState, ensure_utc


@dataclass(frozen=True)
class Principal:
    """The authenticated caller and their academic scope."""

    id: uuid.UUID
    role: UserRole
    home_track_id: Optional[uuid.UUID] = None
    home_level_id: Optional[uuid.UUID] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", UserRole(self.role))
        if self.role == UserRole.STUDENT and (
            self.home_track_id is None or self.home_level_id is None
        ):
            raise ValueError("Students must have both a home track and a home level")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


@dataclass(frozen=True)
class SubjectInfo:
    """A subject with its resolved level and professor assignments."""

    id: uuid.UUID
    track_id: uuid.UUID
    level_id: uuid.UUID
    assignments: FrozenSet[Tuple[uuid.UUID, Responsibility]] = frozenset()

    @property
    def professor_ids(self) -> FrozenSet[uuid.UUID]:
        return frozenset(professor_id for professor_id, _ in self.assignments)

    def is_taught_by(self, professor_id: uuid.UUID) -> bool:
        return professor_id in self.professor_ids

    def in_scope(self, track_id: Optional[uuid.UUID], level_id: Optional[uuid.UUID]) -> bool:
        return self.track_id == track_id and self.level_id == level_id


@dataclass(frozen=True)
class ArtifactInfo:
    """A document as seen by the policy engine."""

    id: uuid.UUID
    category: DocumentCategory
    owner_id: uuid.UUID
    subject_ids: FrozenSet[uuid.UUID] = frozenset()
    lifecycle: LifecycleState = ACTIVE
    correction_of_id: Optional[uuid.UUID] = None
    file_path: Optional[str] = None
    title: str = ""
    description: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "category", DocumentCategory(self.category))
        object.__setattr__(self, "subject_ids", frozenset(self.subject_ids))
        if not self.subject_ids and self.category != DocumentCategory.CAPSTONE:
            raise ValueError("Only capstone documents may have no subjects")

    @property
    def is_capstone(self) -> bool:
        return self.category == DocumentCategory.CAPSTONE

    @property
    def is_active(self) -> bool:
        return isinstance(self.lifecycle, Active)

    @property
    def is_deleted(self) -> bool:
        return isinstance(self.lifecycle, Deleted)

    @property
    def is_correction(self) -> bool:
        return self.correction_of_id is not None


@dataclass(frozen=True)
class CommentInfo:
    """A comment with its author's role, as needed for reply discipline."""

    id: uuid.UUID
    artifact_id: uuid.UUID
    author_id: uuid.UUID
    author_role: UserRole
    created_at: datetime
    parent_id: Optional[uuid.UUID] = None
    lifecycle: LifecycleState = ACTIVE

    def __post_init__(self) -> None:
        object.__setattr__(self, "author_role", UserRole(self.author_role))
        object.__setattr__(self, "created_at", ensure_utc(self.created_at))

    @property
    def is_active(self) -> bool:
        return isinstance(self.lifecycle, Active)


@dataclass(frozen=True)
class AuditEvent:
    """Something worth recording in the audit log."""

    action: str
    timestamp: datetime
    principal_id: Optional[uuid.UUID] = None
    resource: Optional[str] = None
    resource_id: Optional[str] = None
    method: Optional[str] = None
    url: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp", ensure_utc(self.timestamp))
