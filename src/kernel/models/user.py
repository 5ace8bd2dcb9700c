"""
User model for identity and academic scope.
"""

import uuid
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.kernel.models.base import Base, TimestampMixin, generate_uuid

if TYPE_CHECKING:
    from src.kernel.models.academic import Level, ProfessorAssignment, Track
    from src.kernel.models.comment import Comment


class UserRole(str, Enum):
    """User roles in the system. Closed set: every decision point handles all three."""
    STUDENT = "student"
    PROFESSOR = "professor"
    ADMIN = "admin"


# Roles that may answer students in a discussion and moderate comments
STAFF_ROLES = frozenset({UserRole.PROFESSOR, UserRole.ADMIN})


class User(Base, TimestampMixin):
    """User account model."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "role != 'student' OR (home_track_id IS NOT NULL AND home_level_id IS NOT NULL)",
            name="ck_users_student_scope",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    full_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    role: Mapped[UserRole] = mapped_column(
        String(50),
        default=UserRole.STUDENT,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # Academic scope (students only)
    home_track_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        ForeignKey("tracks.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    home_level_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        ForeignKey("levels.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )

    # Relationships
    home_track: Mapped[Optional["Track"]] = relationship("Track")
    home_level: Mapped[Optional["Level"]] = relationship("Level")
    assignments: Mapped[List["ProfessorAssignment"]] = relationship(
        "ProfessorAssignment",
        back_populates="professor",
    )
    comments: Mapped[List["Comment"]] = relationship(
        "Comment",
        back_populates="author",
    )

    def __repr__(self) -> str:
        return f"<User {self.email} role={self.role}>"
