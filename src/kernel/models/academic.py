"""
Academic structure: levels, tracks, subjects and professor assignments.

The structure itself is maintained elsewhere; these models exist so the
policy engine can resolve scope (track/level) and subject assignments.
"""

import uuid
from enum import Enum
from typing import TYPE_CHECKING, List

from sqlalchemy import ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.kernel.models.base import Base, TimestampMixin, generate_uuid

if TYPE_CHECKING:
    from src.kernel.models.user import User


class Responsibility(str, Enum):
    """What a professor teaches within a subject."""
    LECTURE = "lecture"
    TUTORIAL = "tutorial"
    LAB = "lab"


class Level(Base, TimestampMixin):
    """Academic year / stage (e.g. L1, L3, M2)."""

    __tablename__ = "levels"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    code: Mapped[str] = mapped_column(
        String(20),
        unique=True,
        nullable=False,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    tracks: Mapped[List["Track"]] = relationship(
        "Track",
        back_populates="level",
    )

    def __repr__(self) -> str:
        return f"<Level {self.code}>"


class Track(Base, TimestampMixin):
    """Academic program within a level."""

    __tablename__ = "tracks"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    level_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("levels.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    level: Mapped["Level"] = relationship(
        "Level",
        back_populates="tracks",
    )
    subjects: Mapped[List["Subject"]] = relationship(
        "Subject",
        back_populates="track",
    )

    def __repr__(self) -> str:
        return f"<Track {self.code}>"


class Subject(Base, TimestampMixin):
    """A course belonging to one track (and through it, one level)."""

    __tablename__ = "subjects"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    track_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("tracks.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    track: Mapped["Track"] = relationship(
        "Track",
        back_populates="subjects",
    )
    assignments: Mapped[List["ProfessorAssignment"]] = relationship(
        "ProfessorAssignment",
        back_populates="subject",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Subject {self.code}>"


class ProfessorAssignment(Base, TimestampMixin):
    """A professor teaching one responsibility of a subject."""

    __tablename__ = "professor_assignments"
    __table_args__ = (
        # One professor per responsibility within a subject
        UniqueConstraint("subject_id", "responsibility", name="uq_assignment_subject_responsibility"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    subject_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("subjects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    professor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    responsibility: Mapped[Responsibility] = mapped_column(
        String(20),
        nullable=False,
    )

    subject: Mapped["Subject"] = relationship(
        "Subject",
        back_populates="assignments",
    )
    professor: Mapped["User"] = relationship(
        "User",
        back_populates="assignments",
    )

    def __repr__(self) -> str:
        return f"<ProfessorAssignment {self.professor_id} {self.responsibility}>"
