"""
Document model - uploaded course material with soft-delete lifecycle.
"""

import uuid
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.kernel.models.base import (
    LIFECYCLE_CHECK,
    Base,
    LifecycleMixin,
    TimestampMixin,
    generate_uuid,
)

if TYPE_CHECKING:
    from src.kernel.models.academic import Subject
    from src.kernel.models.comment import Comment
    from src.kernel.models.user import User


class DocumentCategory(str, Enum):
    """Kind of document. Capstone documents are not tied to subjects."""
    LECTURE = "lecture"
    TUTORIAL = "tutorial"
    LAB = "lab"
    EXAM = "exam"
    CAPSTONE = "capstone"


document_subjects = Table(
    "document_subjects",
    Base.metadata,
    Column("document_id", Uuid(), ForeignKey("documents.id", ondelete="CASCADE"), primary_key=True),
    Column("subject_id", Uuid(), ForeignKey("subjects.id", ondelete="CASCADE"), primary_key=True),
)


class Document(Base, TimestampMixin, LifecycleMixin):
    """A document owned by its uploader and visible to a scope-matched audience."""

    __tablename__ = "documents"
    __table_args__ = (
        CheckConstraint(LIFECYCLE_CHECK, name="ck_documents_lifecycle"),
        # At most one live correction per document
        Index(
            "uq_documents_active_correction",
            "correction_of_id",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    title: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    category: Mapped[DocumentCategory] = mapped_column(
        String(20),
        nullable=False,
        index=True,
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # Storage
    file_path: Mapped[Optional[str]] = mapped_column(
        String(1024),
        nullable=True,
    )
    file_name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    # Counters
    view_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    download_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    # A correction points at the document it corrects
    correction_of_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        ForeignKey("documents.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Relationships
    owner: Mapped["User"] = relationship("User")
    subjects: Mapped[List["Subject"]] = relationship(
        "Subject",
        secondary=document_subjects,
    )
    comments: Mapped[List["Comment"]] = relationship(
        "Comment",
        back_populates="document",
        cascade="all, delete-orphan",
    )

    @property
    def subject_ids(self) -> List[uuid.UUID]:
        return [subject.id for subject in self.subjects]

    def __repr__(self) -> str:
        return f"<Document {self.id} category={self.category}>"
