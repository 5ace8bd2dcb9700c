"""
Threaded comments on documents.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.kernel.models.base import (
    LIFECYCLE_CHECK,
    Base,
    LifecycleMixin,
    TimestampMixin,
    generate_uuid,
)

if TYPE_CHECKING:
    from src.kernel.models.document import Document
    from src.kernel.models.user import User


class Comment(Base, TimestampMixin, LifecycleMixin):
    """A comment, optionally replying to another comment on the same document."""

    __tablename__ = "comments"
    __table_args__ = (
        CheckConstraint(LIFECYCLE_CHECK, name="ck_comments_lifecycle"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    parent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        ForeignKey("comments.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    edited_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Relationships
    document: Mapped["Document"] = relationship(
        "Document",
        back_populates="comments",
    )
    author: Mapped["User"] = relationship(
        "User",
        back_populates="comments",
    )

    def __repr__(self) -> str:
        return f"<Comment {self.id} by {self.author_id}>"
