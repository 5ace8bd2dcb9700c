"""
Append-only audit log.

Rows are written through the event deduplicator, never updated.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Index, JSON, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.kernel.models.base import Base, generate_uuid
from src.kernel.state import utcnow


class AuditAction(str, Enum):
    """Actions recorded in the audit log."""

    DOCUMENT_UPLOAD = "DOCUMENT_UPLOAD"
    DOCUMENT_VIEW = "DOCUMENT_VIEW"
    DOCUMENT_DELETE = "DOCUMENT_DELETE"
    DOCUMENT_RESTORE = "DOCUMENT_RESTORE"
    DOCUMENT_PURGE = "DOCUMENT_PURGE"
    DOCUMENT_UPDATE = "DOCUMENT_UPDATE"
    DOCUMENT_DOWNLOAD = "DOCUMENT_DOWNLOAD"
    COMMENT_CREATE = "COMMENT_CREATE"
    COMMENT_UPDATE = "COMMENT_UPDATE"
    COMMENT_DELETE = "COMMENT_DELETE"
    SUBJECT_ASSIGN = "SUBJECT_ASSIGN"


class AuditLog(Base):
    """One recorded audit event."""

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_user_created", "user_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        nullable=True,
    )
    action: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
    )
    resource: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )
    resource_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
    )
    details: Mapped[dict] = mapped_column(
        JSON,
        default=dict,
        nullable=False,
    )
    ip_address: Mapped[Optional[str]] = mapped_column(
        String(45),
        nullable=True,
    )
    user_agent: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<AuditLog {self.action} user={self.user_id}>"
