"""
Kernel Data Models

Core SQLAlchemy models: identity, academic structure, documents,
comments and the audit log.
"""

from src.kernel.models.base import Base, TimestampMixin, LifecycleMixin, generate_uuid
from src.kernel.models.user import User, UserRole, STAFF_ROLES
from src.kernel.models.academic import (
    Level,
    Track,
    Subject,
    ProfessorAssignment,
    Responsibility,
)
from src.kernel.models.document import Document, DocumentCategory, document_subjects
from src.kernel.models.comment import Comment
from src.kernel.models.audit_log import AuditLog, AuditAction

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "LifecycleMixin",
    "generate_uuid",
    # User
    "User",
    "UserRole",
    "STAFF_ROLES",
    # Academic structure
    "Level",
    "Track",
    "Subject",
    "ProfessorAssignment",
    "Responsibility",
    # Documents
    "Document",
    "DocumentCategory",
    "document_subjects",
    # Collaboration
    "Comment",
    # Audit
    "AuditLog",
    "AuditAction",
]
