"""
Kernel Layer

Persistence and identity underneath the policy engine:
- Data models (users, academic structure, documents, comments, audit log)
- Lifecycle state shared by documents and comments
- Adapters implementing the engine's ports (repositories, subject directory,
  audit sink, file storage)
- Identity (JWT verification, principal resolution)

Invariants:
- Soft-delete columns are only read and written through the lifecycle state
- Audit rows are append-only
"""

from src.kernel.models import (
    User,
    UserRole,
    Level,
    Track,
    Subject,
    ProfessorAssignment,
    Responsibility,
    Document,
    DocumentCategory,
    Comment,
    AuditLog,
    AuditAction,
)
from src.kernel.state import Active, Deleted, Purged, LifecycleState

__all__ = [
    # Identity
    "User",
    "UserRole",
    # Academic structure
    "Level",
    "Track",
    "Subject",
    "ProfessorAssignment",
    "Responsibility",
    # Documents & comments
    "Document",
    "DocumentCategory",
    "Comment",
    # Audit
    "AuditLog",
    "AuditAction",
    # Lifecycle
    "Active",
    "Deleted",
    "Purged",
    "LifecycleState",
]
