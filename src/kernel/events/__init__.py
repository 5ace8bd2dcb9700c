"""
Audit logging infrastructure.

Provides the append-only audit log store behind the event deduplicator.
"""

from src.kernel.events.audit_sink import AuditLogStore

__all__ = [
    "AuditLogStore",
]
