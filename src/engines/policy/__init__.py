"""
Policy Engine - access control and lifecycle rules for documents and comments.

Components:
- VisibilityResolver: per-document access and listing predicates
- LifecycleManager: soft delete, 30-day restore window, purge
- ReplyModerator: student/staff reply discipline and comment deletion
- EventDeduplicator: drops repeated audit events inside a short window
"""

from src.engines.policy.dedup import (
    EventDeduplicator,
    InMemoryTTLCache,
    RedisTTLCache,
    ViewCountThrottle,
    close_caches,
    get_audit_cache,
    get_view_cache,
)
from src.engines.policy.engine import PolicyEngine
from src.engines.policy.errors import (
    ConflictError,
    ExpiredWindowError,
    ForbiddenError,
    InfrastructureError,
    NotFoundError,
    PolicyError,
)
from src.engines.policy.lifecycle import LifecycleManager, PurgeReport, TrashEntry, TrashStats
from src.engines.policy.predicates import Predicate
from src.engines.policy.replies import ReplyDecision, ReplyModerator
from src.engines.policy.types import ArtifactInfo, AuditEvent, CommentInfo, Principal, SubjectInfo
from src.engines.policy.visibility import AccessDecision, ListFilters, VisibilityResolver

__all__ = [
    "PolicyEngine",
    # Components
    "VisibilityResolver",
    "LifecycleManager",
    "ReplyModerator",
    "EventDeduplicator",
    "ViewCountThrottle",
    "InMemoryTTLCache",
    "RedisTTLCache",
    "get_audit_cache",
    "get_view_cache",
    "close_caches",
    # Results
    "AccessDecision",
    "ListFilters",
    "Predicate",
    "PurgeReport",
    "ReplyDecision",
    "TrashEntry",
    "TrashStats",
    # Types
    "ArtifactInfo",
    "AuditEvent",
    "CommentInfo",
    "Principal",
    "SubjectInfo",
    # Errors
    "PolicyError",
    "NotFoundError",
    "ForbiddenError",
    "ExpiredWindowError",
    "ConflictError",
    "InfrastructureError",
]
