"""
Builds a PolicyEngine over the kernel's SQL, filesystem and cache adapters.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.config import Settings, get_settings
from src.engines.policy import PolicyEngine, get_audit_cache, get_view_cache
from src.kernel.events.audit_sink import AuditLogStore
from src.kernel.permissions.subject_directory import SqlSubjectDirectory
from src.kernel.repositories import CommentRepository, DocumentRepository
from src.kernel.storage.local_storage import LocalFileStorage


def build_policy_engine(session: AsyncSession, settings: Optional[Settings] = None) -> PolicyEngine:
    """Policy engine whose stores all share ``session`` (and so its transaction)."""
    settings = settings or get_settings()
    return PolicyEngine(
        directory=SqlSubjectDirectory(session, settings.terminal_level_codes),
        artifacts=DocumentRepository(session),
        comments=CommentRepository(session),
        storage=LocalFileStorage(settings.upload_dir),
        audit_sink=AuditLogStore(session),
        audit_cache=get_audit_cache(),
        view_cache=get_view_cache(),
        settings=settings,
    )
