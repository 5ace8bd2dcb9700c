"""
PolicyEngine - the operations the request layer calls.

Wires the resolver, lifecycle manager, reply moderator and deduplicator
over one set of ports and turns their decisions into PolicyError outcomes.
"""

import uuid
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple

from src.config import Settings, get_settings
from src.engines.policy.dedup import EventDeduplicator, ViewCountThrottle
from src.engines.policy.errors import ConflictError, ForbiddenError, NotFoundError
from src.engines.policy.lifecycle import LifecycleManager, TrashEntry, TrashStats
from src.engines.policy.ports import (
    ArtifactStore,
    AuditSink,
    CommentStore,
    Storage,
    SubjectDirectory,
    TTLCache,
)
from src.engines.policy.predicates import Predicate
from src.engines.policy.replies import ReplyDecision, ReplyModerator, evaluate_reply
from src.engines.policy.types import ArtifactInfo, AuditEvent, CommentInfo, Principal
from src.engines.policy.visibility import ListFilters, VisibilityResolver
from src.kernel.models.document import DocumentCategory
from src.kernel.state import utcnow
from src.logging_config import get_logger

logger = get_logger(__name__)


class PolicyEngine:
    """Access-control and lifecycle policy for documents and comments."""

    def __init__(
        self,
        *,
        directory: SubjectDirectory,
        artifacts: ArtifactStore,
        comments: CommentStore,
        storage: Storage,
        audit_sink: AuditSink,
        audit_cache: TTLCache,
        view_cache: TTLCache,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        settings = settings or get_settings()
        self.artifacts = artifacts
        self.comments = comments
        self.storage = storage
        self.clock = clock

        self.visibility = VisibilityResolver(directory)
        self.lifecycle = LifecycleManager(
            artifacts,
            storage,
            recovery_window=timedelta(days=settings.recovery_window_days),
            expiring_soon_days=settings.expiring_soon_days,
            clock=clock,
        )
        self.moderator = ReplyModerator(comments, artifacts, directory, clock=clock)
        self.deduplicator = EventDeduplicator(
            audit_sink,
            audit_cache,
            window=timedelta(milliseconds=settings.audit_dedup_window_ms),
            sweep_threshold=settings.dedup_sweep_threshold,
        )
        self.view_throttle = ViewCountThrottle(
            view_cache,
            window=timedelta(seconds=settings.view_throttle_seconds),
            sweep_threshold=settings.dedup_sweep_threshold,
        )

    # Visibility

    async def check_access(self, artifact_id: uuid.UUID, principal: Principal) -> ArtifactInfo:
        """Return the active document if ``principal`` may read it."""
        artifact = await self.artifacts.get(artifact_id)
        if artifact is None or not artifact.is_active:
            raise NotFoundError("Document not found", resource_id=artifact_id)

        decision = await self.visibility.access(artifact, principal)
        if not decision.allowed:
            raise ForbiddenError(decision.reason or "Access denied", resource_id=artifact_id)
        return artifact

    async def build_list_predicate(
        self,
        filters: Optional[ListFilters],
        principal: Principal,
    ) -> Predicate:
        return await self.visibility.build_list_predicate(filters, principal)

    # Uploads and corrections

    @staticmethod
    def ensure_can_upload(principal: Principal, category: DocumentCategory) -> None:
        """Professors and admins upload course material; capstones are admin-only."""
        if category == DocumentCategory.CAPSTONE:
            if not principal.is_admin:
                raise ForbiddenError("Only admins may upload capstone documents")
        elif not principal.is_staff:
            raise ForbiddenError("Only professors and admins may upload documents")

    async def get_artifact_with_correction(
        self,
        artifact_id: uuid.UUID,
        principal: Principal,
    ) -> Tuple[ArtifactInfo, Optional[ArtifactInfo]]:
        artifact = await self.check_access(artifact_id, principal)
        return artifact, await self.artifacts.get_correction(artifact_id)

    async def ensure_correction_slot(self, parent_id: uuid.UUID, principal: Principal) -> ArtifactInfo:
        """Check that ``principal`` may attach a new correction to ``parent_id``."""
        if not principal.is_staff:
            raise ForbiddenError("Only professors and admins may upload corrections")

        parent = await self.check_access(parent_id, principal)
        if parent.is_correction:
            raise ConflictError("A correction cannot itself be corrected", resource_id=parent_id)
        if await self.artifacts.has_active_corrections(parent_id):
            raise ConflictError("This document already has a correction", resource_id=parent_id)
        return parent

    async def ensure_can_update(
        self,
        artifact_id: uuid.UUID,
        principal: Principal,
        category: Optional[DocumentCategory] = None,
    ) -> ArtifactInfo:
        """
        Check that ``principal`` may edit an active document's metadata.

        Only the owner or an admin may edit. Moving a document to another
        category follows the upload rules for that category; corrections
        keep their parent's category.
        """
        artifact = await self.artifacts.get(artifact_id)
        if artifact is None or not artifact.is_active:
            raise NotFoundError("Document not found", resource_id=artifact_id)
        if not (principal.is_admin or artifact.owner_id == principal.id):
            raise ForbiddenError(
                "Only the owner or an admin may edit this document",
                resource_id=artifact_id,
            )

        if category is not None and DocumentCategory(category) != artifact.category:
            if artifact.is_correction:
                raise ConflictError(
                    "A correction keeps the category of the document it corrects",
                    resource_id=artifact_id,
                )
            self.ensure_can_upload(principal, category)
        return artifact

    async def download(self, artifact_id: uuid.UUID, principal: Principal) -> ArtifactInfo:
        """Check read access and file presence, then count the download."""
        artifact = await self.check_access(artifact_id, principal)
        if not artifact.file_path or not self.storage.file_exists(artifact.file_path):
            raise NotFoundError("File not found on the server", resource_id=artifact_id)

        await self.artifacts.increment_download_count(artifact_id)
        return artifact

    # Lifecycle

    async def _active_corrections_guard(self, artifact: ArtifactInfo) -> Optional[str]:
        if await self.artifacts.has_active_corrections(artifact.id):
            return "Delete the document's correction first"
        return None

    async def soft_delete(self, artifact_id: uuid.UUID, principal: Principal) -> ArtifactInfo:
        return await self.lifecycle.soft_delete(
            artifact_id, principal, guard=self._active_corrections_guard
        )

    async def restore(self, artifact_id: uuid.UUID, principal: Principal) -> ArtifactInfo:
        return await self.lifecycle.restore(artifact_id, principal)

    async def purge_expired(self, now: Optional[datetime] = None) -> int:
        report = await self.lifecycle.purge_expired(now)
        return report.purged

    async def list_trash(self, principal: Principal) -> List[TrashEntry]:
        return await self.lifecycle.list_trash(principal)

    async def expiring_soon(self, principal: Principal) -> List[TrashEntry]:
        return await self.lifecycle.expiring_soon(principal)

    async def trash_stats(self, principal: Principal) -> TrashStats:
        return await self.lifecycle.trash_stats(principal)

    # Comments

    async def _comment_in_scope(self, comment_id: uuid.UUID, principal: Principal) -> CommentInfo:
        """An active comment on a document ``principal`` may read."""
        comment = await self.comments.get(comment_id)
        if comment is None or not comment.is_active:
            raise NotFoundError("Comment not found", resource_id=comment_id)
        await self.check_access(comment.artifact_id, principal)
        return comment

    async def can_reply(self, comment_id: uuid.UUID, principal: Principal) -> ReplyDecision:
        await self._comment_in_scope(comment_id, principal)
        return await self.moderator.can_reply(comment_id, principal)

    async def ensure_can_comment(
        self,
        artifact_id: uuid.UUID,
        principal: Principal,
        parent_id: Optional[uuid.UUID] = None,
    ) -> Optional[CommentInfo]:
        """
        Validate a new comment before it is stored.

        The document must be readable; a reply's parent must be an active
        comment on the same document and pass the reply discipline.
        Returns the parent comment, if any.
        """
        await self.check_access(artifact_id, principal)
        if parent_id is None:
            return None

        parent = await self.comments.get(parent_id)
        if parent is None or not parent.is_active or parent.artifact_id != artifact_id:
            raise NotFoundError("Parent comment not found on this document", resource_id=parent_id)

        decision = evaluate_reply(parent, await self.comments.replies_to(parent_id), principal)
        if not decision.allowed:
            raise ForbiddenError(decision.reason or "Reply not allowed", resource_id=parent_id)
        return parent

    async def edit_comment(
        self,
        comment_id: uuid.UUID,
        principal: Principal,
        content: str,
    ) -> CommentInfo:
        """Replace a comment's text; author or admin only. Marks it edited."""
        comment = await self._comment_in_scope(comment_id, principal)
        if comment.author_id != principal.id and not principal.is_admin:
            raise ForbiddenError(
                "Only the author or an admin may edit this comment",
                resource_id=comment_id,
            )

        await self.comments.update_content(comment_id, content, self.clock())
        logger.info(
            "Comment edited",
            extra={"comment_id": str(comment_id), "edited_by": str(principal.id)},
        )
        return comment

    async def delete_comment(self, comment_id: uuid.UUID, principal: Principal) -> List[uuid.UUID]:
        await self._comment_in_scope(comment_id, principal)
        return await self.moderator.delete_comment(comment_id, principal)

    # Audit and counters

    async def record_audit(self, event: AuditEvent) -> bool:
        return await self.deduplicator.record(event)

    async def record_view(self, artifact_id: uuid.UUID) -> bool:
        """Increment the view counter unless it was counted moments ago."""
        if not await self.view_throttle.should_count(artifact_id, self.clock()):
            return False
        await self.artifacts.increment_view_count(artifact_id)
        return True
