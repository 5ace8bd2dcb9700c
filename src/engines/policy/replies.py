"""
Reply Moderator - escalation discipline in comment threads.

Staff (professors and admins) may always reply. A student may reply only to
a staff comment, and after replying must wait for a staff reply posted later
than their own before replying to the same comment again.
"""

import uuid
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from pydantic import BaseModel

from src.engines.policy.errors import ForbiddenError, NotFoundError
from src.engines.policy.ports import ArtifactStore, CommentStore, SubjectDirectory
from src.engines.policy.types import CommentInfo, Principal
from src.kernel.models.user import STAFF_ROLES, UserRole
from src.kernel.state import Deleted, ensure_utc, utcnow
from src.logging_config import get_logger

logger = get_logger(__name__)

STUDENT_TO_STUDENT = "students may only reply to professor/admin comments"
AWAITING_STAFF = "must wait for a professor/admin response"


class ReplyDecision(BaseModel):
    allowed: bool
    reason: Optional[str] = None


def evaluate_reply(
    parent: CommentInfo,
    replies: Sequence[CommentInfo],
    principal: Principal,
) -> ReplyDecision:
    """Decide whether ``principal`` may reply to ``parent`` given its current replies."""
    if principal.role in STAFF_ROLES:
        return ReplyDecision(allowed=True)

    if principal.role != UserRole.STUDENT:
        raise ValueError(f"Unhandled role: {principal.role!r}")

    if parent.author_role == UserRole.STUDENT:
        return ReplyDecision(allowed=False, reason=STUDENT_TO_STUDENT)

    live = [reply for reply in replies if reply.is_active]
    own = [reply.created_at for reply in live if reply.author_id == principal.id]
    if not own:
        return ReplyDecision(allowed=True)

    last_own = max(own)
    answered = any(
        reply.author_role in STAFF_ROLES and reply.created_at > last_own
        for reply in live
    )
    if answered:
        return ReplyDecision(allowed=True)
    return ReplyDecision(allowed=False, reason=AWAITING_STAFF)


class ReplyModerator:
    """Reply checks and moderated deletion over the comment store."""

    def __init__(
        self,
        comments: CommentStore,
        artifacts: ArtifactStore,
        directory: SubjectDirectory,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.comments = comments
        self.artifacts = artifacts
        self.directory = directory
        self.clock = clock

    async def _get_active(self, comment_id: uuid.UUID) -> CommentInfo:
        comment = await self.comments.get(comment_id)
        if comment is None or not comment.is_active:
            raise NotFoundError("Comment not found", resource_id=comment_id)
        return comment

    async def can_reply(self, comment_id: uuid.UUID, principal: Principal) -> ReplyDecision:
        parent = await self._get_active(comment_id)
        replies = await self.comments.replies_to(comment_id)
        return evaluate_reply(parent, replies, principal)

    async def can_moderate(self, comment: CommentInfo, principal: Principal) -> bool:
        """Author, admin, or a professor responsible for the document."""
        if comment.author_id == principal.id or principal.is_admin:
            return True
        if principal.role == UserRole.STUDENT:
            return False
        if principal.role != UserRole.PROFESSOR:
            raise ValueError(f"Unhandled role: {principal.role!r}")

        artifact = await self.artifacts.get(comment.artifact_id)
        if artifact is None:
            return False
        if artifact.is_capstone:
            return True
        for subject_id in artifact.subject_ids:
            if await self.directory.is_assigned(principal.id, subject_id):
                return True
        return False

    async def delete_comment(
        self,
        comment_id: uuid.UUID,
        principal: Principal,
        now: Optional[datetime] = None,
    ) -> List[uuid.UUID]:
        """
        Soft-delete a comment and its direct replies in one store call.

        Replies to those replies are left untouched.
        """
        comment = await self._get_active(comment_id)
        if not await self.can_moderate(comment, principal):
            raise ForbiddenError(
                "Only the author, an admin or a responsible professor may delete this comment",
                resource_id=comment_id,
            )

        direct = [reply.id for reply in await self.comments.replies_to(comment_id) if reply.is_active]
        ids = [comment.id, *direct]
        at = ensure_utc(now) if now is not None else self.clock()
        await self.comments.mark_deleted(ids, Deleted(at=at, by=principal.id))

        logger.info(
            "Comment deleted",
            extra={
                "comment_id": str(comment_id),
                "replies_deleted": len(direct),
                "deleted_by": str(principal.id),
            },
        )
        return ids
