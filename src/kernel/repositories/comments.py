"""
Comment repository - the SQL side of the engine's CommentStore port.
"""

import uuid
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.engines.policy.errors import NotFoundError
from src.engines.policy.types import CommentInfo
from src.kernel.models.comment import Comment
from src.kernel.models.user import User, UserRole
from src.kernel.state import LifecycleState, state_to_columns, utcnow


def to_comment_info(comment: Comment, author_role: UserRole) -> CommentInfo:
    return CommentInfo(
        id=comment.id,
        artifact_id=comment.document_id,
        author_id=comment.author_id,
        author_role=author_role,
        created_at=comment.created_at,
        parent_id=comment.parent_id,
        lifecycle=comment.lifecycle,
    )


class CommentRepository:
    """Comment reads and writes within one session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _with_role(self):
        return select(Comment, User.role).join(User, Comment.author_id == User.id)

    async def get(self, comment_id: uuid.UUID) -> Optional[CommentInfo]:
        result = await self.session.execute(
            self._with_role()
            .where(Comment.id == comment_id)
            .execution_options(populate_existing=True)
        )
        row = result.one_or_none()
        if row is None:
            return None
        comment, role = row
        return to_comment_info(comment, UserRole(role))

    async def replies_to(self, comment_id: uuid.UUID) -> List[CommentInfo]:
        """Active direct replies, oldest first."""
        result = await self.session.execute(
            self._with_role()
            .where(Comment.parent_id == comment_id, Comment.deleted_at.is_(None))
            .order_by(Comment.created_at.asc())
        )
        return [to_comment_info(comment, UserRole(role)) for comment, role in result.all()]

    async def mark_deleted(self, comment_ids: Iterable[uuid.UUID], state: LifecycleState) -> int:
        """One UPDATE for every id, so the cascade is all-or-nothing."""
        ids = list(comment_ids)
        if not ids:
            return 0
        deleted_at, deleted_by = state_to_columns(state)
        result = await self.session.execute(
            update(Comment)
            .where(Comment.id.in_(ids))
            .values(deleted_at=deleted_at, deleted_by=deleted_by)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    async def create(
        self,
        *,
        document_id: uuid.UUID,
        author_id: uuid.UUID,
        content: str,
        parent_id: Optional[uuid.UUID] = None,
    ) -> Comment:
        comment = Comment(
            document_id=document_id,
            author_id=author_id,
            content=content,
            parent_id=parent_id,
            created_at=utcnow(),
        )
        self.session.add(comment)
        await self.session.flush()
        return comment

    async def list_for_document(self, document_id: uuid.UUID) -> List[Comment]:
        """Active comments on a document, oldest first, with authors loaded."""
        result = await self.session.execute(
            select(Comment)
            .where(Comment.document_id == document_id, Comment.deleted_at.is_(None))
            .options(selectinload(Comment.author))
            .order_by(Comment.created_at.asc())
        )
        return list(result.scalars().all())

    async def load(self, comment_id: uuid.UUID) -> Optional[Comment]:
        """The ORM row with its author, regardless of lifecycle state."""
        result = await self.session.execute(
            select(Comment)
            .where(Comment.id == comment_id)
            .options(selectinload(Comment.author))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def update_content(self, comment_id: uuid.UUID, content: str, edited_at: datetime) -> None:
        result = await self.session.execute(
            update(Comment)
            .where(Comment.id == comment_id, Comment.deleted_at.is_(None))
            .values(content=content, edited_at=edited_at)
        )
        if result.rowcount == 0:
            raise NotFoundError("Comment not found", resource_id=comment_id)
