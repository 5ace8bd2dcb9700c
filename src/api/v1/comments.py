"""
Comment endpoints - threads on documents, reply checks, edits and moderated deletion.
"""

import uuid
from typing import List

from fastapi import APIRouter, Request, status

from src.api.deps import CurrentPrincipal, DbSession, Engine, audit
from src.kernel.models.audit_log import AuditAction
from src.kernel.models.comment import Comment
from src.kernel.repositories import CommentRepository
from src.schemas.comment import (
    CommentCreate,
    CommentDeleteResponse,
    CommentResponse,
    CommentUpdate,
    ReplyCheckResponse,
)

router = APIRouter()


def _to_response(comment: Comment) -> CommentResponse:
    author = comment.author
    return CommentResponse(
        id=comment.id,
        document_id=comment.document_id,
        author_id=comment.author_id,
        author_name=author.full_name if author else None,
        author_role=author.role if author else None,
        parent_id=comment.parent_id,
        content=comment.content,
        edited_at=comment.edited_at,
        created_at=comment.created_at,
    )


@router.get("/documents/{document_id}/comments", response_model=List[CommentResponse])
async def list_comments(
    document_id: uuid.UUID,
    user: CurrentPrincipal,
    db: DbSession,
    engine: Engine,
):
    """List active comments on a document the caller can read."""
    await engine.check_access(document_id, user)
    comments = await CommentRepository(db).list_for_document(document_id)
    return [_to_response(c) for c in comments]


@router.post(
    "/documents/{document_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_comment(
    request: Request,
    document_id: uuid.UUID,
    data: CommentCreate,
    user: CurrentPrincipal,
    db: DbSession,
    engine: Engine,
):
    """Comment on a document, or reply to one of its comments."""
    await engine.ensure_can_comment(document_id, user, parent_id=data.parent_id)

    repo = CommentRepository(db)
    comment = await repo.create(
        document_id=document_id,
        author_id=user.id,
        content=data.content,
        parent_id=data.parent_id,
    )
    await db.refresh(comment, attribute_names=["author"])

    await audit(
        engine,
        request,
        user,
        AuditAction.COMMENT_CREATE.value,
        "comment",
        comment.id,
        details={"document_id": document_id, "parent_id": data.parent_id},
    )
    return _to_response(comment)


@router.get("/comments/{comment_id}/can-reply", response_model=ReplyCheckResponse)
async def check_reply_permission(
    comment_id: uuid.UUID,
    user: CurrentPrincipal,
    engine: Engine,
):
    """Whether the caller may reply to this comment right now."""
    decision = await engine.can_reply(comment_id, user)
    return ReplyCheckResponse(allowed=decision.allowed, reason=decision.reason)


@router.patch("/comments/{comment_id}", response_model=CommentResponse)
async def update_comment(
    request: Request,
    comment_id: uuid.UUID,
    data: CommentUpdate,
    user: CurrentPrincipal,
    db: DbSession,
    engine: Engine,
):
    """Edit a comment's text (author or admin)."""
    await engine.edit_comment(comment_id, user, data.content)
    comment = await CommentRepository(db).load(comment_id)

    await audit(engine, request, user, AuditAction.COMMENT_UPDATE.value, "comment", comment_id)
    return _to_response(comment)


@router.delete("/comments/{comment_id}", response_model=CommentDeleteResponse)
async def delete_comment(
    request: Request,
    comment_id: uuid.UUID,
    user: CurrentPrincipal,
    engine: Engine,
):
    """Delete a comment and its direct replies."""
    deleted = await engine.delete_comment(comment_id, user)
    await audit(
        engine,
        request,
        user,
        AuditAction.COMMENT_DELETE.value,
        "comment",
        comment_id,
        details={"cascade": len(deleted) - 1},
    )
    return CommentDeleteResponse(deleted_ids=deleted)
