"""
Comment schemas.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from src.kernel.models.user import UserRole


class CommentCreate(BaseModel):
    """Comment creation request; set parent_id to reply."""

    content: str = Field(..., min_length=1, max_length=5000)
    parent_id: Optional[uuid.UUID] = None


class CommentUpdate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


class CommentResponse(BaseModel):
    """Comment response."""

    id: uuid.UUID
    document_id: uuid.UUID
    author_id: uuid.UUID
    author_name: Optional[str] = None
    author_role: Optional[UserRole] = None
    parent_id: Optional[uuid.UUID] = None
    content: str
    edited_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ReplyCheckResponse(BaseModel):
    """Whether the caller may reply to a comment."""

    allowed: bool
    reason: Optional[str] = None


class CommentDeleteResponse(BaseModel):
    """Ids of the comment and direct replies that were deleted."""

    deleted_ids: List[uuid.UUID]
