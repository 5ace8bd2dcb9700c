"""
Trash schemas.
"""

import uuid
from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel

from src.kernel.models.document import DocumentCategory


class TrashItemResponse(BaseModel):
    """A deleted document still inside its recovery window."""

    id: uuid.UUID
    title: str
    category: DocumentCategory
    owner_id: uuid.UUID
    correction_of_id: Optional[uuid.UUID] = None
    deleted_at: datetime
    deleted_by: uuid.UUID
    days_left: int


class TrashStatsResponse(BaseModel):
    total_deleted: int
    expiring_soon: int
    recent_deletions: int
    by_category: Dict[str, int]


class PurgeResponse(BaseModel):
    purged: int
