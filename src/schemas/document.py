"""
Document schemas.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from src.kernel.models.document import DocumentCategory


class DocumentCreate(BaseModel):
    """Document registration request (the file itself is already stored)."""

    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = Field(None, max_length=5000)
    category: DocumentCategory
    subject_ids: List[uuid.UUID] = Field(default_factory=list)
    file_path: Optional[str] = Field(None, max_length=1024)
    file_name: Optional[str] = Field(None, max_length=255)


class CorrectionCreate(BaseModel):
    """Correction registration request; subjects are inherited from the parent."""

    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = Field(None, max_length=5000)
    file_path: Optional[str] = Field(None, max_length=1024)
    file_name: Optional[str] = Field(None, max_length=255)


class DocumentUpdate(BaseModel):
    """Metadata changes; omitted fields are left as they are."""

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = Field(None, max_length=5000)
    category: Optional[DocumentCategory] = None
    subject_ids: Optional[List[uuid.UUID]] = None


class DocumentResponse(BaseModel):
    """Document response."""

    id: uuid.UUID
    title: str
    description: Optional[str] = None
    category: DocumentCategory
    owner_id: uuid.UUID
    subject_ids: List[uuid.UUID] = []
    file_name: Optional[str] = None
    view_count: int = 0
    download_count: int = 0
    correction_of_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DocumentDetailResponse(DocumentResponse):
    """Document with its active correction, if any."""

    correction: Optional[DocumentResponse] = None
