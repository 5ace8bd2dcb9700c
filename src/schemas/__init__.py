"""
Pydantic schemas for API request/response validation.
"""

from src.schemas.academic import AssignmentCreate, AssignmentResponse
from src.schemas.audit import AuditLogResponse
from src.schemas.comment import (
    CommentCreate,
    CommentUpdate,
    CommentResponse,
    CommentDeleteResponse,
    ReplyCheckResponse,
)
from src.schemas.common import (
    PaginatedResponse,
    ErrorResponse,
    HealthResponse,
)
from src.schemas.document import (
    CorrectionCreate,
    DocumentCreate,
    DocumentUpdate,
    DocumentResponse,
    DocumentDetailResponse,
)
from src.schemas.trash import PurgeResponse, TrashItemResponse, TrashStatsResponse

__all__ = [
    # Academic
    "AssignmentCreate",
    "AssignmentResponse",
    # Audit
    "AuditLogResponse",
    # Comments
    "CommentCreate",
    "CommentUpdate",
    "CommentResponse",
    "CommentDeleteResponse",
    "ReplyCheckResponse",
    # Documents
    "CorrectionCreate",
    "DocumentCreate",
    "DocumentUpdate",
    "DocumentResponse",
    "DocumentDetailResponse",
    # Trash
    "PurgeResponse",
    "TrashItemResponse",
    "TrashStatsResponse",
    # Common
    "PaginatedResponse",
    "ErrorResponse",
    "HealthResponse",
]
