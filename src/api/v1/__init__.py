"""
API v1 routes.
"""

from fastapi import APIRouter

from src.api.v1 import audit, comments, documents, subjects, trash

router = APIRouter()

# Comments before documents so /documents/{id}/comments is matched explicitly
router.include_router(comments.router, tags=["Comments"])
router.include_router(documents.router, prefix="/documents", tags=["Documents"])
router.include_router(trash.router, prefix="/trash", tags=["Trash"])
router.include_router(subjects.router, prefix="/subjects", tags=["Subjects"])
router.include_router(audit.router, prefix="/audit", tags=["Audit"])
