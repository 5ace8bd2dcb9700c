"""
Repositories implementing the policy engine's storage ports.
"""

from src.kernel.repositories.comments import CommentRepository
from src.kernel.repositories.documents import DocumentRepository

__all__ = [
    "CommentRepository",
    "DocumentRepository",
]
