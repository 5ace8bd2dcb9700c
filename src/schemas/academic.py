"""
Academic structure schemas.
"""

import uuid

from pydantic import BaseModel

from src.kernel.models.academic import Responsibility


class AssignmentCreate(BaseModel):
    """Assign a professor to one responsibility in a subject."""

    professor_id: uuid.UUID
    responsibility: Responsibility


class AssignmentResponse(BaseModel):
    id: uuid.UUID
    subject_id: uuid.UUID
    professor_id: uuid.UUID
    responsibility: Responsibility

    class Config:
        from_attributes = True
