"""
Subject assignment endpoints (admin only).
"""

import uuid

from fastapi import APIRouter, Request, status

from src.api.deps import AdminPrincipal, Directory, Engine, audit
from src.kernel.models.audit_log import AuditAction
from src.schemas.academic import AssignmentCreate, AssignmentResponse

router = APIRouter()


@router.post(
    "/{subject_id}/assignments",
    response_model=AssignmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def assign_professor(
    request: Request,
    subject_id: uuid.UUID,
    data: AssignmentCreate,
    user: AdminPrincipal,
    directory: Directory,
    engine: Engine,
):
    """Give a professor a lecture, tutorial or lab responsibility in a subject."""
    assignment = await directory.assign_professor(subject_id, data.professor_id, data.responsibility)
    await audit(
        engine,
        request,
        user,
        AuditAction.SUBJECT_ASSIGN.value,
        "subject",
        subject_id,
        details={"professor_id": data.professor_id, "responsibility": data.responsibility.value},
    )
    return AssignmentResponse.model_validate(assignment)
