"""
Audit log endpoints (admin only).
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Query

from src.api.deps import AdminPrincipal, DbSession
from src.kernel.events.audit_sink import AuditLogStore
from src.kernel.models.audit_log import AuditAction
from src.schemas.audit import AuditLogResponse
from src.schemas.common import PaginatedResponse

router = APIRouter()


@router.get("/logs", response_model=PaginatedResponse[AuditLogResponse])
async def list_audit_logs(
    user: AdminPrincipal,
    db: DbSession,
    user_id: Optional[uuid.UUID] = Query(None, description="Only entries by this user"),
    action: Optional[AuditAction] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
):
    """Audit entries, newest first."""
    store = AuditLogStore(db)
    action_value = action.value if action else None
    entries = await store.recent(
        user_id=user_id,
        action=action_value,
        limit=page_size,
        offset=(page - 1) * page_size,
    )
    total = await store.count(user_id=user_id, action=action_value)
    return PaginatedResponse.create(
        items=[AuditLogResponse.model_validate(e) for e in entries],
        total=total,
        page=page,
        page_size=page_size,
    )
