"""
Trash endpoints - deleted documents, restore and purge.
"""

import uuid
from typing import List

from fastapi import APIRouter, Request

from src.api.deps import AdminPrincipal, CurrentPrincipal, DbSession, Engine, audit
from src.engines.policy import TrashEntry
from src.kernel.models.audit_log import AuditAction
from src.kernel.repositories import DocumentRepository
from src.schemas.document import DocumentResponse
from src.schemas.trash import PurgeResponse, TrashItemResponse, TrashStatsResponse

router = APIRouter()


def _to_item(entry: TrashEntry) -> TrashItemResponse:
    artifact = entry.artifact
    return TrashItemResponse(
        id=artifact.id,
        title=artifact.title,
        category=artifact.category,
        owner_id=artifact.owner_id,
        correction_of_id=artifact.correction_of_id,
        deleted_at=entry.deleted_at,
        deleted_by=entry.deleted_by,
        days_left=entry.days_left,
    )


@router.get("/documents", response_model=List[TrashItemResponse])
async def list_deleted_documents(user: CurrentPrincipal, engine: Engine):
    """Deleted documents still restorable (admins see all, others their own)."""
    return [_to_item(e) for e in await engine.list_trash(user)]


@router.get("/documents/expiring", response_model=List[TrashItemResponse])
async def list_expiring_documents(user: CurrentPrincipal, engine: Engine):
    """Deleted documents with seven days or fewer left."""
    return [_to_item(e) for e in await engine.expiring_soon(user)]


@router.get("/stats", response_model=TrashStatsResponse)
async def get_trash_stats(user: CurrentPrincipal, engine: Engine):
    stats = await engine.trash_stats(user)
    return TrashStatsResponse(**stats.model_dump())


@router.post("/documents/{document_id}/restore", response_model=DocumentResponse)
async def restore_document(
    request: Request,
    document_id: uuid.UUID,
    user: CurrentPrincipal,
    db: DbSession,
    engine: Engine,
):
    """Restore a deleted document inside its recovery window."""
    artifact = await engine.restore(document_id, user)
    await audit(engine, request, user, AuditAction.DOCUMENT_RESTORE.value, "document", document_id)

    document = await DocumentRepository(db).load(artifact.id)
    return DocumentResponse.model_validate(document)


@router.post("/purge", response_model=PurgeResponse)
async def purge_expired_documents(
    request: Request,
    user: AdminPrincipal,
    engine: Engine,
):
    """Permanently remove documents deleted more than 30 days ago."""
    purged = await engine.purge_expired()
    await audit(
        engine,
        request,
        user,
        AuditAction.DOCUMENT_PURGE.value,
        "document",
        details={"purged": purged},
    )
    return PurgeResponse(purged=purged)
