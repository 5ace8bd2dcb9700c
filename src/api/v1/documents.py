"""
Document endpoints - listing, detail, registration, edits, downloads, corrections and soft delete.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request, status
from fastapi.responses import FileResponse

from src.api.deps import CurrentPrincipal, DbSession, Engine, audit
from src.engines.policy import ListFilters
from src.kernel.models.audit_log import AuditAction
from src.kernel.models.document import DocumentCategory
from src.kernel.repositories import DocumentRepository
from src.schemas.common import PaginatedResponse
from src.schemas.document import (
    CorrectionCreate,
    DocumentCreate,
    DocumentDetailResponse,
    DocumentResponse,
    DocumentUpdate,
)

router = APIRouter()


@router.get("", response_model=PaginatedResponse[DocumentResponse])
async def list_documents(
    user: CurrentPrincipal,
    db: DbSession,
    engine: Engine,
    subject_id: Optional[uuid.UUID] = Query(None),
    category: Optional[DocumentCategory] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    owner_id: Optional[uuid.UUID] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    """List active documents the caller may see (corrections excluded)."""
    filters = ListFilters(
        subject_id=subject_id,
        category=category,
        search=search,
        owner_id=owner_id,
    )
    predicate = await engine.build_list_predicate(filters, user)
    documents, total = await DocumentRepository(db).list_visible(predicate, page, page_size)

    return PaginatedResponse.create(
        items=[DocumentResponse.model_validate(doc) for doc in documents],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def create_document(
    request: Request,
    data: DocumentCreate,
    user: CurrentPrincipal,
    db: DbSession,
    engine: Engine,
):
    """Register an uploaded document."""
    engine.ensure_can_upload(user, data.category)
    try:
        document = await DocumentRepository(db).create(
            title=data.title,
            description=data.description,
            category=data.category,
            owner_id=user.id,
            subject_ids=data.subject_ids,
            file_path=data.file_path,
            file_name=data.file_name,
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc

    await audit(engine, request, user, AuditAction.DOCUMENT_UPLOAD.value, "document", document.id)
    return DocumentResponse.model_validate(document)


@router.get("/{document_id}", response_model=DocumentDetailResponse)
async def get_document(
    request: Request,
    document_id: uuid.UUID,
    user: CurrentPrincipal,
    db: DbSession,
    engine: Engine,
):
    """Get a document and its active correction."""
    artifact, correction = await engine.get_artifact_with_correction(document_id, user)
    await engine.record_view(artifact.id)

    repo = DocumentRepository(db)
    document = await repo.load(artifact.id)
    response = DocumentDetailResponse.model_validate(document)
    if correction is not None:
        response.correction = DocumentResponse.model_validate(await repo.load(correction.id))

    await audit(engine, request, user, AuditAction.DOCUMENT_VIEW.value, "document", document_id)
    return response


@router.post(
    "/{document_id}/correction",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_correction(
    request: Request,
    document_id: uuid.UUID,
    data: CorrectionCreate,
    user: CurrentPrincipal,
    db: DbSession,
    engine: Engine,
):
    """Attach a correction to a document; at most one may be active."""
    parent = await engine.ensure_correction_slot(document_id, user)

    document = await DocumentRepository(db).create(
        title=data.title,
        description=data.description,
        category=parent.category,
        owner_id=user.id,
        subject_ids=parent.subject_ids,
        file_path=data.file_path,
        file_name=data.file_name,
        correction_of_id=parent.id,
    )

    await audit(
        engine,
        request,
        user,
        AuditAction.DOCUMENT_UPLOAD.value,
        "document",
        document.id,
        details={"correction_of": parent.id},
    )
    return DocumentResponse.model_validate(document)


@router.patch("/{document_id}", response_model=DocumentResponse)
async def update_document(
    request: Request,
    document_id: uuid.UUID,
    data: DocumentUpdate,
    user: CurrentPrincipal,
    db: DbSession,
    engine: Engine,
):
    """Edit a document's metadata (owner or admin)."""
    changes = data.model_dump(exclude_unset=True, exclude={"subject_ids"})
    for field in ("title", "category"):
        if field in changes and changes[field] is None:
            del changes[field]
    subject_ids = data.subject_ids

    await engine.ensure_can_update(document_id, user, category=changes.get("category"))
    try:
        document = await DocumentRepository(db).update(
            document_id, subject_ids=subject_ids, **changes
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc

    await audit(
        engine,
        request,
        user,
        AuditAction.DOCUMENT_UPDATE.value,
        "document",
        document_id,
        details={"fields": sorted(changes), "subjects_replaced": subject_ids is not None},
    )
    return DocumentResponse.model_validate(document)


@router.get("/{document_id}/download")
async def download_document(
    request: Request,
    document_id: uuid.UUID,
    user: CurrentPrincipal,
    db: DbSession,
    engine: Engine,
):
    """Stream the document's file and count the download."""
    artifact = await engine.download(document_id, user)
    document = await DocumentRepository(db).load(artifact.id)

    await audit(engine, request, user, AuditAction.DOCUMENT_DOWNLOAD.value, "document", document_id)
    return FileResponse(
        engine.storage.path_for(artifact.file_path),
        filename=document.file_name or None,
    )


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    request: Request,
    document_id: uuid.UUID,
    user: CurrentPrincipal,
    engine: Engine,
):
    """Move a document to the trash (restorable for 30 days)."""
    await engine.soft_delete(document_id, user)
    await audit(engine, request, user, AuditAction.DOCUMENT_DELETE.value, "document", document_id)
