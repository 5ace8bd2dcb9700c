"""
Document repository - the SQL side of the engine's ArtifactStore port.
"""

import uuid
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.engines.policy.errors import ConflictError, InfrastructureError, NotFoundError
from src.engines.policy.predicates import Predicate
from src.engines.policy.types import ArtifactInfo
from src.kernel.models.academic import Subject
from src.kernel.models.comment import Comment
from src.kernel.models.document import Document, DocumentCategory, document_subjects
from src.kernel.permissions.query_compiler import compile_predicate
from src.kernel.state import LifecycleState
from src.logging_config import get_logger

logger = get_logger(__name__)

DUPLICATE_CORRECTION = "The corrected document already has an active correction"


def to_artifact_info(document: Document) -> ArtifactInfo:
    """Snapshot an ORM row (with subjects loaded) for the policy engine."""
    return ArtifactInfo(
        id=document.id,
        category=DocumentCategory(document.category),
        owner_id=document.owner_id,
        subject_ids=frozenset(document.subject_ids),
        lifecycle=document.lifecycle,
        correction_of_id=document.correction_of_id,
        file_path=document.file_path,
        title=document.title,
        description=document.description,
    )


class DocumentRepository:
    """Document reads and lifecycle writes within one session."""

    UPDATABLE_FIELDS = frozenset({"title", "description", "category"})

    def __init__(self, session: AsyncSession):
        self.session = session

    async def load(self, document_id: uuid.UUID) -> Optional[Document]:
        """The ORM row, subjects loaded, regardless of lifecycle state."""
        result = await self.session.execute(
            select(Document)
            .where(Document.id == document_id)
            .options(selectinload(Document.subjects))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get(self, artifact_id: uuid.UUID) -> Optional[ArtifactInfo]:
        document = await self.load(artifact_id)
        return to_artifact_info(document) if document else None

    async def set_lifecycle(self, artifact_id: uuid.UUID, state: LifecycleState) -> None:
        """
        Raises:
            NotFoundError: Unknown document
            ConflictError: Restoring a correction whose parent already has an active one
        """
        document = await self.session.get(Document, artifact_id)
        if document is None:
            raise NotFoundError("Document not found", resource_id=artifact_id)
        document.lifecycle = state
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise ConflictError(DUPLICATE_CORRECTION, resource_id=artifact_id) from exc

    async def _list(self, *criteria) -> List[ArtifactInfo]:
        result = await self.session.execute(
            select(Document)
            .where(*criteria)
            .options(selectinload(Document.subjects))
            .order_by(Document.deleted_at.desc())
        )
        return [to_artifact_info(doc) for doc in result.scalars().all()]

    async def list_deleted(self, owner_id: Optional[uuid.UUID] = None) -> List[ArtifactInfo]:
        criteria = [Document.deleted_at.is_not(None)]
        if owner_id is not None:
            criteria.append(Document.owner_id == owner_id)
        return await self._list(*criteria)

    async def list_deleted_before(self, cutoff: datetime) -> List[ArtifactInfo]:
        return await self._list(Document.deleted_at.is_not(None), Document.deleted_at < cutoff)

    async def remove(self, artifact_id: uuid.UUID) -> None:
        """
        Delete the row with its comments and subject links; corrections are detached.

        Runs in a savepoint so a failure leaves the row and the rest of the
        transaction intact.
        """
        try:
            async with self.session.begin_nested():
                await self.session.execute(delete(Comment).where(Comment.document_id == artifact_id))
                await self.session.execute(
                    delete(document_subjects).where(document_subjects.c.document_id == artifact_id)
                )
                await self.session.execute(
                    update(Document)
                    .where(Document.correction_of_id == artifact_id)
                    .values(correction_of_id=None)
                )
                await self.session.execute(delete(Document).where(Document.id == artifact_id))
        except SQLAlchemyError as exc:
            raise InfrastructureError(str(exc), operation="documents.remove") from exc

    async def commit(self) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise InfrastructureError(str(exc), operation="documents.commit") from exc

    async def get_correction(self, parent_id: uuid.UUID) -> Optional[ArtifactInfo]:
        result = await self.session.execute(
            select(Document)
            .where(Document.correction_of_id == parent_id, Document.deleted_at.is_(None))
            .options(selectinload(Document.subjects))
        )
        document = result.scalar_one_or_none()
        return to_artifact_info(document) if document else None

    async def has_active_corrections(
        self,
        parent_id: uuid.UUID,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> bool:
        query = select(Document.id).where(
            Document.correction_of_id == parent_id,
            Document.deleted_at.is_(None),
        )
        if exclude_id is not None:
            query = query.where(Document.id != exclude_id)
        result = await self.session.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    async def increment_view_count(self, artifact_id: uuid.UUID) -> None:
        await self.session.execute(
            update(Document)
            .where(Document.id == artifact_id)
            .values(view_count=Document.view_count + 1)
        )

    async def increment_download_count(self, artifact_id: uuid.UUID) -> None:
        await self.session.execute(
            update(Document)
            .where(Document.id == artifact_id)
            .values(download_count=Document.download_count + 1)
        )

    async def list_visible(
        self,
        predicate: Predicate,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[Document], int]:
        """One page of documents matching ``predicate``, newest first, plus the total."""
        clause = compile_predicate(predicate)

        total = await self.session.scalar(
            select(func.count()).select_from(Document).where(clause)
        )
        result = await self.session.execute(
            select(Document)
            .where(clause)
            .options(selectinload(Document.subjects))
            .order_by(Document.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total or 0

    async def _load_subjects(self, subject_ids: Iterable[uuid.UUID]) -> List[Subject]:
        subject_ids = list(dict.fromkeys(subject_ids))
        if not subject_ids:
            return []
        result = await self.session.execute(select(Subject).where(Subject.id.in_(subject_ids)))
        subjects = list(result.scalars().all())
        missing = set(subject_ids) - {s.id for s in subjects}
        if missing:
            raise NotFoundError("Subject not found", resource_id=next(iter(missing)))
        return subjects

    async def create(
        self,
        *,
        title: str,
        category: DocumentCategory,
        owner_id: uuid.UUID,
        subject_ids: Iterable[uuid.UUID] = (),
        description: Optional[str] = None,
        file_path: Optional[str] = None,
        file_name: Optional[str] = None,
        correction_of_id: Optional[uuid.UUID] = None,
    ) -> Document:
        """
        Insert a document linked to existing subjects.

        Raises:
            NotFoundError: One of the subjects does not exist
            ValueError: Non-capstone document without subjects
            ConflictError: The corrected document already has an active correction
        """
        category = DocumentCategory(category)
        subjects = await self._load_subjects(subject_ids)
        if not subjects and category != DocumentCategory.CAPSTONE:
            raise ValueError("Only capstone documents may have no subjects")

        document = Document(
            title=title,
            description=description,
            category=category.value,
            owner_id=owner_id,
            file_path=file_path,
            file_name=file_name,
            correction_of_id=correction_of_id,
            subjects=subjects,
        )
        self.session.add(document)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            if correction_of_id is None:
                raise
            # Lost a race with a concurrent correction upload
            logger.info(
                "Rejected duplicate correction",
                extra={"correction_of_id": str(correction_of_id)},
            )
            raise ConflictError(DUPLICATE_CORRECTION, resource_id=correction_of_id) from exc
        return document

    async def update(
        self,
        document_id: uuid.UUID,
        *,
        subject_ids: Optional[Iterable[uuid.UUID]] = None,
        **changes,
    ) -> Document:
        """
        Change a document's metadata and, when given, replace its subjects.

        Raises:
            NotFoundError: Unknown document or subject
            ValueError: Unknown field, or a non-capstone document left without subjects
        """
        unknown = set(changes) - self.UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update: {', '.join(sorted(unknown))}")

        document = await self.load(document_id)
        if document is None:
            raise NotFoundError("Document not found", resource_id=document_id)

        if "category" in changes:
            changes["category"] = DocumentCategory(changes["category"]).value
        for field, value in changes.items():
            setattr(document, field, value)
        if subject_ids is not None:
            document.subjects = await self._load_subjects(subject_ids)

        if not document.subjects and document.category != DocumentCategory.CAPSTONE.value:
            raise ValueError("Only capstone documents may have no subjects")

        await self.session.flush()
        return document
