"""
Lifecycle Manager - soft delete, restore window and purge.

    Active --delete--> Deleted --restore--> Active
    Deleted --purge (older than the window)--> Purged

Purged is terminal: the row is removed and cannot come back.
"""

import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from src.engines.policy.errors import (
    ConflictError,
    ExpiredWindowError,
    ForbiddenError,
    InfrastructureError,
    NotFoundError,
)
from src.engines.policy.ports import ArtifactStore, Storage
from src.engines.policy.types import ArtifactInfo, Principal
from src.kernel.state import ACTIVE, Deleted, ensure_utc, utcnow
from src.logging_config import get_logger

logger = get_logger(__name__)

ONE_DAY = timedelta(days=1)

# Returns a refusal reason, or None when deletion may proceed
DeleteGuard = Callable[[ArtifactInfo], Awaitable[Optional[str]]]


@dataclass(frozen=True)
class TrashEntry:
    """A deleted document still inside its recovery window."""

    artifact: ArtifactInfo
    deleted_at: datetime
    deleted_by: uuid.UUID
    days_left: int


class TrashStats(BaseModel):
    total_deleted: int = 0
    expiring_soon: int = 0
    recent_deletions: int = 0
    by_category: Dict[str, int] = Field(default_factory=dict)


class PurgeReport(BaseModel):
    """Result of one purge batch."""

    purged: int = 0
    failures: List[uuid.UUID] = Field(default_factory=list)
    file_failures: List[uuid.UUID] = Field(default_factory=list)


class LifecycleManager:
    """
    Applies lifecycle transitions to documents.

    Every transition is a single ``set_lifecycle`` call on the store, so the
    store's transaction covers the whole change.
    """

    def __init__(
        self,
        artifacts: ArtifactStore,
        storage: Storage,
        recovery_window: timedelta = timedelta(days=30),
        expiring_soon_days: int = 7,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.artifacts = artifacts
        self.storage = storage
        self.recovery_window = recovery_window
        self.expiring_soon_days = expiring_soon_days
        self.clock = clock

    def _now(self, now: Optional[datetime]) -> datetime:
        return ensure_utc(now) if now is not None else self.clock()

    @staticmethod
    def _can_mutate(artifact: ArtifactInfo, principal: Principal) -> bool:
        return principal.is_admin or artifact.owner_id == principal.id

    def days_left(self, deleted_at: datetime, now: datetime) -> int:
        """Whole days remaining before the document becomes purgeable."""
        elapsed = ensure_utc(now) - ensure_utc(deleted_at)
        return self.recovery_window.days - math.floor(elapsed / ONE_DAY)

    def is_expired(self, deleted_at: datetime, now: datetime) -> bool:
        return ensure_utc(now) - ensure_utc(deleted_at) > self.recovery_window

    async def soft_delete(
        self,
        artifact_id: uuid.UUID,
        principal: Principal,
        guard: Optional[DeleteGuard] = None,
        now: Optional[datetime] = None,
    ) -> ArtifactInfo:
        artifact = await self.artifacts.get(artifact_id)
        if artifact is None or not artifact.is_active:
            raise NotFoundError("Document not found", resource_id=artifact_id)

        if not self._can_mutate(artifact, principal):
            raise ForbiddenError(
                "Only the owner or an admin may delete this document",
                resource_id=artifact_id,
            )

        if guard is not None:
            reason = await guard(artifact)
            if reason:
                raise ConflictError(reason, resource_id=artifact_id)

        state = Deleted(at=self._now(now), by=principal.id)
        await self.artifacts.set_lifecycle(artifact_id, state)
        logger.info(
            "Document soft-deleted",
            extra={"document_id": str(artifact_id), "deleted_by": str(principal.id)},
        )
        return await self.artifacts.get(artifact_id) or artifact

    async def restore(
        self,
        artifact_id: uuid.UUID,
        principal: Principal,
        now: Optional[datetime] = None,
    ) -> ArtifactInfo:
        """
        Bring a deleted document back.

        Checked in order: still deleted, inside the window, caller may mutate,
        and, for corrections, the parent has no other active correction.
        """
        artifact = await self.artifacts.get(artifact_id)
        if artifact is None or not isinstance(artifact.lifecycle, Deleted):
            raise NotFoundError("Deleted document not found", resource_id=artifact_id)

        if self.is_expired(artifact.lifecycle.at, self._now(now)):
            raise ExpiredWindowError(
                f"Recovery window of {self.recovery_window.days} days has passed",
                resource_id=artifact_id,
            )

        if not self._can_mutate(artifact, principal):
            raise ForbiddenError(
                "Only the owner or an admin may restore this document",
                resource_id=artifact_id,
            )

        if artifact.correction_of_id is not None and await self.artifacts.has_active_corrections(
            artifact.correction_of_id, exclude_id=artifact_id
        ):
            raise ConflictError(
                "The corrected document already has an active correction",
                resource_id=artifact_id,
            )

        await self.artifacts.set_lifecycle(artifact_id, ACTIVE)
        logger.info(
            "Document restored",
            extra={"document_id": str(artifact_id), "restored_by": str(principal.id)},
        )
        return await self.artifacts.get(artifact_id) or artifact

    async def purge_expired(self, now: Optional[datetime] = None) -> PurgeReport:
        """
        Remove every document deleted longer ago than the window.

        Each document is removed and committed on its own; its file is
        deleted only once the removal is durable. A document whose removal
        fails stays in the trash for the next run.
        """
        now = self._now(now)
        report = PurgeReport()

        for artifact in await self.artifacts.list_deleted_before(now - self.recovery_window):
            try:
                await self.artifacts.remove(artifact.id)
                await self.artifacts.commit()
            except InfrastructureError as exc:
                report.failures.append(artifact.id)
                logger.error(
                    "Document removal failed during purge",
                    extra={"document_id": str(artifact.id), "error": str(exc)},
                )
                continue
            report.purged += 1

            if artifact.file_path:
                try:
                    if self.storage.file_exists(artifact.file_path):
                        self.storage.delete_file(artifact.file_path)
                except (OSError, InfrastructureError) as exc:
                    report.file_failures.append(artifact.id)
                    logger.warning(
                        "File removal failed during purge",
                        extra={
                            "document_id": str(artifact.id),
                            "file_path": artifact.file_path,
                            "error": str(exc),
                        },
                    )

        logger.info(
            "Purge finished",
            extra={
                "purged": report.purged,
                "failures": len(report.failures),
                "file_failures": len(report.file_failures),
            },
        )
        return report

    async def list_trash(
        self,
        principal: Principal,
        now: Optional[datetime] = None,
    ) -> List[TrashEntry]:
        """Deleted documents still restorable; admins see all, others their own."""
        now = self._now(now)
        owner_id = None if principal.is_admin else principal.id

        entries = []
        for artifact in await self.artifacts.list_deleted(owner_id=owner_id):
            state = artifact.lifecycle
            if not isinstance(state, Deleted) or self.is_expired(state.at, now):
                continue
            entries.append(
                TrashEntry(
                    artifact=artifact,
                    deleted_at=state.at,
                    deleted_by=state.by,
                    days_left=self.days_left(state.at, now),
                )
            )
        entries.sort(key=lambda entry: entry.deleted_at, reverse=True)
        return entries

    async def expiring_soon(
        self,
        principal: Principal,
        now: Optional[datetime] = None,
    ) -> List[TrashEntry]:
        entries = await self.list_trash(principal, now)
        return sorted(
            (e for e in entries if e.days_left <= self.expiring_soon_days),
            key=lambda entry: entry.days_left,
        )

    async def trash_stats(
        self,
        principal: Principal,
        now: Optional[datetime] = None,
    ) -> TrashStats:
        now = self._now(now)
        stats = TrashStats()
        recent_cutoff = now - timedelta(days=self.expiring_soon_days)

        for entry in await self.list_trash(principal, now):
            stats.total_deleted += 1
            if entry.days_left <= self.expiring_soon_days:
                stats.expiring_soon += 1
            if entry.deleted_at >= recent_cutoff:
                stats.recent_deletions += 1
            category = entry.artifact.category.value
            stats.by_category[category] = stats.by_category.get(category, 0) + 1
        return stats
