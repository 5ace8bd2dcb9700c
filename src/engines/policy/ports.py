"""
Collaborator interfaces the policy engine depends on.

The kernel provides SQLAlchemy, filesystem and Redis implementations;
tests provide in-memory ones.
"""

import uuid
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable, List, Optional, Protocol, runtime_checkable

from src.engines.policy.types import ArtifactInfo, AuditEvent, CommentInfo, SubjectInfo
from src.kernel.state import LifecycleState


@runtime_checkable
class SubjectDirectory(Protocol):
    """Read access to the academic structure."""

    async def get_subject(self, subject_id: uuid.UUID) -> Optional[SubjectInfo]: ...

    async def is_assigned(self, professor_id: uuid.UUID, subject_id: uuid.UUID) -> bool: ...

    async def is_terminal_level(self, level_id: Optional[uuid.UUID]) -> bool: ...


@runtime_checkable
class ArtifactStore(Protocol):
    """Document persistence as seen by the lifecycle rules."""

    async def get(self, artifact_id: uuid.UUID) -> Optional[ArtifactInfo]: ...

    async def set_lifecycle(self, artifact_id: uuid.UUID, state: LifecycleState) -> None: ...

    async def list_deleted(self, owner_id: Optional[uuid.UUID] = None) -> List[ArtifactInfo]: ...

    async def list_deleted_before(self, cutoff: datetime) -> List[ArtifactInfo]: ...

    async def remove(self, artifact_id: uuid.UUID) -> None:
        """Delete the record; raises InfrastructureError and leaves it intact on failure."""
        ...

    async def commit(self) -> None:
        """Make the writes so far durable."""
        ...

    async def get_correction(self, parent_id: uuid.UUID) -> Optional[ArtifactInfo]: ...

    async def has_active_corrections(
        self,
        parent_id: uuid.UUID,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> bool: ...

    async def increment_view_count(self, artifact_id: uuid.UUID) -> None: ...

    async def increment_download_count(self, artifact_id: uuid.UUID) -> None: ...


@runtime_checkable
class CommentStore(Protocol):
    """Comment persistence."""

    async def get(self, comment_id: uuid.UUID) -> Optional[CommentInfo]: ...

    async def replies_to(self, comment_id: uuid.UUID) -> List[CommentInfo]: ...

    async def update_content(self, comment_id: uuid.UUID, content: str, edited_at: datetime) -> None: ...

    async def mark_deleted(self, comment_ids: Iterable[uuid.UUID], state: LifecycleState) -> int:
        """Apply ``state`` to every id in one transaction; all or none."""
        ...


@runtime_checkable
class Storage(Protocol):
    """Blob storage for uploaded files."""

    def file_exists(self, path: str) -> bool: ...

    def delete_file(self, path: str) -> None: ...

    def move_file(self, source: str, destination: str) -> None: ...

    def path_for(self, path: str) -> Path:
        """Local filesystem path to serve ``path`` from."""
        ...


@runtime_checkable
class AuditSink(Protocol):
    """Where accepted audit events are written."""

    async def write(self, event: AuditEvent) -> None: ...


@runtime_checkable
class TTLCache(Protocol):
    """Shared key/timestamp cache used for deduplication and throttling."""

    async def get(self, key: str) -> Optional[datetime]: ...

    async def set(self, key: str, at: datetime, ttl: timedelta) -> None: ...

    async def claim(self, key: str, now: datetime, window: timedelta) -> bool:
        """Record ``key`` at ``now`` unless it was recorded within ``window``."""
        ...

    async def sweep(self, older_than: datetime) -> int: ...

    def __len__(self) -> int: ...
