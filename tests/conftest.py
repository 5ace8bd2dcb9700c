"""
Pytest fixtures for policy engine tests.

In-memory implementations of the engine's ports plus a small academic
world: track T1 with levels L2 and L3, one subject in each.
"""

import dataclasses
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pytest

from src.config import Settings
from src.engines.policy import (
    ArtifactInfo,
    CommentInfo,
    InfrastructureError,
    InMemoryTTLCache,
    PolicyEngine,
    Principal,
    SubjectInfo,
)
from src.kernel.models.academic import Responsibility
from src.kernel.models.document import DocumentCategory
from src.kernel.models.user import UserRole
from src.kernel.state import ACTIVE, LifecycleState


NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeDirectory:
    def __init__(self, subjects: Iterable[SubjectInfo] = (), terminal_levels: Iterable[uuid.UUID] = ()):
        self.subjects: Dict[uuid.UUID, SubjectInfo] = {s.id: s for s in subjects}
        self.terminal_levels = set(terminal_levels)

    async def get_subject(self, subject_id):
        return self.subjects.get(subject_id)

    async def is_assigned(self, professor_id, subject_id):
        subject = self.subjects.get(subject_id)
        return subject is not None and subject.is_taught_by(professor_id)

    async def is_terminal_level(self, level_id):
        return level_id in self.terminal_levels


class FakeArtifactStore:
    def __init__(self, journal: Optional[list] = None):
        self.items: Dict[uuid.UUID, ArtifactInfo] = {}
        self.view_counts: Dict[uuid.UUID, int] = {}
        self.download_counts: Dict[uuid.UUID, int] = {}
        self.removed: List[uuid.UUID] = []
        self.failing_removals: set = set()
        self.journal = journal if journal is not None else []

    def add(self, artifact: ArtifactInfo) -> ArtifactInfo:
        self.items[artifact.id] = artifact
        return artifact

    async def get(self, artifact_id):
        return self.items.get(artifact_id)

    async def set_lifecycle(self, artifact_id, state: LifecycleState):
        self.items[artifact_id] = dataclasses.replace(self.items[artifact_id], lifecycle=state)

    async def list_deleted(self, owner_id=None):
        return [
            a for a in self.items.values()
            if a.is_deleted and (owner_id is None or a.owner_id == owner_id)
        ]

    async def list_deleted_before(self, cutoff):
        return [a for a in self.items.values() if a.is_deleted and a.lifecycle.at < cutoff]

    async def remove(self, artifact_id):
        if artifact_id in self.failing_removals:
            raise InfrastructureError("foreign key violation", operation="documents.remove")
        del self.items[artifact_id]
        self.journal.append(("remove", artifact_id))
        self.removed.append(artifact_id)
        for other_id, other in list(self.items.items()):
            if other.correction_of_id == artifact_id:
                self.items[other_id] = dataclasses.replace(other, correction_of_id=None)

    async def get_correction(self, parent_id):
        for artifact in self.items.values():
            if artifact.correction_of_id == parent_id and artifact.is_active:
                return artifact
        return None

    async def has_active_corrections(self, parent_id, exclude_id=None):
        return any(
            a.correction_of_id == parent_id and a.is_active and a.id != exclude_id
            for a in self.items.values()
        )

    async def commit(self):
        self.journal.append(("commit",))

    async def increment_view_count(self, artifact_id):
        self.view_counts[artifact_id] = self.view_counts.get(artifact_id, 0) + 1

    async def increment_download_count(self, artifact_id):
        self.download_counts[artifact_id] = self.download_counts.get(artifact_id, 0) + 1


class FakeCommentStore:
    def __init__(self):
        self.items: Dict[uuid.UUID, CommentInfo] = {}
        self.mark_calls = 0
        self.edits: Dict[uuid.UUID, tuple] = {}

    def add(self, comment: CommentInfo) -> CommentInfo:
        self.items[comment.id] = comment
        return comment

    async def get(self, comment_id):
        return self.items.get(comment_id)

    async def replies_to(self, comment_id):
        replies = [c for c in self.items.values() if c.parent_id == comment_id and c.is_active]
        return sorted(replies, key=lambda c: c.created_at)

    async def update_content(self, comment_id, content, edited_at):
        self.edits[comment_id] = (content, edited_at)

    async def mark_deleted(self, comment_ids, state):
        self.mark_calls += 1
        ids = list(comment_ids)
        for comment_id in ids:
            self.items[comment_id] = dataclasses.replace(self.items[comment_id], lifecycle=state)
        return len(ids)


class FakeStorage:
    def __init__(
        self,
        files: Iterable[str] = (),
        failing: Iterable[str] = (),
        journal: Optional[list] = None,
    ):
        self.files = set(files)
        self.failing = set(failing)
        self.deleted: List[str] = []
        self.journal = journal if journal is not None else []

    def file_exists(self, path):
        return path in self.files

    def delete_file(self, path):
        if path in self.failing:
            raise OSError(f"permission denied: {path}")
        self.files.discard(path)
        self.deleted.append(path)
        self.journal.append(("delete_file", path))

    def move_file(self, source, destination):
        self.files.discard(source)
        self.files.add(destination)

    def path_for(self, path):
        return Path("/srv/uploads") / path


class FakeAuditSink:
    def __init__(self):
        self.events = []

    async def write(self, event):
        self.events.append(event)


class Clock:
    """Settable clock for time-dependent rules."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@dataclasses.dataclass
class World:
    track: uuid.UUID
    level_l2: uuid.UUID
    level_l3: uuid.UUID
    subject_l2: SubjectInfo
    subject_l3: SubjectInfo
    admin: Principal
    professor: Principal
    other_professor: Principal
    student: Principal
    terminal_student: Principal
    directory: FakeDirectory


@pytest.fixture
def world() -> World:
    track, level_l2, level_l3 = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    professor = Principal(id=uuid.uuid4(), role=UserRole.PROFESSOR)

    subject_l2 = SubjectInfo(
        id=uuid.uuid4(),
        track_id=track,
        level_id=level_l2,
        assignments=frozenset({(professor.id, Responsibility.LECTURE)}),
    )
    subject_l3 = SubjectInfo(id=uuid.uuid4(), track_id=track, level_id=level_l3)

    return World(
        track=track,
        level_l2=level_l2,
        level_l3=level_l3,
        subject_l2=subject_l2,
        subject_l3=subject_l3,
        admin=Principal(id=uuid.uuid4(), role=UserRole.ADMIN),
        professor=professor,
        other_professor=Principal(id=uuid.uuid4(), role=UserRole.PROFESSOR),
        student=Principal(
            id=uuid.uuid4(), role=UserRole.STUDENT, home_track_id=track, home_level_id=level_l2
        ),
        terminal_student=Principal(
            id=uuid.uuid4(), role=UserRole.STUDENT, home_track_id=track, home_level_id=level_l3
        ),
        directory=FakeDirectory([subject_l2, subject_l3], terminal_levels=[level_l3]),
    )


@pytest.fixture
def make_artifact(artifacts):
    """Factory that builds an ArtifactInfo and adds it to the fake store."""

    def _make(
        owner_id: uuid.UUID,
        category: DocumentCategory = DocumentCategory.LECTURE,
        subject_ids=(),
        lifecycle: LifecycleState = ACTIVE,
        **kwargs,
    ) -> ArtifactInfo:
        return artifacts.add(
            ArtifactInfo(
                id=uuid.uuid4(),
                category=category,
                owner_id=owner_id,
                subject_ids=frozenset(subject_ids),
                lifecycle=lifecycle,
                **kwargs,
            )
        )

    return _make


@pytest.fixture
def make_comment(comments):
    """Factory that builds a CommentInfo and adds it to the fake store."""

    def _make(
        artifact_id: uuid.UUID,
        author: Principal,
        created_at: datetime,
        parent_id: Optional[uuid.UUID] = None,
    ) -> CommentInfo:
        return comments.add(
            CommentInfo(
                id=uuid.uuid4(),
                artifact_id=artifact_id,
                author_id=author.id,
                author_role=author.role,
                created_at=created_at,
                parent_id=parent_id,
            )
        )

    return _make

@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def journal() -> list:
    """Shared record of store and storage writes, in order."""
    return []


@pytest.fixture
def artifacts(journal) -> FakeArtifactStore:
    return FakeArtifactStore(journal)


@pytest.fixture
def comments() -> FakeCommentStore:
    return FakeCommentStore()


@pytest.fixture
def storage(journal) -> FakeStorage:
    return FakeStorage(journal=journal)


@pytest.fixture
def audit_sink() -> FakeAuditSink:
    return FakeAuditSink()


@pytest.fixture
def settings() -> Settings:
    return Settings(database_url="sqlite+aiosqlite:///:memory:", redis_url=None)


@pytest.fixture
def engine(world, artifacts, comments, storage, audit_sink, settings, clock) -> PolicyEngine:
    return PolicyEngine(
        directory=world.directory,
        artifacts=artifacts,
        comments=comments,
        storage=storage,
        audit_sink=audit_sink,
        audit_cache=InMemoryTTLCache(),
        view_cache=InMemoryTTLCache(),
        settings=settings,
        clock=clock,
    )
