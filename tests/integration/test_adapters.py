"""Integration tests for the subject directory, audit sink, file storage and wired engine."""

import uuid
from datetime import timedelta

import pytest

from src.config import Settings
from src.engines.policy import (
    AuditEvent,
    ConflictError,
    ExpiredWindowError,
    ForbiddenError,
    InfrastructureError,
    NotFoundError,
)
from src.kernel.events import AuditLogStore
from src.kernel.identity import AuthenticationError, ScopeProvider, create_access_token
from src.kernel.models import AuditAction, DocumentCategory, Responsibility
from src.kernel.permissions import SqlSubjectDirectory
from src.kernel.policy_factory import build_policy_engine
from src.kernel.repositories import CommentRepository, DocumentRepository
from src.kernel.state import utcnow
from src.kernel.storage import LocalFileStorage


@pytest.fixture
def directory(db_session):
    return SqlSubjectDirectory(db_session, ["L3", "3ING", "M2"])


class TestSqlSubjectDirectory:
    @pytest.mark.asyncio
    async def test_get_subject_resolves_level_and_assignments(self, directory, campus):
        info = await directory.get_subject(campus.subject_l2.id)

        assert info.track_id == campus.track_l2.id
        assert info.level_id == campus.level_l2.id
        assert info.is_taught_by(campus.professor.id)
        assert await directory.get_subject(uuid.uuid4()) is None

    @pytest.mark.asyncio
    async def test_assignment_and_terminal_levels(self, directory, campus):
        assert await directory.is_assigned(campus.professor.id, campus.subject_l2.id)
        assert not await directory.is_assigned(campus.professor.id, campus.subject_l3.id)
        assert await directory.is_terminal_level(campus.level_l3.id)
        assert not await directory.is_terminal_level(campus.level_l2.id)
        assert not await directory.is_terminal_level(None)

    @pytest.mark.asyncio
    async def test_assign_professor(self, directory, campus):
        assignment = await directory.assign_professor(
            campus.subject_l3.id, campus.other_professor.id, Responsibility.LAB
        )
        assert assignment.responsibility == "lab"
        assert await directory.is_assigned(campus.other_professor.id, campus.subject_l3.id)

    @pytest.mark.asyncio
    async def test_responsibility_is_held_once_per_subject(self, directory, campus):
        with pytest.raises(ConflictError):
            await directory.assign_professor(
                campus.subject_l2.id, campus.other_professor.id, Responsibility.LECTURE
            )

    @pytest.mark.asyncio
    async def test_assign_requires_subject_and_professor(self, directory, campus):
        with pytest.raises(NotFoundError):
            await directory.assign_professor(uuid.uuid4(), campus.professor.id, Responsibility.LAB)
        with pytest.raises(NotFoundError):
            await directory.assign_professor(campus.subject_l2.id, campus.student.id, Responsibility.LAB)


class TestAuditLogStore:
    @pytest.mark.asyncio
    async def test_write_and_query(self, db_session, campus):
        store = AuditLogStore(db_session)
        resource_id = uuid.uuid4()
        await store.write(
            AuditEvent(
                action=AuditAction.DOCUMENT_DELETE.value,
                timestamp=utcnow(),
                principal_id=campus.admin.id,
                resource="document",
                resource_id=str(resource_id),
                details={"document_id": resource_id, "tags": [resource_id]},
            )
        )
        await store.write(
            AuditEvent(
                action=AuditAction.DOCUMENT_VIEW.value,
                timestamp=utcnow(),
                principal_id=campus.student.id,
            )
        )

        entries = await store.recent(user_id=campus.admin.id)
        assert len(entries) == 1
        assert entries[0].details == {"document_id": str(resource_id), "tags": [str(resource_id)]}
        assert await store.count() == 2
        assert await store.count(action=AuditAction.DOCUMENT_VIEW.value) == 1


class TestLocalFileStorage:
    def test_delete_and_move(self, tmp_path):
        storage = LocalFileStorage(tmp_path)
        (tmp_path / "a.pdf").write_bytes(b"%PDF")

        assert storage.file_exists("a.pdf")
        storage.move_file("a.pdf", "archive/a.pdf")
        assert storage.file_exists("archive/a.pdf")

        storage.delete_file("archive/a.pdf")
        storage.delete_file("archive/a.pdf")
        assert not storage.file_exists("archive/a.pdf")

    def test_paths_outside_root_are_refused(self, tmp_path):
        storage = LocalFileStorage(tmp_path / "uploads")
        with pytest.raises(InfrastructureError):
            storage.delete_file("../secrets.txt")

    def test_path_for_resolves_inside_root(self, tmp_path):
        storage = LocalFileStorage(tmp_path)
        assert storage.path_for("docs/a.pdf") == tmp_path.resolve() / "docs" / "a.pdf"
        with pytest.raises(InfrastructureError):
            storage.path_for("../../etc/passwd")


class TestWiredEngine:
    """The engine over real adapters, sharing one session."""

    @pytest.fixture
    def engine(self, db_session, tmp_path):
        settings = Settings(database_url="sqlite+aiosqlite:///:memory:", upload_dir=str(tmp_path))
        return build_policy_engine(db_session, settings)

    @pytest.mark.asyncio
    async def test_delete_restore_and_purge(self, engine, db_session, campus, tmp_path):
        (tmp_path / "thesis.pdf").write_bytes(b"%PDF")
        doc = await DocumentRepository(db_session).create(
            title="Thesis", category=DocumentCategory.CAPSTONE, owner_id=campus.admin.id,
            file_path="thesis.pdf",
        )
        admin = campus.principal("admin")

        deleted = await engine.soft_delete(doc.id, admin)
        assert deleted.is_deleted
        assert [e.artifact.id for e in await engine.list_trash(admin)] == [doc.id]

        restored = await engine.restore(doc.id, admin)
        assert restored.is_active

        await engine.soft_delete(doc.id, admin)
        assert await engine.purge_expired(now=utcnow() + timedelta(days=31)) == 1
        assert await DocumentRepository(db_session).get(doc.id) is None
        assert not (tmp_path / "thesis.pdf").exists()

    @pytest.mark.asyncio
    async def test_restore_after_window(self, engine, db_session, campus):
        doc = await DocumentRepository(db_session).create(
            title="Old", category=DocumentCategory.CAPSTONE, owner_id=campus.admin.id
        )
        admin = campus.principal("admin")
        await engine.soft_delete(doc.id, admin)

        with pytest.raises(ExpiredWindowError):
            await engine.lifecycle.restore(doc.id, admin, now=utcnow() + timedelta(days=30, seconds=5))

    @pytest.mark.asyncio
    async def test_comment_cascade(self, engine, db_session, campus):
        doc = await DocumentRepository(db_session).create(
            title="Algebra", category=DocumentCategory.LECTURE, owner_id=campus.professor.id,
            subject_ids=[campus.subject_l2.id],
        )
        comments = CommentRepository(db_session)
        parent = await comments.create(document_id=doc.id, author_id=campus.professor.id, content="Q?")
        reply = await comments.create(
            document_id=doc.id, author_id=campus.student.id, content="A", parent_id=parent.id
        )

        student = campus.principal("student")
        assert not (await engine.can_reply(parent.id, student)).allowed

        deleted = await engine.delete_comment(parent.id, campus.principal("professor"))

        assert deleted == [parent.id, reply.id]
        with pytest.raises(NotFoundError):
            await engine.can_reply(parent.id, student)

    @pytest.mark.asyncio
    async def test_download_counts_and_edit_marks_comment(self, engine, db_session, campus, tmp_path):
        (tmp_path / "algebra.pdf").write_bytes(b"%PDF")
        repo = DocumentRepository(db_session)
        doc = await repo.create(
            title="Algebra", category=DocumentCategory.LECTURE, owner_id=campus.professor.id,
            subject_ids=[campus.subject_l2.id], file_path="algebra.pdf",
        )
        student = campus.principal("student")

        await engine.download(doc.id, student)
        assert (await repo.load(doc.id)).download_count == 1

        comments = CommentRepository(db_session)
        comment = await comments.create(document_id=doc.id, author_id=campus.student.id, content="Typo")
        await engine.edit_comment(comment.id, student, "Fixed")

        edited = await comments.load(comment.id)
        assert edited.content == "Fixed"
        assert edited.edited_at is not None


class TestScopeProvider:
    @pytest.mark.asyncio
    async def test_token_resolves_to_principal(self, db_session, campus):
        token = create_access_token(campus.student.id, "student")

        principal = await ScopeProvider(db_session).resolve_principal(token)

        assert principal.id == campus.student.id
        assert principal.home_track_id == campus.track_l2.id
        assert principal.home_level_id == campus.level_l2.id

    @pytest.mark.asyncio
    async def test_invalid_or_unknown(self, db_session, campus):
        provider = ScopeProvider(db_session)
        with pytest.raises(AuthenticationError):
            await provider.resolve_principal("not-a-token")
        with pytest.raises(AuthenticationError):
            await provider.resolve_principal(create_access_token(uuid.uuid4(), "admin"))
        with pytest.raises(AuthenticationError):
            await provider.resolve_principal(
                create_access_token(campus.admin.id, "admin", expires_delta=timedelta(seconds=-1))
            )

    @pytest.mark.asyncio
    async def test_disabled_account_is_forbidden(self, db_session, campus):
        campus.professor.is_active = False
        await db_session.flush()

        with pytest.raises(ForbiddenError):
            await ScopeProvider(db_session).resolve_principal(
                create_access_token(campus.professor.id, "professor")
            )
