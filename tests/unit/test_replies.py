"""Unit tests for reply discipline and comment moderation."""

import uuid
from datetime import timedelta

import pytest

from src.engines.policy import ForbiddenError, NotFoundError, ReplyModerator
from src.engines.policy.replies import AWAITING_STAFF, STUDENT_TO_STUDENT, evaluate_reply
from src.kernel.models.document import DocumentCategory
from src.kernel.state import Active, Deleted


@pytest.fixture
def moderator(comments, artifacts, world, clock):
    return ReplyModerator(comments, artifacts, world.directory, clock=clock)


@pytest.fixture
def document(world, make_artifact):
    return make_artifact(world.professor.id, subject_ids={world.subject_l2.id})


class TestEvaluateReply:
    """Escalation discipline: student -> staff -> student."""

    @pytest.mark.asyncio
    async def test_student_waits_for_staff_between_replies(
        self, world, document, make_comment, comments, clock
    ):
        t0 = clock.now
        parent = make_comment(document.id, world.professor, t0)

        first = evaluate_reply(parent, await comments.replies_to(parent.id), world.student)
        assert first.allowed is True

        make_comment(document.id, world.student, t0 + timedelta(minutes=1), parent_id=parent.id)
        blocked = evaluate_reply(parent, await comments.replies_to(parent.id), world.student)
        assert blocked.allowed is False
        assert blocked.reason == AWAITING_STAFF

        make_comment(document.id, world.professor, t0 + timedelta(minutes=2), parent_id=parent.id)
        unblocked = evaluate_reply(parent, await comments.replies_to(parent.id), world.student)
        assert unblocked.allowed is True

    @pytest.mark.asyncio
    async def test_staff_reply_before_own_reply_does_not_count(
        self, world, document, make_comment, comments, clock
    ):
        t0 = clock.now
        parent = make_comment(document.id, world.admin, t0)
        make_comment(document.id, world.professor, t0 + timedelta(minutes=1), parent_id=parent.id)
        make_comment(document.id, world.student, t0 + timedelta(minutes=2), parent_id=parent.id)

        decision = evaluate_reply(parent, await comments.replies_to(parent.id), world.student)
        assert decision.reason == AWAITING_STAFF

    @pytest.mark.asyncio
    async def test_other_students_do_not_block(self, world, document, make_comment, comments, clock):
        parent = make_comment(document.id, world.professor, clock.now)
        make_comment(
            document.id, world.terminal_student, clock.now + timedelta(seconds=5), parent_id=parent.id
        )

        decision = evaluate_reply(parent, await comments.replies_to(parent.id), world.student)
        assert decision.allowed is True

    def test_student_cannot_reply_to_student(self, world, document, make_comment, clock):
        parent = make_comment(document.id, world.terminal_student, clock.now)
        decision = evaluate_reply(parent, [], world.student)
        assert decision.allowed is False
        assert decision.reason == STUDENT_TO_STUDENT

    @pytest.mark.parametrize("principal_name", ["professor", "admin"])
    def test_staff_may_always_reply(self, world, document, make_comment, clock, principal_name):
        parent = make_comment(document.id, world.student, clock.now)
        decision = evaluate_reply(parent, [], getattr(world, principal_name))
        assert decision.allowed is True
        assert decision.reason is None


class TestCanReply:
    @pytest.mark.asyncio
    async def test_missing_parent_is_not_found(self, moderator, world):
        with pytest.raises(NotFoundError):
            await moderator.can_reply(uuid.uuid4(), world.student)

    @pytest.mark.asyncio
    async def test_deleted_parent_is_not_found(self, moderator, world, document, make_comment, clock):
        parent = make_comment(document.id, world.professor, clock.now)
        await moderator.delete_comment(parent.id, world.professor)

        with pytest.raises(NotFoundError):
            await moderator.can_reply(parent.id, world.student)


class TestDeleteComment:
    """Moderated soft deletion with a one-level cascade."""

    @pytest.mark.asyncio
    async def test_cascade_stops_at_direct_replies(
        self, moderator, world, document, make_comment, comments, clock
    ):
        t0 = clock.now
        parent = make_comment(document.id, world.professor, t0)
        reply = make_comment(document.id, world.student, t0 + timedelta(minutes=1), parent_id=parent.id)
        nested = make_comment(document.id, world.professor, t0 + timedelta(minutes=2), parent_id=reply.id)

        deleted_ids = await moderator.delete_comment(parent.id, world.professor)

        assert deleted_ids == [parent.id, reply.id]
        assert comments.mark_calls == 1
        assert comments.items[parent.id].lifecycle == Deleted(at=t0, by=world.professor.id)
        assert isinstance(comments.items[reply.id].lifecycle, Deleted)
        assert isinstance(comments.items[nested.id].lifecycle, Active)

    @pytest.mark.asyncio
    async def test_two_branches_keep_their_grandchildren(
        self, moderator, world, document, make_comment, comments, clock
    ):
        t0 = clock.now
        parent = make_comment(document.id, world.professor, t0)
        first = make_comment(document.id, world.student, t0 + timedelta(minutes=1), parent_id=parent.id)
        second = make_comment(document.id, world.admin, t0 + timedelta(minutes=2), parent_id=parent.id)
        under_first = make_comment(
            document.id, world.professor, t0 + timedelta(minutes=3), parent_id=first.id
        )
        under_second = make_comment(
            document.id, world.student, t0 + timedelta(minutes=4), parent_id=second.id
        )

        deleted_ids = await moderator.delete_comment(parent.id, world.admin)

        assert deleted_ids == [parent.id, first.id, second.id]
        assert comments.mark_calls == 1
        for comment_id in (parent.id, first.id, second.id):
            assert comments.items[comment_id].lifecycle == Deleted(at=t0, by=world.admin.id)
        for comment_id in (under_first.id, under_second.id):
            assert isinstance(comments.items[comment_id].lifecycle, Active)

    @pytest.mark.asyncio
    async def test_author_may_delete_own_comment(self, moderator, world, document, make_comment, clock):
        comment = make_comment(document.id, world.student, clock.now)
        assert await moderator.delete_comment(comment.id, world.student) == [comment.id]

    @pytest.mark.asyncio
    async def test_other_student_is_forbidden(self, moderator, world, document, make_comment, comments, clock):
        comment = make_comment(document.id, world.student, clock.now)

        with pytest.raises(ForbiddenError):
            await moderator.delete_comment(comment.id, world.terminal_student)
        assert comments.items[comment.id].is_active

    @pytest.mark.asyncio
    async def test_moderation_rights(self, moderator, world, document, make_artifact, make_comment, clock):
        comment = make_comment(document.id, world.student, clock.now)
        assert await moderator.can_moderate(comment, world.admin)
        assert await moderator.can_moderate(comment, world.professor)
        assert not await moderator.can_moderate(comment, world.other_professor)

        capstone = make_artifact(world.admin.id, category=DocumentCategory.CAPSTONE)
        on_capstone = make_comment(capstone.id, world.terminal_student, clock.now)
        assert await moderator.can_moderate(on_capstone, world.other_professor)
        assert not await moderator.can_moderate(on_capstone, world.student)
