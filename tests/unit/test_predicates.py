"""Unit tests for document predicates and their combinators."""

import uuid

import pytest

from src.engines.policy import ArtifactInfo
from src.engines.policy.predicates import (
    ALWAYS,
    NEVER,
    And,
    CategoryIs,
    IsActive,
    IsCorrection,
    Not,
    Or,
    OwnedBy,
    SubjectInScope,
    SubjectIs,
    SubjectTaughtBy,
    TitleContains,
    all_of,
    any_of,
)
from src.kernel.models.document import DocumentCategory
from src.kernel.state import Deleted, utcnow


class TestCombinators:
    """Constant folding and flattening."""

    def test_all_of_folds_never(self):
        assert all_of(OwnedBy(uuid.uuid4()), NEVER) is NEVER

    def test_all_of_drops_always_and_none(self):
        leaf = IsActive()
        assert all_of(ALWAYS, None, leaf) == leaf

    def test_all_of_empty_is_always(self):
        assert all_of() is ALWAYS

    def test_any_of_folds_always(self):
        assert any_of(IsActive(), ALWAYS) is ALWAYS

    def test_any_of_empty_is_never(self):
        assert any_of(NEVER, None) is NEVER

    def test_nested_and_is_flattened(self):
        a, b, c = IsActive(), IsCorrection(), CategoryIs(DocumentCategory.LAB)
        combined = all_of(all_of(a, b), c)
        assert combined == And((a, b, c))

    def test_nested_or_is_flattened(self):
        a, b, c = IsActive(), IsCorrection(), CategoryIs(DocumentCategory.LAB)
        assert (a | b) | c == Or((a, b, c))

    def test_double_negation_unwraps(self):
        leaf = IsCorrection()
        assert ~leaf == Not(leaf)
        assert ~~leaf == leaf

    def test_negated_constants_swap(self):
        assert ~ALWAYS is NEVER
        assert ~NEVER is ALWAYS


class TestLeaves:
    """In-memory evaluation of leaf predicates."""

    def test_subject_leaves(self, world):
        artifact = ArtifactInfo(
            id=uuid.uuid4(),
            category=DocumentCategory.LECTURE,
            owner_id=uuid.uuid4(),
            subject_ids={world.subject_l2.id},
        )
        subjects = world.directory.subjects

        assert SubjectIs(world.subject_l2.id).matches(artifact, subjects)
        assert not SubjectIs(world.subject_l3.id).matches(artifact, subjects)
        assert SubjectTaughtBy(world.professor.id).matches(artifact, subjects)
        assert not SubjectTaughtBy(world.other_professor.id).matches(artifact, subjects)
        assert SubjectInScope(world.track, world.level_l2).matches(artifact, subjects)
        assert not SubjectInScope(world.track, world.level_l3).matches(artifact, subjects)

    def test_unknown_subject_never_matches(self, world):
        artifact = ArtifactInfo(
            id=uuid.uuid4(),
            category=DocumentCategory.LECTURE,
            owner_id=uuid.uuid4(),
            subject_ids={uuid.uuid4()},
        )
        assert not SubjectTaughtBy(world.professor.id).matches(artifact, {})

    @pytest.mark.parametrize(
        "needle,expected",
        [("algebra", True), ("LINEAR", True), ("matrices", True), ("calculus", False)],
    )
    def test_title_contains_checks_title_and_description(self, needle, expected):
        artifact = ArtifactInfo(
            id=uuid.uuid4(),
            category=DocumentCategory.CAPSTONE,
            owner_id=uuid.uuid4(),
            title="Linear Algebra notes",
            description="Chapter on matrices",
        )
        assert TitleContains(needle).matches(artifact, {}) is expected

    def test_lifecycle_and_correction_leaves(self):
        owner = uuid.uuid4()
        deleted = ArtifactInfo(
            id=uuid.uuid4(),
            category=DocumentCategory.CAPSTONE,
            owner_id=owner,
            lifecycle=Deleted(at=utcnow(), by=owner),
            correction_of_id=uuid.uuid4(),
        )
        assert not IsActive().matches(deleted, {})
        assert IsCorrection().matches(deleted, {})
        assert OwnedBy(owner).matches(deleted, {})
