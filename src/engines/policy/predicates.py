"""
Composable document predicates.

A listing query is built as a predicate tree once, then either evaluated
in memory against ArtifactInfo snapshots or compiled to SQL by
``src.kernel.permissions.query_compiler``. Both interpretations must agree.
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Tuple

from src.engines.policy.types import ArtifactInfo, SubjectInfo
from src.kernel.models.document import DocumentCategory


SubjectIndex = Mapping[uuid.UUID, SubjectInfo]


class Predicate(ABC):
    """Boolean condition over a document."""

    @abstractmethod
    def matches(self, artifact: ArtifactInfo, subjects: SubjectIndex) -> bool:
        ...

    def __and__(self, other: "Predicate") -> "Predicate":
        return all_of(self, other)

    def __or__(self, other: "Predicate") -> "Predicate":
        return any_of(self, other)

    def __invert__(self) -> "Predicate":
        if isinstance(self, Not):
            return self.operand
        if isinstance(self, Always):
            return NEVER
        if isinstance(self, Never):
            return ALWAYS
        return Not(self)


# Combinators

@dataclass(frozen=True)
class And(Predicate):
    operands: Tuple[Predicate, ...]

    def matches(self, artifact, subjects):
        return all(p.matches(artifact, subjects) for p in self.operands)


@dataclass(frozen=True)
class Or(Predicate):
    operands: Tuple[Predicate, ...]

    def matches(self, artifact, subjects):
        return any(p.matches(artifact, subjects) for p in self.operands)


@dataclass(frozen=True)
class Not(Predicate):
    operand: Predicate

    def matches(self, artifact, subjects):
        return not self.operand.matches(artifact, subjects)


@dataclass(frozen=True)
class Always(Predicate):
    def matches(self, artifact, subjects):
        return True


@dataclass(frozen=True)
class Never(Predicate):
    def matches(self, artifact, subjects):
        return False


ALWAYS = Always()
NEVER = Never()


# Leaves

@dataclass(frozen=True)
class OwnedBy(Predicate):
    owner_id: uuid.UUID

    def matches(self, artifact, subjects):
        return artifact.owner_id == self.owner_id


@dataclass(frozen=True)
class CategoryIs(Predicate):
    category: DocumentCategory

    def matches(self, artifact, subjects):
        return artifact.category == self.category


@dataclass(frozen=True)
class SubjectIs(Predicate):
    subject_id: uuid.UUID

    def matches(self, artifact, subjects):
        return self.subject_id in artifact.subject_ids


@dataclass(frozen=True)
class SubjectTaughtBy(Predicate):
    """At least one linked subject has the professor assigned."""

    professor_id: uuid.UUID

    def matches(self, artifact, subjects):
        return any(
            subject_id in subjects and subjects[subject_id].is_taught_by(self.professor_id)
            for subject_id in artifact.subject_ids
        )


@dataclass(frozen=True)
class SubjectInScope(Predicate):
    """At least one linked subject lies in the given track and level."""

    track_id: uuid.UUID
    level_id: uuid.UUID

    def matches(self, artifact, subjects):
        return any(
            subject_id in subjects and subjects[subject_id].in_scope(self.track_id, self.level_id)
            for subject_id in artifact.subject_ids
        )


@dataclass(frozen=True)
class IsActive(Predicate):
    def matches(self, artifact, subjects):
        return artifact.is_active


@dataclass(frozen=True)
class IsCorrection(Predicate):
    def matches(self, artifact, subjects):
        return artifact.is_correction


@dataclass(frozen=True)
class TitleContains(Predicate):
    """Case-insensitive substring match on title or description."""

    text: str

    def matches(self, artifact, subjects):
        needle = self.text.lower()
        haystacks = (artifact.title or "", artifact.description or "")
        return any(needle in h.lower() for h in haystacks)


def all_of(*operands: Optional[Predicate]) -> Predicate:
    """Conjunction that flattens nested Ands and folds constants."""
    flat = []
    for operand in _flatten(operands, And):
        if isinstance(operand, Never):
            return NEVER
        if not isinstance(operand, Always):
            flat.append(operand)
    if not flat:
        return ALWAYS
    if len(flat) == 1:
        return flat[0]
    return And(tuple(flat))


def any_of(*operands: Optional[Predicate]) -> Predicate:
    """Disjunction that flattens nested Ors and folds constants."""
    flat = []
    for operand in _flatten(operands, Or):
        if isinstance(operand, Always):
            return ALWAYS
        if not isinstance(operand, Never):
            flat.append(operand)
    if not flat:
        return NEVER
    if len(flat) == 1:
        return flat[0]
    return Or(tuple(flat))


def _flatten(operands: Iterable[Optional[Predicate]], kind: type) -> Iterable[Predicate]:
    for operand in operands:
        if operand is None:
            continue
        if isinstance(operand, kind):
            yield from operand.operands
        else:
            yield operand
