"""
Visibility Resolver - who may read a document, and which documents a
listing may return.

Single-document checks and listing predicates encode the same rule table:

    admin                   everything
    owner                   own documents
    capstone, professor     allowed
    capstone, student       allowed iff home level is terminal
    other, professor        allowed iff assigned to one of the subjects
    other, student          allowed iff a subject is in the home track and level
"""

import uuid
from typing import List, Optional

from pydantic import BaseModel

from src.engines.policy.ports import SubjectDirectory
from src.engines.policy.predicates import (
    ALWAYS,
    NEVER,
    CategoryIs,
    IsActive,
    IsCorrection,
    OwnedBy,
    Predicate,
    SubjectInScope,
    SubjectIs,
    SubjectTaughtBy,
    TitleContains,
    all_of,
    any_of,
)
from src.engines.policy.types import ArtifactInfo, Principal
from src.kernel.models.document import DocumentCategory
from src.kernel.models.user import UserRole


class AccessDecision(BaseModel):
    """Outcome of a single-document access check."""

    allowed: bool
    reason: Optional[str] = None

    @classmethod
    def allow(cls, reason: str) -> "AccessDecision":
        return cls(allowed=True, reason=reason)

    @classmethod
    def deny(cls, reason: str) -> "AccessDecision":
        return cls(allowed=False, reason=reason)


class ListFilters(BaseModel):
    """Caller-supplied narrowing for document listings."""

    subject_id: Optional[uuid.UUID] = None
    category: Optional[DocumentCategory] = None
    search: Optional[str] = None
    owner_id: Optional[uuid.UUID] = None

    def to_predicates(self) -> List[Predicate]:
        predicates: List[Predicate] = []
        if self.subject_id is not None:
            predicates.append(SubjectIs(self.subject_id))
        if self.category is not None:
            predicates.append(CategoryIs(self.category))
        search = (self.search or "").strip()
        if search:
            predicates.append(TitleContains(search))
        if self.owner_id is not None:
            predicates.append(OwnedBy(self.owner_id))
        return predicates


CAPSTONE = CategoryIs(DocumentCategory.CAPSTONE)


class VisibilityResolver:
    """Evaluates read eligibility against the subject directory."""

    def __init__(self, directory: SubjectDirectory):
        self.directory = directory

    async def access(self, artifact: ArtifactInfo, principal: Principal) -> AccessDecision:
        """Apply the rule table to one document."""
        if principal.role == UserRole.ADMIN:
            return AccessDecision.allow("admin")

        if artifact.owner_id == principal.id:
            return AccessDecision.allow("owner")

        if artifact.is_capstone:
            if principal.role == UserRole.PROFESSOR:
                return AccessDecision.allow("capstone: professor")
            if principal.role == UserRole.STUDENT:
                if await self.directory.is_terminal_level(principal.home_level_id):
                    return AccessDecision.allow("capstone: terminal level")
                return AccessDecision.deny("capstone documents are limited to final-year students")
            raise ValueError(f"Unhandled role: {principal.role!r}")

        if principal.role == UserRole.PROFESSOR:
            for subject_id in artifact.subject_ids:
                if await self.directory.is_assigned(principal.id, subject_id):
                    return AccessDecision.allow("assigned professor")
            return AccessDecision.deny("professor is not assigned to any of the document's subjects")

        if principal.role == UserRole.STUDENT:
            for subject_id in artifact.subject_ids:
                subject = await self.directory.get_subject(subject_id)
                if subject is not None and subject.in_scope(
                    principal.home_track_id, principal.home_level_id
                ):
                    return AccessDecision.allow("subject in student scope")
            return AccessDecision.deny("no subject matches the student's track and level")

        raise ValueError(f"Unhandled role: {principal.role!r}")

    async def list_eligibility(self, principal: Principal) -> Predicate:
        """
        Scope eligibility for listings (capstone and subject rules only).

        Admin and ownership shortcuts are added by build_list_predicate.
        """
        if principal.role == UserRole.ADMIN:
            return NEVER

        if principal.role == UserRole.PROFESSOR:
            return any_of(
                CAPSTONE,
                all_of(~CAPSTONE, SubjectTaughtBy(principal.id)),
            )

        if principal.role == UserRole.STUDENT:
            terminal = await self.directory.is_terminal_level(principal.home_level_id)
            return any_of(
                CAPSTONE if terminal else NEVER,
                all_of(
                    ~CAPSTONE,
                    SubjectInScope(principal.home_track_id, principal.home_level_id),
                ),
            )

        raise ValueError(f"Unhandled role: {principal.role!r}")

    async def build_list_predicate(
        self,
        filters: Optional[ListFilters],
        principal: Principal,
    ) -> Predicate:
        """callerFilters AND (owner OR admin OR scope), over active non-corrections."""
        filters = filters or ListFilters()
        eligibility = await self.list_eligibility(principal)
        return all_of(
            IsActive(),
            ~IsCorrection(),
            *filters.to_predicates(),
            any_of(
                OwnedBy(principal.id),
                ALWAYS if principal.role == UserRole.ADMIN else NEVER,
                eligibility,
            ),
        )
