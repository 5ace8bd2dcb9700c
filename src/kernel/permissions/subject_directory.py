"""
Subject directory backed by the academic structure tables.
"""

import uuid
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.engines.policy.errors import ConflictError, NotFoundError
from src.engines.policy.types import SubjectInfo
from src.kernel.models.academic import Level, ProfessorAssignment, Responsibility, Subject
from src.kernel.models.user import User, UserRole
from src.logging_config import get_logger

logger = get_logger(__name__)


class SqlSubjectDirectory:
    """Answers subject, assignment and level questions for the policy engine."""

    def __init__(self, session: AsyncSession, terminal_level_codes: Iterable[str]):
        self.session = session
        self.terminal_level_codes = frozenset(terminal_level_codes)

    async def get_subject(self, subject_id: uuid.UUID) -> Optional[SubjectInfo]:
        result = await self.session.execute(
            select(Subject)
            .where(Subject.id == subject_id)
            .options(selectinload(Subject.track), selectinload(Subject.assignments))
        )
        subject = result.scalar_one_or_none()
        if subject is None:
            return None
        return SubjectInfo(
            id=subject.id,
            track_id=subject.track_id,
            level_id=subject.track.level_id,
            assignments=frozenset(
                (a.professor_id, Responsibility(a.responsibility)) for a in subject.assignments
            ),
        )

    async def is_assigned(self, professor_id: uuid.UUID, subject_id: uuid.UUID) -> bool:
        result = await self.session.execute(
            select(ProfessorAssignment.id)
            .where(
                ProfessorAssignment.professor_id == professor_id,
                ProfessorAssignment.subject_id == subject_id,
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def is_terminal_level(self, level_id: Optional[uuid.UUID]) -> bool:
        if level_id is None:
            return False
        result = await self.session.execute(select(Level.code).where(Level.id == level_id))
        code = result.scalar_one_or_none()
        return code is not None and code in self.terminal_level_codes

    async def assign_professor(
        self,
        subject_id: uuid.UUID,
        professor_id: uuid.UUID,
        responsibility: Responsibility,
    ) -> ProfessorAssignment:
        """
        Give a professor one responsibility in a subject.

        Each responsibility is held by at most one professor per subject.

        Raises:
            NotFoundError: Unknown subject or professor
            ConflictError: Responsibility already held in this subject
        """
        responsibility = Responsibility(responsibility)

        subject = await self.session.get(Subject, subject_id)
        if subject is None:
            raise NotFoundError("Subject not found", resource_id=subject_id)

        professor = await self.session.get(User, professor_id)
        if professor is None or professor.role != UserRole.PROFESSOR:
            raise NotFoundError("Professor not found", resource_id=professor_id)

        existing = await self.session.execute(
            select(ProfessorAssignment).where(
                ProfessorAssignment.subject_id == subject_id,
                ProfessorAssignment.responsibility == responsibility.value,
            )
        )
        holder = existing.scalar_one_or_none()
        if holder is not None:
            raise ConflictError(
                f"Responsibility '{responsibility.value}' is already assigned in this subject",
                resource_id=subject_id,
            )

        assignment = ProfessorAssignment(
            subject_id=subject_id,
            professor_id=professor_id,
            responsibility=responsibility.value,
        )
        self.session.add(assignment)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            # Lost a race with a concurrent assignment
            raise ConflictError(
                f"Responsibility '{responsibility.value}' is already assigned in this subject",
                resource_id=subject_id,
            ) from exc

        logger.info(
            "Professor assigned",
            extra={
                "subject_id": str(subject_id),
                "professor_id": str(professor_id),
                "responsibility": responsibility.value,
            },
        )
        return assignment

