"""
Compiles policy predicates into SQLAlchemy filter expressions on Document.
"""

from sqlalchemy import and_, exists, false, not_, or_, select, true
from sqlalchemy.sql.elements import ColumnElement

from src.engines.policy.predicates import (
    Always,
    And,
    CategoryIs,
    IsActive,
    IsCorrection,
    Never,
    Not,
    Or,
    OwnedBy,
    Predicate,
    SubjectInScope,
    SubjectIs,
    SubjectTaughtBy,
    TitleContains,
)
from src.kernel.models.academic import ProfessorAssignment, Subject, Track
from src.kernel.models.document import Document, document_subjects


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def compile_predicate(predicate: Predicate) -> ColumnElement[bool]:
    """Translate a predicate tree into a WHERE clause over ``documents``."""
    if isinstance(predicate, And):
        return and_(*(compile_predicate(p) for p in predicate.operands))
    if isinstance(predicate, Or):
        return or_(*(compile_predicate(p) for p in predicate.operands))
    if isinstance(predicate, Not):
        return not_(compile_predicate(predicate.operand))
    if isinstance(predicate, Always):
        return true()
    if isinstance(predicate, Never):
        return false()

    if isinstance(predicate, OwnedBy):
        return Document.owner_id == predicate.owner_id
    if isinstance(predicate, CategoryIs):
        return Document.category == predicate.category.value
    if isinstance(predicate, IsActive):
        return Document.deleted_at.is_(None)
    if isinstance(predicate, IsCorrection):
        return Document.correction_of_id.is_not(None)

    if isinstance(predicate, SubjectIs):
        return exists(
            select(document_subjects.c.subject_id).where(
                document_subjects.c.document_id == Document.id,
                document_subjects.c.subject_id == predicate.subject_id,
            )
        )

    if isinstance(predicate, SubjectTaughtBy):
        return exists(
            select(ProfessorAssignment.id)
            .join(
                document_subjects,
                document_subjects.c.subject_id == ProfessorAssignment.subject_id,
            )
            .where(
                document_subjects.c.document_id == Document.id,
                ProfessorAssignment.professor_id == predicate.professor_id,
            )
        )

    if isinstance(predicate, SubjectInScope):
        return exists(
            select(Subject.id)
            .join(document_subjects, document_subjects.c.subject_id == Subject.id)
            .join(Track, Subject.track_id == Track.id)
            .where(
                document_subjects.c.document_id == Document.id,
                Track.id == predicate.track_id,
                Track.level_id == predicate.level_id,
            )
        )

    if isinstance(predicate, TitleContains):
        pattern = f"%{_escape_like(predicate.text)}%"
        return or_(
            Document.title.ilike(pattern, escape="\\"),
            Document.description.ilike(pattern, escape="\\"),
        )

    raise TypeError(f"Cannot compile predicate: {predicate!r}")
