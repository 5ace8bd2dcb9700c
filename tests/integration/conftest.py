"""
Database fixtures for adapter integration tests.

Each test gets a fresh in-memory SQLite database and a seeded academic
structure: levels L2 and L3, one track in each, one subject per track,
and an admin, two professors and two students.
"""

import uuid
from dataclasses import dataclass
from typing import AsyncGenerator

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.engines.policy import Principal
from src.kernel.identity.scope_provider import ScopeProvider
from src.kernel.models import (
    Base,
    Level,
    ProfessorAssignment,
    Responsibility,
    Subject,
    Track,
    User,
    UserRole,
)


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    session_maker = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_maker() as session:
        yield session
        await session.rollback()


@dataclass
class Campus:
    level_l2: Level
    level_l3: Level
    track_l2: Track
    track_l3: Track
    subject_l2: Subject
    subject_l3: Subject
    admin: User
    professor: User
    other_professor: User
    student: User
    terminal_student: User

    def principal(self, name: str) -> Principal:
        return ScopeProvider.principal_for(getattr(self, name))


def _user(email: str, role: UserRole, track: Track = None) -> User:
    return User(
        id=uuid.uuid4(),
        email=email,
        full_name=email.split("@")[0].title(),
        role=role,
        home_track_id=track.id if track else None,
        home_level_id=track.level_id if track else None,
    )


@pytest_asyncio.fixture
async def campus(db_session: AsyncSession) -> Campus:
    """Seed the academic structure and users."""
    level_l2 = Level(id=uuid.uuid4(), code="L2", name="Licence 2")
    level_l3 = Level(id=uuid.uuid4(), code="L3", name="Licence 3")
    track_l2 = Track(id=uuid.uuid4(), code="INFO-L2", name="Computer Science", level_id=level_l2.id)
    track_l3 = Track(id=uuid.uuid4(), code="INFO-L3", name="Computer Science", level_id=level_l3.id)
    subject_l2 = Subject(id=uuid.uuid4(), code="ALG2", name="Algebra", track_id=track_l2.id)
    subject_l3 = Subject(id=uuid.uuid4(), code="COMP3", name="Compilers", track_id=track_l3.id)
    db_session.add_all([level_l2, level_l3, track_l2, track_l3, subject_l2, subject_l3])
    await db_session.flush()

    campus = Campus(
        level_l2=level_l2,
        level_l3=level_l3,
        track_l2=track_l2,
        track_l3=track_l3,
        subject_l2=subject_l2,
        subject_l3=subject_l3,
        admin=_user("admin@example.com", UserRole.ADMIN),
        professor=_user("prof@example.com", UserRole.PROFESSOR),
        other_professor=_user("other.prof@example.com", UserRole.PROFESSOR),
        student=_user("student@example.com", UserRole.STUDENT, track_l2),
        terminal_student=_user("final.year@example.com", UserRole.STUDENT, track_l3),
    )
    db_session.add_all(
        [
            campus.admin,
            campus.professor,
            campus.other_professor,
            campus.student,
            campus.terminal_student,
        ]
    )
    await db_session.flush()

    db_session.add(
        ProfessorAssignment(
            subject_id=subject_l2.id,
            professor_id=campus.professor.id,
            responsibility=Responsibility.LECTURE.value,
        )
    )
    await db_session.commit()
    return campus
