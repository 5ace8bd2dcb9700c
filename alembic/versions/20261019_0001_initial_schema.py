"""Initial schema - academic structure, documents, comments, audit log

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

LIFECYCLE_CHECK = "(deleted_at IS NULL) = (deleted_by IS NULL)"


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # Academic structure
    op.create_table(
        'levels',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('code', sa.String(20), unique=True, nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'tracks',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('code', sa.String(50), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('level_id', sa.Uuid(), sa.ForeignKey('levels.id', ondelete='RESTRICT'), nullable=False, index=True),
        *_timestamps(),
    )

    op.create_table(
        'subjects',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('code', sa.String(50), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('track_id', sa.Uuid(), sa.ForeignKey('tracks.id', ondelete='RESTRICT'), nullable=False, index=True),
        *_timestamps(),
    )

    # Users
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), unique=True, nullable=False, index=True),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('role', sa.String(50), nullable=False, default='student'),
        sa.Column('is_active', sa.Boolean(), nullable=False, default=True),
        sa.Column('home_track_id', sa.Uuid(), sa.ForeignKey('tracks.id', ondelete='RESTRICT'), nullable=True, index=True),
        sa.Column('home_level_id', sa.Uuid(), sa.ForeignKey('levels.id', ondelete='RESTRICT'), nullable=True, index=True),
        *_timestamps(),
        sa.CheckConstraint(
            "role != 'student' OR (home_track_id IS NOT NULL AND home_level_id IS NOT NULL)",
            name='ck_users_student_scope',
        ),
    )

    op.create_table(
        'professor_assignments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('subject_id', sa.Uuid(), sa.ForeignKey('subjects.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('professor_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('responsibility', sa.String(20), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('subject_id', 'responsibility', name='uq_assignment_subject_responsibility'),
    )

    # Documents
    op.create_table(
        'documents',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(20), nullable=False, index=True),
        sa.Column('owner_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('file_path', sa.String(1024), nullable=True),
        sa.Column('file_name', sa.String(255), nullable=True),
        sa.Column('view_count', sa.Integer(), nullable=False, default=0),
        sa.Column('download_count', sa.Integer(), nullable=False, default=0),
        sa.Column('correction_of_id', sa.Uuid(), sa.ForeignKey('documents.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True, index=True),
        sa.Column('deleted_by', sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(LIFECYCLE_CHECK, name='ck_documents_lifecycle'),
    )

    op.create_table(
        'document_subjects',
        sa.Column('document_id', sa.Uuid(), sa.ForeignKey('documents.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('subject_id', sa.Uuid(), sa.ForeignKey('subjects.id', ondelete='CASCADE'), primary_key=True),
    )

    # Comments
    op.create_table(
        'comments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('document_id', sa.Uuid(), sa.ForeignKey('documents.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('author_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('parent_id', sa.Uuid(), sa.ForeignKey('comments.id', ondelete='CASCADE'), nullable=True, index=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('edited_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True, index=True),
        sa.Column('deleted_by', sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(LIFECYCLE_CHECK, name='ck_comments_lifecycle'),
    )

    # Audit log
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('action', sa.String(50), nullable=False, index=True),
        sa.Column('resource', sa.String(50), nullable=True),
        sa.Column('resource_id', sa.String(64), nullable=True),
        sa.Column('details', sa.JSON(), nullable=False, default={}),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('user_agent', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, index=True),
    )
    op.create_index('ix_audit_logs_user_created', 'audit_logs', ['user_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('ix_audit_logs_user_created', table_name='audit_logs')
    op.drop_table('audit_logs')
    op.drop_table('comments')
    op.drop_table('document_subjects')
    op.drop_table('documents')
    op.drop_table('professor_assignments')
    op.drop_table('users')
    op.drop_table('subjects')
    op.drop_table('tracks')
    op.drop_table('levels')
