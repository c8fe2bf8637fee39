"""pension core tables: staff, pensioners, documents, verification

Revision ID: 3f1a9c2e7b10
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1a9c2e7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'staff_users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=True),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_staff_users_email', 'staff_users', ['email'], unique=True)

    op.create_table(
        'pensioners',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('pension_id', sa.String(length=64), nullable=False),
        sa.Column('nin', sa.String(length=32), nullable=False),
        sa.Column('pf_number', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('maiden_name', sa.String(length=255), nullable=True),
        sa.Column('gender', sa.String(length=16), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('residential_address', sa.Text(), nullable=True),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('pension_scheme_type', sa.String(length=32), nullable=False),
        sa.Column('date_of_first_appointment', sa.Date(), nullable=False),
        sa.Column('date_of_retirement', sa.Date(), nullable=False),
        sa.Column('last_promotion_date', sa.Date(), nullable=True),
        sa.Column('current_level', sa.String(length=32), nullable=True),
        sa.Column('salary', sa.Numeric(14, 2), nullable=False),
        sa.Column('years_of_service', sa.Integer(), nullable=True),
        sa.Column('gratuity_rate', sa.Numeric(5, 4), nullable=True),
        sa.Column('pension_rate', sa.Numeric(5, 4), nullable=True),
        sa.Column('total_gratuity', sa.Numeric(16, 2), nullable=True),
        sa.Column('monthly_pension', sa.Numeric(16, 2), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='PENDING_VERIFICATION'),
        sa.Column('next_due_at', sa.DateTime(), nullable=True),
        sa.Column('has_seen_due_notification', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('photo', sa.Text(), nullable=True),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('nin'),
        sa.UniqueConstraint('pf_number'),
        sa.UniqueConstraint('email'),
    )
    op.create_index('ix_pensioners_pension_id', 'pensioners', ['pension_id'], unique=True)
    op.create_index('ix_pensioners_status', 'pensioners', ['status'], unique=False)

    op.create_table(
        'pensioner_files',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('pensioner_id', sa.Integer(), sa.ForeignKey('pensioners.id', ondelete='CASCADE'), nullable=False),
        sa.Column('file_type', sa.String(length=40), nullable=False),
        sa.Column('file_id', sa.String(length=64), nullable=False),
        sa.Column('storage_key', sa.Text(), nullable=False),
        sa.Column('file_url', sa.Text(), nullable=True),
        sa.Column('original_name', sa.String(length=255), nullable=True),
        sa.Column('content_type', sa.String(length=100), nullable=True),
        sa.Column('size_bytes', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_pensioner_files_pensioner_id', 'pensioner_files', ['pensioner_id'], unique=False)

    op.create_table(
        'verification_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('pensioner_id', sa.Integer(), sa.ForeignKey('pensioners.id', ondelete='CASCADE'), nullable=False),
        sa.Column('method', sa.String(length=40), nullable=False),
        sa.Column('status', sa.String(length=40), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('actor_id', sa.Integer(), nullable=True),
        sa.Column('verified_at', sa.DateTime(), nullable=True),
        sa.Column('next_due_at', sa.DateTime(), nullable=True),
        sa.Column('face_similarity', sa.Float(), nullable=True),
    )
    op.create_index('ix_verification_logs_pensioner_id', 'verification_logs', ['pensioner_id'], unique=False)

    op.create_table(
        'verification_reviews',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('pensioner_id', sa.Integer(), sa.ForeignKey('pensioners.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='PENDING'),
        sa.Column('captured_photo', sa.Text(), nullable=True),
        sa.Column('face_similarity', sa.Float(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('officer_id', sa.Integer(), sa.ForeignKey('staff_users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_verification_reviews_pensioner_id', 'verification_reviews', ['pensioner_id'], unique=False)
    op.create_index('ix_verification_reviews_status', 'verification_reviews', ['status'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_verification_reviews_status', table_name='verification_reviews')
    op.drop_index('ix_verification_reviews_pensioner_id', table_name='verification_reviews')
    op.drop_table('verification_reviews')
    op.drop_index('ix_verification_logs_pensioner_id', table_name='verification_logs')
    op.drop_table('verification_logs')
    op.drop_index('ix_pensioner_files_pensioner_id', table_name='pensioner_files')
    op.drop_table('pensioner_files')
    op.drop_index('ix_pensioners_status', table_name='pensioners')
    op.drop_index('ix_pensioners_pension_id', table_name='pensioners')
    op.drop_table('pensioners')
    op.drop_index('ix_staff_users_email', table_name='staff_users')
    op.drop_table('staff_users')
