"""enquiries from the public contact form

Revision ID: 8c4d2b61e5a3
Revises: 3f1a9c2e7b10
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8c4d2b61e5a3'
down_revision: Union[str, Sequence[str], None] = '3f1a9c2e7b10'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'enquiries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tracking_id', sa.String(length=40), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('subject', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('response', sa.Text(), nullable=True),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_enquiries_tracking_id', 'enquiries', ['tracking_id'], unique=True)
    op.create_index('ix_enquiries_subject', 'enquiries', ['subject'], unique=False)
    op.create_index('ix_enquiries_status', 'enquiries', ['status'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_enquiries_status', table_name='enquiries')
    op.drop_index('ix_enquiries_subject', table_name='enquiries')
    op.drop_index('ix_enquiries_tracking_id', table_name='enquiries')
    op.drop_table('enquiries')
