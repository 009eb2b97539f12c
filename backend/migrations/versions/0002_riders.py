"""Delivery riders directory

Revision ID: 0002_riders
Revises: 0001_initial
Create Date: 2025-03-02

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = '0002_riders'
down_revision = '0001_initial'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('riders',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=False),
        sa.Column('whatsapp', sa.String(length=32), nullable=True),
        sa.Column('zone', sa.String(length=50), nullable=True),
        sa.Column('fee_note', sa.String(length=255), nullable=True),
        sa.Column('is_available', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('verified', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('riders_verified_available_idx', 'riders', ['verified', 'is_available'])


def downgrade():
    op.drop_index('riders_verified_available_idx', table_name='riders')
    op.drop_table('riders')
