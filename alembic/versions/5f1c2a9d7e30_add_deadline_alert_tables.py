"""add deadline alert tables

Revision ID: 5f1c2a9d7e30
Revises:
Create Date: 2026-10-19 06:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '5f1c2a9d7e30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('policies',
    sa.Column('id', sa.UUID(), nullable=False),
    sa.Column('code', sa.String(), nullable=False),
    sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=True),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('code')
    )
    op.create_table('policy_coverages',
    sa.Column('id', sa.UUID(), nullable=False),
    sa.Column('policy_id', sa.UUID(), nullable=False),
    sa.Column('valid_from', sa.TIMESTAMP(timezone=True), nullable=False),
    sa.Column('valid_until', sa.TIMESTAMP(timezone=True), nullable=False),
    sa.Column('state', sa.String(length=32), nullable=False),
    sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=True),
    sa.ForeignKeyConstraint(['policy_id'], ['policies.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('uq_policy_coverages_open_window', 'policy_coverages', ['policy_id'], unique=True,
                    postgresql_where=sa.text("state = 'OPEN'"))
    op.create_table('claims',
    sa.Column('id', sa.UUID(), nullable=False),
    sa.Column('case_code', sa.String(), nullable=False),
    sa.Column('state', sa.String(length=32), nullable=False),
    sa.Column('policy_id', sa.UUID(), nullable=True),
    sa.Column('reported_at', sa.TIMESTAMP(timezone=True), nullable=True),
    sa.Column('sent_to_insurer_at', sa.TIMESTAMP(timezone=True), nullable=True),
    sa.Column('signature_received_at', sa.TIMESTAMP(timezone=True), nullable=True),
    sa.Column('settlement_amount', sa.Numeric(precision=14, scale=2), nullable=True),
    sa.Column('closed_at', sa.TIMESTAMP(timezone=True), nullable=True),
    sa.Column('invalid_reason', sa.Text(), nullable=True),
    sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=True),
    sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=True),
    sa.ForeignKeyConstraint(['policy_id'], ['policies.id']),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('case_code')
    )
    op.create_table('alerts',
    sa.Column('id', sa.UUID(), nullable=False),
    sa.Column('kind', sa.String(length=32), nullable=False),
    sa.Column('severity', sa.String(length=32), nullable=False),
    sa.Column('message', sa.Text(), nullable=False),
    sa.Column('ref_type', sa.String(length=32), nullable=False),
    sa.Column('ref_id', sa.UUID(), nullable=False),
    sa.Column('deadline', sa.TIMESTAMP(timezone=True), nullable=False),
    sa.Column('resolved', sa.Boolean(), nullable=False),
    sa.Column('resolved_at', sa.TIMESTAMP(timezone=True), nullable=True),
    sa.Column('notified', sa.Boolean(), nullable=True),
    sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=True),
    sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=True),
    sa.PrimaryKeyConstraint('id')
    )
    # At most one unresolved alert per (kind, ref_type, ref_id)
    op.create_index('uq_alerts_unresolved_key', 'alerts', ['kind', 'ref_type', 'ref_id'], unique=True,
                    postgresql_where=sa.text('resolved = false'))
    op.create_index('ix_alerts_resolved_severity', 'alerts', ['resolved', 'severity'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_alerts_resolved_severity', table_name='alerts')
    op.drop_index('uq_alerts_unresolved_key', table_name='alerts', postgresql_where=sa.text('resolved = false'))
    op.drop_table('alerts')
    op.drop_table('claims')
    op.drop_index('uq_policy_coverages_open_window', table_name='policy_coverages',
                  postgresql_where=sa.text("state = 'OPEN'"))
    op.drop_table('policy_coverages')
    op.drop_table('policies')
