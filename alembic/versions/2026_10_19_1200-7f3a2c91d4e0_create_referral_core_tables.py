"""create_referral_core_tables

Revision ID: 7f3a2c91d4e0
Revises:
Create Date: 2026-10-19 12:00:00.000000+03:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '7f3a2c91d4e0'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'agents',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('telegram_id', sa.BigInteger(), nullable=True),
        sa.Column('total_earnings', sa.BigInteger(), nullable=False, server_default='0', comment='Running aggregate of commissions in kopecks'),
        sa.Column('bonus_points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_self_employed', sa.String(length=10), nullable=False, server_default='unknown', comment='yes/no/unknown'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('total_earnings >= 0', name='ck_agents_total_earnings_non_negative'),
    )
    op.create_index(op.f('ix_agents_telegram_id'), 'agents', ['telegram_id'], unique=True)

    op.create_table(
        'clinics',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('commission_rate', sa.Integer(), nullable=True, comment='Fallback commission percent when no global tier applies'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_clinics_name'), 'clinics', ['name'], unique=True)

    op.create_table(
        'referrals',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('agent_id', sa.BigInteger(), nullable=False, comment='Agent who referred the patient'),
        sa.Column('patient_full_name', sa.String(length=255), nullable=False),
        sa.Column('clinic', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='new'),
        sa.Column('treatment_amount', sa.Integer(), nullable=True),
        sa.Column('commission_amount', sa.Integer(), nullable=True),
        sa.Column('treatment_month', sa.String(length=7), nullable=True, comment='YYYY-MM the visit is attributed to'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['agent_id'], ['agents.id'], ondelete='CASCADE'),
    )
    op.create_index(op.f('ix_referrals_agent_id'), 'referrals', ['agent_id'], unique=False)
    op.create_index(op.f('ix_referrals_status'), 'referrals', ['status'], unique=False)
    op.create_index('ix_referrals_agent_month', 'referrals', ['agent_id', 'treatment_month'], unique=False)

    op.create_table(
        'app_settings',
        sa.Column('key', sa.String(length=100), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('key'),
    )


def downgrade() -> None:
    op.drop_table('app_settings')
    op.drop_index('ix_referrals_agent_month', table_name='referrals')
    op.drop_index(op.f('ix_referrals_status'), table_name='referrals')
    op.drop_index(op.f('ix_referrals_agent_id'), table_name='referrals')
    op.drop_table('referrals')
    op.drop_index(op.f('ix_clinics_name'), table_name='clinics')
    op.drop_table('clinics')
    op.drop_index(op.f('ix_agents_telegram_id'), table_name='agents')
    op.drop_table('agents')
