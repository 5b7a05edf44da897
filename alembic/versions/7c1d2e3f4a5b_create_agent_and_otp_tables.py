"""create agents, otp_codes, otp_lockouts and agent_sessions

Revision ID: 7c1d2e3f4a5b
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '7c1d2e3f4a5b'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'agents',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('phone_number', sa.String(), nullable=False),
        sa.Column('country_code', sa.String(length=5), nullable=False),
        sa.Column('first_name', sa.String(), nullable=False),
        sa.Column('last_name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('license_number', sa.String(length=6), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('license_number', name='uq_agents_license_number'),
        sa.CheckConstraint("status IN ('active', 'inactive', 'suspended')", name='ck_agents_status'),
    )
    op.create_index('ix_agents_phone_number', 'agents', ['phone_number'], unique=True)
    op.create_index('ix_agents_email', 'agents', ['email'], unique=True)

    op.create_table(
        'otp_codes',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('phone_number', sa.String(), nullable=False),
        sa.Column('code', sa.String(length=6), nullable=False),
        sa.Column('delivery_method', sa.String(), nullable=False, server_default='sms'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_used', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_otp_codes_phone_number_is_used', 'otp_codes', ['phone_number', 'is_used'])

    op.create_table(
        'otp_lockouts',
        sa.Column('phone_number', sa.String(), primary_key=True),
        sa.Column('locked_until', sa.DateTime(timezone=True), nullable=False),
        sa.Column('attempt_count', sa.Integer(), nullable=False, server_default='0'),
    )

    op.create_table(
        'agent_sessions',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('agent_id', sa.String(), sa.ForeignKey('agents.id', ondelete='CASCADE'), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False, unique=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_agent_sessions_agent_id', 'agent_sessions', ['agent_id'])


def downgrade() -> None:
    op.drop_index('ix_agent_sessions_agent_id', table_name='agent_sessions')
    op.drop_table('agent_sessions')
    op.drop_table('otp_lockouts')
    op.drop_index('ix_otp_codes_phone_number_is_used', table_name='otp_codes')
    op.drop_table('otp_codes')
    op.drop_index('ix_agents_email', table_name='agents')
    op.drop_index('ix_agents_phone_number', table_name='agents')
    op.drop_table('agents')
