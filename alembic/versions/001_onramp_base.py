"""onramp_base

Revision ID: 001_onramp_base
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_onramp_base'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Users keyed by wallet address plus the two request tables"""
    op.create_table(
        'users',
        sa.Column('address', sa.String(42), primary_key=True),
        sa.Column('username', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('ens', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'verification_requests',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('address', sa.String(42), sa.ForeignKey('users.address'), nullable=False),
        sa.Column('kind', sa.String(16), nullable=False),
        sa.Column('fields', sa.Text(), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='PENDING'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_verification_requests_address', 'verification_requests', ['address'])
    op.create_index('ix_verification_requests_created_at', 'verification_requests', ['created_at'])

    op.create_table(
        'cash_requests',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('address', sa.String(42), sa.ForeignKey('users.address'), nullable=False),
        sa.Column('direction', sa.String(8), nullable=False),
        sa.Column('token', sa.String(16), nullable=False, server_default='ECOP'),
        sa.Column('amount_wei', sa.String(78), nullable=False),
        sa.Column('bank_ref', sa.String(), nullable=True),
        sa.Column('status', sa.String(16), nullable=False, server_default='PENDING'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_cash_requests_address', 'cash_requests', ['address'])
    op.create_index('ix_cash_requests_created_at', 'cash_requests', ['created_at'])
    op.create_index('ix_cash_requests_direction_status', 'cash_requests', ['direction', 'status'])


def downgrade() -> None:
    op.drop_index('ix_cash_requests_direction_status', table_name='cash_requests')
    op.drop_index('ix_cash_requests_created_at', table_name='cash_requests')
    op.drop_index('ix_cash_requests_address', table_name='cash_requests')
    op.drop_table('cash_requests')
    op.drop_index('ix_verification_requests_created_at', table_name='verification_requests')
    op.drop_index('ix_verification_requests_address', table_name='verification_requests')
    op.drop_table('verification_requests')
    op.drop_table('users')
