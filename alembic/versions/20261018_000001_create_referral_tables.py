"""Create users, referral_codes and commission_ledger tables

Revision ID: 20261018_000001
Revises: 
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261018_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('tier', sa.String(20), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='user'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'referral_codes',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('code', sa.String(64), nullable=False),
        sa.Column('referrer_id', sa.String(64), nullable=False),
        sa.Column('referred_id', sa.String(64), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_referral_codes_code', 'referral_codes', ['code'], unique=True)
    op.create_index('ix_referral_codes_referrer_id', 'referral_codes', ['referrer_id'])
    op.create_index(
        'ix_referral_codes_referred_status_created',
        'referral_codes',
        ['referred_id', 'status', 'created_at'],
    )
    # One active code per referrer
    op.create_index(
        'uq_referral_codes_active_referrer',
        'referral_codes',
        ['referrer_id'],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
        sqlite_where=sa.text("status = 'active'"),
    )

    op.create_table(
        'commission_ledger',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('beneficiary_id', sa.String(64), nullable=False),
        sa.Column('purchaser_id', sa.String(64), nullable=False),
        sa.Column('referral_code_id', sa.Integer(), nullable=False),
        sa.Column('layer', sa.Integer(), nullable=False),
        sa.Column('amount', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('purchase_amount', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('commission_rate', sa.DECIMAL(6, 4), nullable=False),
        sa.Column('purchase_reference', sa.String(128), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['referral_code_id'], ['referral_codes.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('purchase_reference', 'layer', name='uq_commission_ledger_purchase_layer'),
        sa.CheckConstraint('layer >= 1', name='check_commission_layer_positive'),
        sa.CheckConstraint('amount >= 0', name='check_commission_amount_non_negative'),
        sa.CheckConstraint('purchase_amount > 0', name='check_commission_purchase_positive'),
    )
    op.create_index('ix_commission_ledger_beneficiary_id', 'commission_ledger', ['beneficiary_id'])
    op.create_index('ix_commission_ledger_referral_code_id', 'commission_ledger', ['referral_code_id'])
    op.create_index('ix_commission_ledger_purchase_reference', 'commission_ledger', ['purchase_reference'])


def downgrade() -> None:
    op.drop_index('ix_commission_ledger_purchase_reference', table_name='commission_ledger')
    op.drop_index('ix_commission_ledger_referral_code_id', table_name='commission_ledger')
    op.drop_index('ix_commission_ledger_beneficiary_id', table_name='commission_ledger')
    op.drop_table('commission_ledger')

    op.drop_index('uq_referral_codes_active_referrer', table_name='referral_codes')
    op.drop_index('ix_referral_codes_referred_status_created', table_name='referral_codes')
    op.drop_index('ix_referral_codes_referrer_id', table_name='referral_codes')
    op.drop_index('ix_referral_codes_code', table_name='referral_codes')
    op.drop_table('referral_codes')

    op.drop_table('users')
