"""Add coin earning rules

Revision ID: 8f2a6d4c1e57
Revises: 3b7e1c9d2a40
Create Date: 2026-10-19 15:40:07.552913

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '8f2a6d4c1e57'
down_revision = '3b7e1c9d2a40'
branch_labels = None
depends_on = None


earningruletype = postgresql.ENUM(
    'booking_approved', 'sales_target_monthly', 'referral_first_sale', 'referral_signup',
    name='earningruletype', create_type=False,
)


def upgrade() -> None:
    earningruletype.create(op.get_bind(), checkfirst=True)

    op.create_table('coin_earning_rules',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('rule_name', sa.String(), nullable=False),
        sa.Column('rule_type', earningruletype, nullable=False),
        sa.Column('coin_amount', sa.Integer(), nullable=False),
        sa.Column('calculation_type', sa.String(), server_default='fixed', nullable=False),
        sa.Column('conditions', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('priority', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint('coin_amount > 0', name='ck_coin_earning_rules_amount_positive'),
        sa.PrimaryKeyConstraint('id')
    )


def downgrade() -> None:
    op.drop_table('coin_earning_rules')
    earningruletype.drop(op.get_bind(), checkfirst=True)
