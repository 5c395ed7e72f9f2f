"""Create coin ledger schema

Revision ID: 3b7e1c9d2a40
Revises:
Create Date: 2026-10-19 09:12:44.318207

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '3b7e1c9d2a40'
down_revision = None
branch_labels = None
depends_on = None


userrole = postgresql.ENUM('seller', 'admin', name='userrole', create_type=False)
userstatus = postgresql.ENUM('pending', 'approved', 'rejected', 'suspended', name='userstatus', create_type=False)
commissiontype = postgresql.ENUM('fixed', 'percentage', name='commissiontype', create_type=False)
bookingstatus = postgresql.ENUM('pending', 'inprogress', 'approved', 'rejected', 'cancelled', name='bookingstatus', create_type=False)
bookingpaymentstatus = postgresql.ENUM('pending', 'deposit_paid', 'fully_paid', 'cancelled', name='bookingpaymentstatus', create_type=False)
cointype = postgresql.ENUM('locked', 'redeemable', name='cointype', create_type=False)
cointransactiontype = postgresql.ENUM(
    'bonus', 'adjustment', 'campaign', 'gamification', 'unlock', 'redemption',
    name='cointransactiontype', create_type=False,
)
coinsourcetype = postgresql.ENUM('booking', 'campaign', 'admin', 'gamification', 'redemption', name='coinsourcetype', create_type=False)
commissionstatus = postgresql.ENUM('pending', 'partially_paid', 'paid', 'cancelled', name='commissionstatus', create_type=False)
condition2action = postgresql.ENUM('unlock', 'bonus', 'none', name='condition2action', create_type=False)
bonuscampaigntype = postgresql.ENUM('booking', 'trip', name='bonuscampaigntype', create_type=False)
redemptionstatus = postgresql.ENUM('pending', 'approved', 'rejected', 'paid', name='redemptionstatus', create_type=False)

ENUMS = (
    userrole, userstatus, commissiontype, bookingstatus, bookingpaymentstatus, cointype,
    cointransactiontype, coinsourcetype, commissionstatus, condition2action, bonuscampaigntype,
    redemptionstatus,
)


def upgrade() -> None:
    bind = op.get_bind()
    for enum in ENUMS:
        enum.create(bind, checkfirst=True)

    op.create_table('users',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('full_name', sa.String(), nullable=True),
        sa.Column('role', userrole, server_default='seller', nullable=False),
        sa.Column('status', userstatus, nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )
    op.create_table('bank_accounts',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('seller_id', sa.UUID(), nullable=False),
        sa.Column('bank_name', sa.String(), nullable=False),
        sa.Column('account_number', sa.String(), nullable=False),
        sa.Column('account_name', sa.String(), nullable=False),
        sa.Column('is_default', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['seller_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_bank_accounts_seller_id', 'bank_accounts', ['seller_id'])

    op.create_table('trips',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('price_per_person', sa.Numeric(12, 2), nullable=False),
        sa.Column('commission_type', commissiontype, nullable=False),
        sa.Column('commission_value', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table('bookings',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('trip_id', sa.UUID(), nullable=False),
        sa.Column('seller_id', sa.UUID(), nullable=True),
        sa.Column('customer_name', sa.String(), nullable=True),
        sa.Column('passenger_count', sa.Integer(), server_default='1', nullable=False),
        sa.Column('status', bookingstatus, server_default='pending', nullable=False),
        sa.Column('payment_status', bookingpaymentstatus, server_default='pending', nullable=False),
        sa.Column('price_per_person', sa.Numeric(12, 2), nullable=False),
        sa.Column('commission_type', commissiontype, nullable=False),
        sa.Column('commission_value', sa.Numeric(12, 2), nullable=False),
        sa.Column('commission_amount', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('approved_by', sa.UUID(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['trip_id'], ['trips.id']),
        sa.ForeignKeyConstraint(['seller_id'], ['users.id']),
        sa.ForeignKeyConstraint(['approved_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_bookings_trip_id', 'bookings', ['trip_id'])
    op.create_index('ix_bookings_seller_id', 'bookings', ['seller_id'])

    op.create_table('seller_coins',
        sa.Column('seller_id', sa.UUID(), nullable=False),
        sa.Column('locked_balance', sa.Integer(), server_default='0', nullable=False),
        sa.Column('redeemable_balance', sa.Integer(), server_default='0', nullable=False),
        sa.Column('total_earned', sa.Integer(), server_default='0', nullable=False),
        sa.Column('total_redeemed', sa.Integer(), server_default='0', nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint('locked_balance >= 0', name='ck_seller_coins_locked_non_negative'),
        sa.CheckConstraint('redeemable_balance >= 0', name='ck_seller_coins_redeemable_non_negative'),
        sa.ForeignKeyConstraint(['seller_id'], ['users.id']),
        sa.PrimaryKeyConstraint('seller_id')
    )
    op.create_table('coin_transactions',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('seller_id', sa.UUID(), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('coin_type', cointype, nullable=False),
        sa.Column('transaction_type', cointransactiontype, nullable=False),
        sa.Column('source_type', coinsourcetype, nullable=False),
        sa.Column('source_id', sa.UUID(), nullable=True),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('idempotency_key', sa.String(), nullable=True),
        sa.Column('balance_before', sa.Integer(), nullable=False),
        sa.Column('balance_after', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['seller_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('idempotency_key')
    )
    op.create_index('ix_coin_transactions_seller_id', 'coin_transactions', ['seller_id'])
    op.create_index('ix_coin_transactions_created_at', 'coin_transactions', ['created_at'])

    op.create_table('commission_payments',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('booking_id', sa.UUID(), nullable=False),
        sa.Column('seller_id', sa.UUID(), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('deposit_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('final_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('status', commissionstatus, server_default='pending', nullable=False),
        sa.Column('deposit_paid_at', sa.DateTime(), nullable=True),
        sa.Column('final_paid_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id']),
        sa.ForeignKeyConstraint(['seller_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('booking_id')
    )
    op.create_index('ix_commission_payments_seller_id', 'commission_payments', ['seller_id'])

    op.create_table('gamification_campaigns',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('condition_1_type', sa.String(), nullable=False),
        sa.Column('condition_1_reward_amount', sa.Integer(), nullable=False),
        sa.Column('condition_1_reward_type', cointype, nullable=False),
        sa.Column('condition_2_type', sa.String(), nullable=True),
        sa.Column('condition_2_action', condition2action, server_default='none', nullable=False),
        sa.Column('condition_2_bonus_amount', sa.Integer(), server_default='0', nullable=False),
        sa.Column('target_trip_id', sa.UUID(), nullable=True),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('end_date', sa.DateTime(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('created_by', sa.UUID(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint('end_date > start_date', name='ck_gamification_campaigns_window'),
        sa.ForeignKeyConstraint(['target_trip_id'], ['trips.id']),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table('seller_campaign_progress',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('seller_id', sa.UUID(), nullable=False),
        sa.Column('campaign_id', sa.UUID(), nullable=False),
        sa.Column('condition_1_completed', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('condition_1_completed_at', sa.DateTime(), nullable=True),
        sa.Column('condition_1_transaction_id', sa.UUID(), nullable=True),
        sa.Column('condition_1_data', sa.JSON(), nullable=True),
        sa.Column('condition_2_completed', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('condition_2_completed_at', sa.DateTime(), nullable=True),
        sa.Column('both_completed', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['seller_id'], ['users.id']),
        sa.ForeignKeyConstraint(['campaign_id'], ['gamification_campaigns.id']),
        sa.ForeignKeyConstraint(['condition_1_transaction_id'], ['coin_transactions.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('seller_id', 'campaign_id', name='uq_seller_campaign_progress')
    )
    op.create_index('ix_seller_campaign_progress_seller_id', 'seller_campaign_progress', ['seller_id'])
    op.create_index('ix_seller_campaign_progress_campaign_id', 'seller_campaign_progress', ['campaign_id'])

    op.create_table('coin_bonus_campaigns',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('campaign_type', bonuscampaigntype, server_default='booking', nullable=False),
        sa.Column('coin_amount', sa.Integer(), nullable=False),
        sa.Column('coin_type', cointype, server_default='redeemable', nullable=False),
        sa.Column('target_trip_id', sa.UUID(), nullable=True),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('end_date', sa.DateTime(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('conditions', sa.JSON(), nullable=True),
        sa.Column('created_by', sa.UUID(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint('coin_amount > 0', name='ck_coin_bonus_campaigns_amount'),
        sa.CheckConstraint('end_date > start_date', name='ck_coin_bonus_campaigns_window'),
        sa.ForeignKeyConstraint(['target_trip_id'], ['trips.id']),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('coin_redemptions',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('seller_id', sa.UUID(), nullable=False),
        sa.Column('coin_amount', sa.Integer(), nullable=False),
        sa.Column('cash_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('conversion_rate', sa.Numeric(10, 4), nullable=False),
        sa.Column('bank_account_id', sa.UUID(), nullable=False),
        sa.Column('status', redemptionstatus, server_default='pending', nullable=False),
        sa.Column('requested_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('approved_by', sa.UUID(), nullable=True),
        sa.Column('rejection_reason', sa.String(), nullable=True),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('transaction_id', sa.UUID(), nullable=True),
        sa.CheckConstraint('coin_amount > 0', name='ck_coin_redemptions_amount'),
        sa.ForeignKeyConstraint(['seller_id'], ['users.id']),
        sa.ForeignKeyConstraint(['bank_account_id'], ['bank_accounts.id']),
        sa.ForeignKeyConstraint(['approved_by'], ['users.id']),
        sa.ForeignKeyConstraint(['transaction_id'], ['coin_transactions.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_coin_redemptions_seller_id', 'coin_redemptions', ['seller_id'])

    op.create_table('audit_log',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('actor_id', sa.UUID(), nullable=False),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('entity', sa.String(), nullable=False),
        sa.Column('entity_id', sa.UUID(), nullable=True),
        sa.Column('payload_json', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['actor_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )


def downgrade() -> None:
    for table in (
        'audit_log', 'coin_redemptions', 'coin_bonus_campaigns', 'seller_campaign_progress',
        'gamification_campaigns', 'commission_payments', 'coin_transactions', 'seller_coins',
        'bookings', 'trips', 'bank_accounts', 'users',
    ):
        op.drop_table(table)
    bind = op.get_bind()
    for enum in reversed(ENUMS):
        enum.drop(bind, checkfirst=True)
