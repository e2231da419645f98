"""Initial entitlement schema: tiers, subscriptions, AI usage, promo codes, payments

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create entitlement schema."""

    # Create subscription_tiers table
    op.create_table(
        'subscription_tiers',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('display_name', sa.String(), nullable=False),
        sa.Column('monthly_limit', sa.Integer(), nullable=False, server_default='5'),
        sa.Column('grace_buffer', sa.Integer(), nullable=False, server_default='2'),
        sa.Column('price', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('monthly_limit >= 0', name='ck_subscription_tiers_monthly_limit'),
        sa.CheckConstraint('grace_buffer >= 0', name='ck_subscription_tiers_grace_buffer'),
        sa.CheckConstraint('price >= 0', name='ck_subscription_tiers_price'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_subscription_tiers_name'), 'subscription_tiers', ['name'], unique=True)

    # Create promo_codes table
    op.create_table(
        'promo_codes',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('discount_type', sa.String(), nullable=False),
        sa.Column('discount_value', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('free_tier_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('valid_from', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('valid_until', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('max_uses', sa.Integer(), nullable=True),
        sa.Column('used_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('duration_months', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('max_uses IS NULL OR used_count <= max_uses', name='ck_promo_codes_max_uses'),
        sa.CheckConstraint('discount_value >= 0', name='ck_promo_codes_discount_value'),
        sa.CheckConstraint(
            "discount_type IN ('percentage', 'fixed_amount', 'free_tier')",
            name='ck_promo_codes_discount_type'
        ),
        sa.ForeignKeyConstraint(['free_tier_id'], ['subscription_tiers.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_promo_codes_code'), 'promo_codes', ['code'], unique=True)

    # Create user_subscriptions table
    op.create_table(
        'user_subscriptions',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('tier_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('promo_code_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='active'),
        sa.Column('starts_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['tier_id'], ['subscription_tiers.id']),
        sa.ForeignKeyConstraint(['promo_code_id'], ['promo_codes.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_user_subscriptions_user_id'), 'user_subscriptions', ['user_id'], unique=False)
    op.create_index(
        'ix_user_subscriptions_user_status_created',
        'user_subscriptions',
        ['user_id', 'status', 'created_at'],
        unique=False
    )

    # Create ai_usage table
    op.create_table(
        'ai_usage',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('month_year', sa.String(length=7), nullable=False),
        sa.Column('chatbot_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('analysis_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('user_id', 'month_year', name='uq_ai_usage_user_month'),
        sa.CheckConstraint('chatbot_count >= 0 AND analysis_count >= 0', name='ck_ai_usage_non_negative'),
        sa.CheckConstraint('total_count = chatbot_count + analysis_count', name='ck_ai_usage_total'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_ai_usage_user_id'), 'ai_usage', ['user_id'], unique=False)

    # Create payments table
    op.create_table(
        'payments',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('tier_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('promo_code_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('original_amount', sa.Integer(), nullable=False),
        sa.Column('discount_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('final_amount', sa.Integer(), nullable=False),
        sa.Column('gateway', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('transaction_id', sa.String(), nullable=True),
        sa.Column('failure_reason', sa.String(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['tier_id'], ['subscription_tiers.id']),
        sa.ForeignKeyConstraint(['promo_code_id'], ['promo_codes.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_payments_user_id'), 'payments', ['user_id'], unique=False)

    # Create promo_code_usage table
    op.create_table(
        'promo_code_usage',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('promo_code_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('payment_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('used_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('user_id', 'promo_code_id', name='uq_promo_code_usage_user_code'),
        sa.ForeignKeyConstraint(['promo_code_id'], ['promo_codes.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['payment_id'], ['payments.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_promo_code_usage_promo_code_id'), 'promo_code_usage', ['promo_code_id'], unique=False)
    op.create_index(op.f('ix_promo_code_usage_user_id'), 'promo_code_usage', ['user_id'], unique=False)


def downgrade() -> None:
    """Drop entitlement schema."""
    op.drop_index(op.f('ix_promo_code_usage_user_id'), table_name='promo_code_usage')
    op.drop_index(op.f('ix_promo_code_usage_promo_code_id'), table_name='promo_code_usage')
    op.drop_table('promo_code_usage')

    op.drop_index(op.f('ix_payments_user_id'), table_name='payments')
    op.drop_table('payments')

    op.drop_index(op.f('ix_ai_usage_user_id'), table_name='ai_usage')
    op.drop_table('ai_usage')

    op.drop_index('ix_user_subscriptions_user_status_created', table_name='user_subscriptions')
    op.drop_index(op.f('ix_user_subscriptions_user_id'), table_name='user_subscriptions')
    op.drop_table('user_subscriptions')

    op.drop_index(op.f('ix_promo_codes_code'), table_name='promo_codes')
    op.drop_table('promo_codes')

    op.drop_index(op.f('ix_subscription_tiers_name'), table_name='subscription_tiers')
    op.drop_table('subscription_tiers')
