"""Seed the subscription tier catalog

Revision ID: 002
Revises: 001
Create Date: 2026-10-18

"""
from alembic import op

# revision identifiers, used by Alembic.
revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None


# Deterministic IDs so environments agree on tier references
TIERS = [
    # (id, name, display_name, monthly_limit, grace_buffer, price)
    ('00000000-0000-0000-0000-00000000f001', 'free', 'Free', 5, 2, 0),
    ('00000000-0000-0000-0000-00000000f002', 'basic', 'Basic', 50, 5, 99000),
    ('00000000-0000-0000-0000-00000000f003', 'pro', 'Pro', 200, 10, 249000),
]


def upgrade() -> None:
    """Insert the default tier catalog. 'free' is the default tier."""
    for tier_id, name, display_name, monthly_limit, grace_buffer, price in TIERS:
        op.execute(f"""
            INSERT INTO subscription_tiers (
                id, name, display_name, monthly_limit, grace_buffer, price, is_active, created_at
            )
            VALUES (
                '{tier_id}', '{name}', '{display_name}', {monthly_limit}, {grace_buffer}, {price}, true, now()
            )
            ON CONFLICT (name) DO NOTHING;
        """)


def downgrade() -> None:
    """Remove seeded tiers that nothing references."""
    op.execute("""
        DELETE FROM subscription_tiers
        WHERE name IN ('free', 'basic', 'pro')
          AND id NOT IN (SELECT tier_id FROM user_subscriptions)
          AND id NOT IN (SELECT tier_id FROM payments);
    """)
