"""
SubscriptionTier model - the catalog of subscription plans.

Each tier defines how many AI calls a user gets per calendar month and how
many extra "grace" calls are tolerated before requests are refused.
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Integer, Boolean, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID, TIMESTAMP

from petcare.core.database import Base


class SubscriptionTier(Base):
    """
    A subscription plan.

    Tiers are edited by administrators. The quota engine only ever reads them.
    Exactly one tier (settings.DEFAULT_TIER_NAME) acts as the default for
    users without an active subscription.
    """

    __tablename__ = "subscription_tiers"
    __table_args__ = (
        CheckConstraint("monthly_limit >= 0", name="ck_subscription_tiers_monthly_limit"),
        CheckConstraint("grace_buffer >= 0", name="ck_subscription_tiers_grace_buffer"),
        CheckConstraint("price >= 0", name="ck_subscription_tiers_price"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, unique=True, nullable=False, index=True)  # 'free' | 'basic' | 'pro'
    display_name = Column(String, nullable=False)

    monthly_limit = Column(Integer, default=5, nullable=False)  # AI calls per calendar month
    grace_buffer = Column(Integer, default=2, nullable=False)  # Extra calls before hard denial
    price = Column(Integer, default=0, nullable=False)  # Whole currency units (toman)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    def __repr__(self):
        return f"<SubscriptionTier {self.name} limit={self.monthly_limit}+{self.grace_buffer}>"

    @property
    def total_limit(self) -> int:
        """Monthly allowance plus grace buffer."""
        return self.monthly_limit + self.grace_buffer
