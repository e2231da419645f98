"""
UserSubscription model - a user's claim to a paid (or promo-granted) tier.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from sqlalchemy import Column, String, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID, TIMESTAMP
from sqlalchemy.orm import relationship

from petcare.core.database import Base


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    PENDING = "pending"
    CANCELLED = "cancelled"


class UserSubscription(Base):
    """
    Subscription to a non-default tier for a bounded period.

    Created when a payment completes (or immediately for a zero-cost promo
    purchase). A row may still say 'active' after expires_at has passed;
    the entitlement resolver checks expires_at at read time.
    """

    __tablename__ = "user_subscriptions"
    __table_args__ = (
        Index("ix_user_subscriptions_user_status_created", "user_id", "status", "created_at"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)  # Owned by the auth provider
    tier_id = Column(UUID(as_uuid=True), ForeignKey("subscription_tiers.id"), nullable=False)
    promo_code_id = Column(UUID(as_uuid=True), ForeignKey("promo_codes.id"), nullable=True)

    status = Column(String, default=SubscriptionStatus.ACTIVE.value, nullable=False)  # See SubscriptionStatus
    starts_at = Column(TIMESTAMP(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    expires_at = Column(TIMESTAMP(timezone=True), nullable=True)  # NULL = open-ended

    created_at = Column(TIMESTAMP(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = Column(
        TIMESTAMP(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # Relationships
    tier = relationship("SubscriptionTier", lazy="joined")

    def __repr__(self):
        return f"<UserSubscription user={self.user_id} status={self.status}>"

    def is_current(self, now: datetime) -> bool:
        """Active and not past expires_at (if set)."""
        if self.status != SubscriptionStatus.ACTIVE.value:
            return False
        return self.expires_at is None or self.expires_at > now
