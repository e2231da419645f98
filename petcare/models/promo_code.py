"""
PromoCode and PromoCodeUsage models - discount instruments and their redemptions.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from sqlalchemy import Column, String, Integer, Boolean, ForeignKey, CheckConstraint, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID, TIMESTAMP

from petcare.core.database import Base


class DiscountType(str, Enum):
    """
    How a promo code reduces the price.

    - PERCENTAGE: discount_value percent of the tier price (floored)
    - FIXED_AMOUNT: discount_value currency units, capped at the price
    - FREE_TIER: grants free_tier_id at no cost
    """
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"
    FREE_TIER = "free_tier"


class PromoCode(Base):
    """
    Discount code. Codes are stored upper-case and looked up case-insensitively.
    """

    __tablename__ = "promo_codes"
    __table_args__ = (
        CheckConstraint("max_uses IS NULL OR used_count <= max_uses", name="ck_promo_codes_max_uses"),
        CheckConstraint("discount_value >= 0", name="ck_promo_codes_discount_value"),
        CheckConstraint(
            "discount_type IN ('percentage', 'fixed_amount', 'free_tier')",
            name="ck_promo_codes_discount_type",
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String, unique=True, nullable=False, index=True)

    discount_type = Column(String, nullable=False)  # See DiscountType
    discount_value = Column(Integer, default=0, nullable=False)
    free_tier_id = Column(UUID(as_uuid=True), ForeignKey("subscription_tiers.id"), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    valid_from = Column(TIMESTAMP(timezone=True), nullable=True)
    valid_until = Column(TIMESTAMP(timezone=True), nullable=True)

    max_uses = Column(Integer, nullable=True)  # NULL = unlimited
    used_count = Column(Integer, default=0, nullable=False)
    duration_months = Column(Integer, default=1, nullable=False)

    created_at = Column(TIMESTAMP(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    def __repr__(self):
        return f"<PromoCode {self.code} {self.discount_type}={self.discount_value}>"

    @staticmethod
    def normalize(code: str) -> str:
        """Canonical form used for storage and lookup."""
        return (code or "").strip().upper()


class PromoCodeUsage(Base):
    """One redemption of a promo code by a user. A user redeems a code at most once."""

    __tablename__ = "promo_code_usage"
    __table_args__ = (
        UniqueConstraint("user_id", "promo_code_id", name="uq_promo_code_usage_user_code"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    promo_code_id = Column(UUID(as_uuid=True), ForeignKey("promo_codes.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    payment_id = Column(UUID(as_uuid=True), ForeignKey("payments.id"), nullable=True)
    used_at = Column(TIMESTAMP(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    def __repr__(self):
        return f"<PromoCodeUsage code={self.promo_code_id} user={self.user_id}>"
