"""
Payment model - a purchase attempt handed to the payment processor.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from sqlalchemy import Column, String, Integer, ForeignKey
from sqlalchemy.dialects.postgresql import UUID, TIMESTAMP

from petcare.core.database import Base


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class Payment(Base):
    """
    Purchase of a tier, optionally discounted by a promo code.

    Zero-cost purchases are stored as completed with gateway='promo'.
    """

    __tablename__ = "payments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    tier_id = Column(UUID(as_uuid=True), ForeignKey("subscription_tiers.id"), nullable=False)
    promo_code_id = Column(UUID(as_uuid=True), ForeignKey("promo_codes.id"), nullable=True)

    original_amount = Column(Integer, nullable=False)
    discount_amount = Column(Integer, default=0, nullable=False)
    final_amount = Column(Integer, nullable=False)

    gateway = Column(String, nullable=False)  # 'processor' | 'promo'
    status = Column(String, default=PaymentStatus.PENDING.value, nullable=False)  # See PaymentStatus
    transaction_id = Column(String, nullable=True)  # Processor reference once verified
    failure_reason = Column(String, nullable=True)

    created_at = Column(TIMESTAMP(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = Column(
        TIMESTAMP(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self):
        return f"<Payment {self.id} {self.status} {self.final_amount}>"
