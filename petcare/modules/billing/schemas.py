"""Pydantic models for checkout and payment confirmation."""

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID
from pydantic import BaseModel, Field


class CheckoutRequest(BaseModel):
    tier_id: UUID
    promo_code: Optional[str] = Field(None, max_length=64)


class CheckoutResult(BaseModel):
    """
    Outcome of starting a purchase.

    activated=True means the purchase cost nothing after the promo code and
    the subscription is already live; otherwise the client pays the pending
    payment through the processor.
    """

    payment_id: UUID
    status: str = Field(..., description="Payment status: pending or completed")
    original_amount: int
    discount_amount: int = 0
    final_amount: int
    activated: bool = False
    subscription_expires_at: Optional[datetime] = None


class PaymentConfirmRequest(BaseModel):
    """Processor callback body. Anything other than OK is a failed payment."""

    status: Literal["OK", "FAILED"] = "OK"
    transaction_id: Optional[str] = Field(None, max_length=128)


class PaymentConfirmation(BaseModel):
    payment_id: UUID
    status: str
    already_processed: bool = False
    subscription_expires_at: Optional[datetime] = None
