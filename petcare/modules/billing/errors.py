"""Billing exceptions."""

from typing import Optional

from petcare.modules.entitlements.schemas import PromoFailureReason


class CheckoutError(Exception):
    """Purchase cannot be started (unknown tier, rejected promo code)."""

    def __init__(self, message: str, reason: Optional[PromoFailureReason] = None):
        self.message = message
        self.reason = reason
        super().__init__(message)


class PaymentNotFoundError(Exception):
    """No payment with the given ID."""

    def __init__(self, payment_id):
        self.payment_id = payment_id
        super().__init__(f"Payment {payment_id} not found")
