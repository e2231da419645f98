"""Exceptions raised by the entitlement engine.

Quota and promo outcomes are returned as data (QuotaDecision, PromoValidation).
Only infrastructure and configuration faults are raised.
"""


class EntitlementError(Exception):
    """Base class for entitlement engine faults."""
    pass


class ConfigurationError(EntitlementError):
    """
    Tier catalog is missing its default tier or holds malformed data.

    Fatal: never swallowed, never retried.
    """
    pass


class TransientStoreError(EntitlementError):
    """
    A store read or write failed for infrastructure reasons.

    Quota checks fail open on this error; usage recording logs and continues.
    """

    def __init__(self, operation: str, cause: Exception = None):
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Store operation '{operation}' failed{detail}")


class PromoRedemptionError(EntitlementError):
    """
    Promo code could not be redeemed while completing a purchase.

    reason is PromoFailureReason.USAGE_LIMIT_REACHED or ALREADY_USED.
    """

    def __init__(self, promo_code_id, reason):
        self.promo_code_id = promo_code_id
        self.reason = reason
        super().__init__(f"Promo code {promo_code_id} could not be redeemed: {getattr(reason, 'value', reason)}")
