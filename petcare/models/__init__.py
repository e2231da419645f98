"""
Database models package.

Import all models here so Alembic can discover them for migrations.
"""

from petcare.models.tier import SubscriptionTier
from petcare.models.subscription import UserSubscription, SubscriptionStatus
from petcare.models.usage import AIUsage, UsageCategory
from petcare.models.promo_code import PromoCode, PromoCodeUsage, DiscountType
from petcare.models.payment import Payment, PaymentStatus

__all__ = [
    "SubscriptionTier",
    "UserSubscription",
    "SubscriptionStatus",
    "AIUsage",
    "UsageCategory",
    "PromoCode",
    "PromoCodeUsage",
    "DiscountType",
    "Payment",
    "PaymentStatus",
]
