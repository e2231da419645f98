"""
Subscription activation.

Called once a purchase is paid for (or costs nothing after a promo code).
Creating the subscription and redeeming the promo code happen in one
transaction: either the user gets the tier and the code is consumed, or
neither happens.
"""

import logging
import uuid
from datetime import datetime
from typing import Optional

from dateutil.relativedelta import relativedelta

from petcare.core.config import settings
from petcare.core.database import transaction
from petcare.models.subscription import UserSubscription

logger = logging.getLogger(__name__)


class SubscriptionActivator:
    """
    Usage:
        activator = SubscriptionActivator(db, SubscriptionStore(db), PromoCodeStore(db))
        subscription = await activator.activate(user_id, tier_id, now, promo_code_id=promo_id, payment_id=payment.id)
    """

    def __init__(self, session, subscriptions, promo_codes, period_months: Optional[int] = None):
        self.session = session
        self.subscriptions = subscriptions
        self.promo_codes = promo_codes
        self.period_months = period_months or settings.SUBSCRIPTION_PERIOD_MONTHS

    def expiry_for(self, starts_at: datetime, duration_months: Optional[int] = None) -> datetime:
        """End of the subscription period (calendar months, clamped to month end)."""
        return starts_at + relativedelta(months=duration_months or self.period_months)

    async def activate(
        self,
        user_id: uuid.UUID,
        tier_id: uuid.UUID,
        now: datetime,
        promo_code_id: Optional[uuid.UUID] = None,
        payment_id: Optional[uuid.UUID] = None,
        duration_months: Optional[int] = None,
    ) -> UserSubscription:
        """
        Create an active subscription and, if a promo code was used, redeem it.

        Raises:
            PromoRedemptionError: the code was used up or already redeemed by
                this user; nothing is written
            TransientStoreError: store unavailable; nothing is written
        """
        expires_at = self.expiry_for(now, duration_months)

        async with transaction(self.session):
            subscription = await self.subscriptions.create(
                user_id=user_id,
                tier_id=tier_id,
                starts_at=now,
                expires_at=expires_at,
                promo_code_id=promo_code_id,
            )
            if promo_code_id is not None:
                await self.promo_codes.redeem(user_id, promo_code_id, payment_id)

        logger.info(
            f"Activated subscription for user {user_id} until {expires_at.isoformat()}",
            extra={
                "user_id": str(user_id),
                "tier_id": str(tier_id),
                "promo_code_id": str(promo_code_id) if promo_code_id else None,
                "payment_id": str(payment_id) if payment_id else None,
            }
        )
        return subscription
