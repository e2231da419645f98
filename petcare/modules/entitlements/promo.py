"""
Promotional discount resolver.

Validates a promo code for a user and a target tier and computes the
discounted price. Validation is read-only: the redemption (usage row and
used_count bump) is written by SubscriptionActivator when the purchase
actually completes.

Checks run in this order and stop at the first failure:

1. Code exists (case-insensitive, trimmed) and is active  -> INVALID_CODE
2. valid_until has passed                                 -> EXPIRED
3. valid_from is still in the future                      -> NOT_YET_ACTIVE
4. used_count >= max_uses                                 -> USAGE_LIMIT_REACHED
5. The user already redeemed it                           -> ALREADY_USED
6. Target tier (or the granted tier) exists and is active -> INVALID_TIER
"""

import logging
import uuid
from datetime import datetime
from typing import Optional, Tuple

from petcare.models.promo_code import PromoCode, DiscountType
from petcare.models.tier import SubscriptionTier
from petcare.modules.entitlements.schemas import PromoFailureReason, PromoValidation

logger = logging.getLogger(__name__)


def compute_discount(discount_type: str, discount_value: int, price: int) -> Tuple[int, int]:
    """
    Discount and final amount for a price.

    - percentage:   floor(price * value / 100)
    - fixed_amount: min(value, price)
    - free_tier:    the whole price

    Returns:
        (discount_amount, final_amount); final_amount is never negative

    Example:
        compute_discount("percentage", 20, 100000) -> (20000, 80000)
    """
    discount_type = DiscountType(discount_type)
    price = int(price)

    if discount_type == DiscountType.PERCENTAGE:
        discount_amount = (price * int(discount_value)) // 100
    elif discount_type == DiscountType.FIXED_AMOUNT:
        discount_amount = min(int(discount_value), price)
    else:
        discount_amount = price

    discount_amount = max(0, min(discount_amount, price))
    final_amount = max(0, price - discount_amount)
    return discount_amount, final_amount


class PromoCodeValidator:
    """
    Usage:
        validator = PromoCodeValidator(PromoCodeStore(db), TierCatalog(db))
        result = await validator.validate_promo_code(user_id, "save20", tier_id, now)
        if not result.valid:
            return result  # result.reason / result.message for the UI
    """

    def __init__(self, promo_codes, catalog):
        self.promo_codes = promo_codes
        self.catalog = catalog

    async def validate_promo_code(
        self,
        user_id: uuid.UUID,
        code: str,
        target_tier_id: Optional[uuid.UUID],
        now: datetime,
    ) -> PromoValidation:
        """
        Validate `code` for `user_id` buying `target_tier_id`.

        Raises:
            TransientStoreError: a store could not be read
        """
        normalized = PromoCode.normalize(code)

        promo = await self.promo_codes.get_by_code(normalized) if normalized else None
        failure = self._check_availability(promo, now)
        if failure is None and await self.promo_codes.has_redemption(user_id, promo.id):
            failure = PromoFailureReason.ALREADY_USED

        if failure is not None:
            logger.info(
                f"Promo code {normalized!r} rejected for user {user_id}: {failure.value}",
                extra={"user_id": str(user_id), "promo_code": normalized, "reason": failure.value}
            )
            return PromoValidation.rejected(failure)

        tier = await self._priced_tier(promo, target_tier_id)
        if tier is None:
            return PromoValidation.rejected(PromoFailureReason.INVALID_TIER)

        discount_amount, final_amount = compute_discount(promo.discount_type, promo.discount_value, tier.price)
        is_grant = promo.discount_type == DiscountType.FREE_TIER.value

        logger.info(
            f"Promo code {normalized} is valid. Type: {promo.discount_type}, Value: {promo.discount_value}",
            extra={"user_id": str(user_id), "promo_code_id": str(promo.id), "final_amount": final_amount}
        )

        return PromoValidation(
            valid=True,
            message="Code applied successfully",
            promo_code_id=promo.id,
            discount_type=promo.discount_type,
            discount_value=promo.discount_value,
            original_amount=tier.price,
            discount_amount=discount_amount,
            final_amount=final_amount,
            duration_months=promo.duration_months or 1,
            granted_tier_id=tier.id if is_grant else None,
            granted_tier_name=tier.name if is_grant else None,
        )

    @staticmethod
    def _check_availability(promo: Optional[PromoCode], now: datetime) -> Optional[PromoFailureReason]:
        """Checks 1-4: the code itself, independent of the user."""
        if promo is None or not promo.is_active:
            return PromoFailureReason.INVALID_CODE
        if promo.valid_until is not None and now > promo.valid_until:
            return PromoFailureReason.EXPIRED
        if promo.valid_from is not None and now < promo.valid_from:
            return PromoFailureReason.NOT_YET_ACTIVE
        if promo.max_uses is not None and promo.used_count >= promo.max_uses:
            return PromoFailureReason.USAGE_LIMIT_REACHED
        return None

    async def _priced_tier(
        self,
        promo: PromoCode,
        target_tier_id: Optional[uuid.UUID],
    ) -> Optional[SubscriptionTier]:
        """Tier whose price the discount applies to: the granted tier for free_tier codes."""
        if promo.discount_type == DiscountType.FREE_TIER.value:
            if promo.free_tier_id is None:
                logger.error(
                    f"Promo code {promo.code} is a free_tier grant without free_tier_id",
                    extra={"promo_code_id": str(promo.id)}
                )
                return None
            tier_id = promo.free_tier_id
        else:
            tier_id = target_tier_id

        if tier_id is None:
            return None
        tier = await self.catalog.get(tier_id)
        if tier is None or not tier.is_active:
            return None
        return tier
