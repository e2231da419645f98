"""
Checkout and payment confirmation.

Flow:
1. start_checkout prices the tier (after an optional promo code) and
   records a payment. A purchase that costs nothing is completed and
   activated on the spot.
2. The client pays a pending payment with the processor.
3. The processor calls back and confirm_payment completes the payment and
   activates the subscription, redeeming the promo code in the same
   transaction.

Promo codes are only validated (read-only) at checkout. The redemption is
written at activation, where the conditional used_count update and the
per-user unique constraint decide races between concurrent purchases.
"""

import logging
import uuid
from datetime import datetime
from typing import Optional

from petcare.core.database import transaction
from petcare.core.sentry import capture_business_error
from petcare.models.payment import PaymentStatus
from petcare.modules.billing.errors import CheckoutError, PaymentNotFoundError
from petcare.modules.billing.schemas import CheckoutResult, PaymentConfirmation
from petcare.modules.entitlements.errors import PromoRedemptionError
from petcare.modules.entitlements.schemas import PROMO_FAILURE_MESSAGES, PromoFailureReason

logger = logging.getLogger(__name__)

GATEWAY_PROCESSOR = "processor"
GATEWAY_PROMO = "promo"

NO_PURCHASE_MESSAGE = "This plan does not require a purchase"


class CheckoutService:
    """
    Usage:
        service = CheckoutService(db, TierCatalog(db), validator, PaymentStore(db), activator)
        result = await service.start_checkout(user_id, tier_id, "SAVE20", now)
    """

    def __init__(self, session, catalog, validator, payments, activator):
        self.session = session
        self.catalog = catalog
        self.validator = validator
        self.payments = payments
        self.activator = activator

    async def start_checkout(
        self,
        user_id: uuid.UUID,
        tier_id: uuid.UUID,
        promo_code: Optional[str],
        now: datetime,
    ) -> CheckoutResult:
        """
        Price the purchase and record a payment.

        Raises:
            CheckoutError: unknown/inactive/free tier, or the promo code was rejected
            TransientStoreError: store unavailable
        """
        promo_code_id = None
        duration_months = None

        if promo_code and promo_code.strip():
            validation = await self.validator.validate_promo_code(user_id, promo_code, tier_id, now)
            if not validation.valid:
                raise CheckoutError(validation.message, validation.reason)

            if validation.granted_tier_id is None and validation.original_amount <= 0:
                raise CheckoutError(NO_PURCHASE_MESSAGE)

            promo_code_id = validation.promo_code_id
            if validation.granted_tier_id is not None:
                # free_tier codes grant their own tier for their own duration
                tier_id = validation.granted_tier_id
                duration_months = validation.duration_months
            original_amount = validation.original_amount
            discount_amount = validation.discount_amount
            final_amount = validation.final_amount
        else:
            tier = await self.catalog.get(tier_id)
            if tier is None or not tier.is_active:
                raise CheckoutError(
                    PROMO_FAILURE_MESSAGES[PromoFailureReason.INVALID_TIER],
                    PromoFailureReason.INVALID_TIER,
                )
            if tier.price <= 0:
                raise CheckoutError(NO_PURCHASE_MESSAGE)
            original_amount = tier.price
            discount_amount = 0
            final_amount = tier.price

        if final_amount > 0:
            payment = await self.payments.create(
                user_id=user_id,
                tier_id=tier_id,
                original_amount=original_amount,
                discount_amount=discount_amount,
                final_amount=final_amount,
                gateway=GATEWAY_PROCESSOR,
                status=PaymentStatus.PENDING,
                now=now,
                promo_code_id=promo_code_id,
            )
            logger.info(
                f"Checkout started for user {user_id}: payment {payment.id} amount={final_amount}",
                extra={"user_id": str(user_id), "payment_id": str(payment.id), "tier_id": str(tier_id)}
            )
            return CheckoutResult(
                payment_id=payment.id,
                status=PaymentStatus.PENDING.value,
                original_amount=original_amount,
                discount_amount=discount_amount,
                final_amount=final_amount,
            )

        try:
            async with transaction(self.session):
                payment = await self.payments.create(
                    user_id=user_id,
                    tier_id=tier_id,
                    original_amount=original_amount,
                    discount_amount=discount_amount,
                    final_amount=0,
                    gateway=GATEWAY_PROMO,
                    status=PaymentStatus.COMPLETED,
                    now=now,
                    promo_code_id=promo_code_id,
                )
                payment_id = payment.id
                subscription = await self.activator.activate(
                    user_id,
                    tier_id,
                    now,
                    promo_code_id=promo_code_id,
                    payment_id=payment_id,
                    duration_months=duration_months,
                )
        except PromoRedemptionError as e:
            logger.info(
                f"Promo redemption lost a race for user {user_id}: {e}",
                extra={"user_id": str(user_id), "promo_code_id": str(promo_code_id)}
            )
            raise CheckoutError(PROMO_FAILURE_MESSAGES[e.reason], e.reason) from e

        logger.info(
            f"Zero-cost checkout for user {user_id} activated tier {tier_id}",
            extra={"user_id": str(user_id), "payment_id": str(payment_id), "tier_id": str(tier_id)}
        )
        return CheckoutResult(
            payment_id=payment_id,
            status=PaymentStatus.COMPLETED.value,
            original_amount=original_amount,
            discount_amount=discount_amount,
            final_amount=0,
            activated=True,
            subscription_expires_at=subscription.expires_at,
        )

    async def confirm_payment(
        self,
        payment_id: uuid.UUID,
        succeeded: bool,
        transaction_id: Optional[str],
        now: datetime,
    ) -> PaymentConfirmation:
        """
        Apply the processor's verdict to a payment.

        Idempotent: a completed payment is reported as already processed.

        Raises:
            PaymentNotFoundError: unknown payment_id
            TransientStoreError: store unavailable
        """
        payment = await self.payments.get_for_update(payment_id)
        if payment is None:
            raise PaymentNotFoundError(payment_id)

        if payment.status == PaymentStatus.COMPLETED.value:
            logger.info(f"Payment {payment_id} already completed", extra={"payment_id": str(payment_id)})
            return PaymentConfirmation(
                payment_id=payment_id,
                status=payment.status,
                already_processed=True,
            )

        if payment.status != PaymentStatus.PENDING.value:
            return PaymentConfirmation(payment_id=payment_id, status=payment.status, already_processed=True)

        if not succeeded:
            await self.payments.mark_failed(payment, "declined by processor")
            logger.info(f"Payment {payment_id} declined", extra={"payment_id": str(payment_id)})
            return PaymentConfirmation(payment_id=payment_id, status=PaymentStatus.FAILED.value)

        # Read before the savepoint: a rollback expires the instance
        user_id = payment.user_id
        tier_id = payment.tier_id
        promo_code_id = payment.promo_code_id

        try:
            async with transaction(self.session):
                await self.payments.mark_completed(payment, transaction_id)
                subscription = await self.activator.activate(
                    user_id,
                    tier_id,
                    now,
                    promo_code_id=promo_code_id,
                    payment_id=payment_id,
                )
        except PromoRedemptionError as e:
            capture_business_error(
                error=e,
                context={
                    "user_id": str(user_id),
                    "payment_id": str(payment_id),
                    "promo_code_id": str(promo_code_id),
                    "operation": "confirm_payment",
                    "action": "refund_required",
                },
                level="error",
            )
            await self.payments.mark_failed(payment, f"promo redemption failed: {e.reason.value}")
            return PaymentConfirmation(payment_id=payment_id, status=PaymentStatus.FAILED.value)

        logger.info(
            f"Payment {payment_id} completed for user {user_id}",
            extra={"user_id": str(user_id), "payment_id": str(payment_id), "tier_id": str(tier_id)}
        )
        return PaymentConfirmation(
            payment_id=payment_id,
            status=PaymentStatus.COMPLETED.value,
            subscription_expires_at=subscription.expires_at,
        )
