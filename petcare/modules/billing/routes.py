"""
Billing endpoints.

Handles:
- GET  /billing/tiers                          - purchasable tiers
- POST /billing/promo-codes/validate           - preview a promo code (rate limited)
- POST /billing/checkout                       - start a purchase
- POST /billing/payments/{payment_id}/confirm  - payment processor callback
"""

import hmac
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response, status

from petcare.core.config import settings
from petcare.core.middleware import limiter
from petcare.modules.auth.dependencies import get_current_user_id
from petcare.modules.billing.checkout import CheckoutService
from petcare.modules.billing.dependencies import get_checkout_service
from petcare.modules.billing.errors import CheckoutError, PaymentNotFoundError
from petcare.modules.billing.schemas import (
    CheckoutRequest,
    CheckoutResult,
    PaymentConfirmation,
    PaymentConfirmRequest,
)
from petcare.modules.entitlements.dependencies import get_promo_validator, get_tier_catalog
from petcare.modules.entitlements.periods import utc_now
from petcare.modules.entitlements.promo import PromoCodeValidator
from petcare.modules.entitlements.schemas import (
    PromoValidateRequest,
    PromoValidation,
    TierListResponse,
    TierResponse,
)
from petcare.modules.entitlements.stores import TierCatalog

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/tiers", response_model=TierListResponse)
async def list_tiers(catalog: TierCatalog = Depends(get_tier_catalog)):
    """Active tiers, cheapest first."""
    tiers = await catalog.list_active()
    return TierListResponse(tiers=[TierResponse.model_validate(t) for t in tiers])


@router.post("/promo-codes/validate", response_model=PromoValidation)
@limiter.limit(settings.PROMO_VALIDATION_RATE_LIMIT)
async def validate_promo_code(
    request: Request,
    response: Response,
    body: PromoValidateRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    validator: PromoCodeValidator = Depends(get_promo_validator),
):
    """
    Check a promo code against a tier without redeeming it.

    Rejections are a normal 200 response with valid=false and a reason.
    """
    return await validator.validate_promo_code(user_id, body.code, body.tier_id, utc_now())


@router.post("/checkout", response_model=CheckoutResult)
async def checkout(
    body: CheckoutRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: CheckoutService = Depends(get_checkout_service),
):
    """Start a purchase. Zero-cost purchases are activated immediately."""
    try:
        return await service.start_checkout(user_id, body.tier_id, body.promo_code, utc_now())
    except CheckoutError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": e.message,
                "reason": e.reason.value if e.reason else None,
            },
        )


def verify_payment_secret(x_payment_secret: Optional[str] = Header(None)) -> None:
    """Reject processor callbacks that do not carry the shared secret."""
    if not settings.PAYMENT_WEBHOOK_SECRET:
        logger.error("PAYMENT_WEBHOOK_SECRET is not configured, rejecting payment callback")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Payment callbacks disabled")

    if x_payment_secret is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing payment secret")

    if not hmac.compare_digest(x_payment_secret.encode(), settings.PAYMENT_WEBHOOK_SECRET.encode()):
        logger.warning("Payment callback with invalid secret")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid payment secret")


@router.post(
    "/payments/{payment_id}/confirm",
    response_model=PaymentConfirmation,
    dependencies=[Depends(verify_payment_secret)],
)
async def confirm_payment(
    payment_id: uuid.UUID,
    body: PaymentConfirmRequest,
    service: CheckoutService = Depends(get_checkout_service),
):
    """
    Processor callback.

    Safe to retry: a payment that is already completed is acknowledged
    without activating a second subscription.
    """
    try:
        return await service.confirm_payment(
            payment_id,
            succeeded=body.status == "OK",
            transaction_id=body.transaction_id,
            now=utc_now(),
        )
    except PaymentNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payment not found")
