"""FastAPI dependencies for billing."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from petcare.core.database import get_db
from petcare.modules.billing.activation import SubscriptionActivator
from petcare.modules.billing.checkout import CheckoutService
from petcare.modules.billing.payments import PaymentStore
from petcare.modules.entitlements.promo import PromoCodeValidator
from petcare.modules.entitlements.stores import PromoCodeStore, SubscriptionStore, TierCatalog


async def get_checkout_service(db: AsyncSession = Depends(get_db)) -> CheckoutService:
    promo_codes = PromoCodeStore(db)
    catalog = TierCatalog(db)
    return CheckoutService(
        session=db,
        catalog=catalog,
        validator=PromoCodeValidator(promo_codes, catalog),
        payments=PaymentStore(db),
        activator=SubscriptionActivator(db, SubscriptionStore(db), promo_codes),
    )
