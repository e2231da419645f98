"""FastAPI dependencies wiring the entitlement engine to a request's database session."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from petcare.core.database import get_db
from petcare.modules.entitlements.promo import PromoCodeValidator
from petcare.modules.entitlements.quota import QuotaGate
from petcare.modules.entitlements.recorder import UsageRecorder
from petcare.modules.entitlements.resolver import EntitlementResolver
from petcare.modules.entitlements.stores import (
    PromoCodeStore,
    SubscriptionStore,
    TierCatalog,
    UsageLedger,
)


async def get_tier_catalog(db: AsyncSession = Depends(get_db)) -> TierCatalog:
    return TierCatalog(db)


async def get_entitlement_resolver(db: AsyncSession = Depends(get_db)) -> EntitlementResolver:
    return EntitlementResolver(TierCatalog(db), SubscriptionStore(db))


async def get_quota_gate(
    db: AsyncSession = Depends(get_db),
    resolver: EntitlementResolver = Depends(get_entitlement_resolver),
) -> QuotaGate:
    return QuotaGate(resolver, UsageLedger(db))


async def get_usage_recorder(db: AsyncSession = Depends(get_db)) -> UsageRecorder:
    return UsageRecorder(UsageLedger(db))


async def get_promo_validator(db: AsyncSession = Depends(get_db)) -> PromoCodeValidator:
    return PromoCodeValidator(PromoCodeStore(db), TierCatalog(db))
