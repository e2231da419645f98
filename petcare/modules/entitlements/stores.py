"""
SQLAlchemy-backed stores used by the entitlement engine.

Each store wraps an AsyncSession and exposes only the reads and writes the
engine needs. Infrastructure failures (driver errors, dropped connections)
surface as TransientStoreError so callers can apply their failure policy
without knowing about SQLAlchemy.

The engine components take stores as constructor arguments; anything with
the same async methods can stand in for them.
"""

import logging
import uuid
from datetime import datetime
from functools import wraps
from typing import List, Optional

from sqlalchemy import select, update, or_
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from petcare.core.config import settings
from petcare.models.tier import SubscriptionTier
from petcare.models.subscription import UserSubscription, SubscriptionStatus
from petcare.models.usage import AIUsage, UsageCategory
from petcare.models.promo_code import PromoCode, PromoCodeUsage
from petcare.modules.entitlements.errors import TransientStoreError, PromoRedemptionError
from petcare.modules.entitlements.periods import utc_now
from petcare.modules.entitlements.schemas import PromoFailureReason, UsageSnapshot

logger = logging.getLogger(__name__)


def store_operation(operation: str):
    """Translate infrastructure exceptions raised by a store method into TransientStoreError."""
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except (SQLAlchemyError, OSError) as e:
                logger.warning(
                    f"Store operation {operation} failed: {e.__class__.__name__}",
                    extra={"operation": operation}
                )
                raise TransientStoreError(operation, e) from e
        return wrapper
    return decorator


class TierCatalog:
    """Read access to subscription tiers."""

    def __init__(self, session: AsyncSession, default_tier_name: Optional[str] = None):
        self.session = session
        self.default_tier_name = default_tier_name or settings.DEFAULT_TIER_NAME

    @store_operation("tiers.get")
    async def get(self, tier_id: uuid.UUID) -> Optional[SubscriptionTier]:
        return await self.session.get(SubscriptionTier, tier_id)

    @store_operation("tiers.get_by_name")
    async def get_by_name(self, name: str) -> Optional[SubscriptionTier]:
        result = await self.session.execute(
            select(SubscriptionTier).where(SubscriptionTier.name == name)
        )
        return result.scalar_one_or_none()

    async def get_default(self) -> Optional[SubscriptionTier]:
        """The designated default tier, or None if the catalog lacks it."""
        return await self.get_by_name(self.default_tier_name)

    @store_operation("tiers.list_active")
    async def list_active(self) -> List[SubscriptionTier]:
        result = await self.session.execute(
            select(SubscriptionTier)
            .where(SubscriptionTier.is_active == True)
            .order_by(SubscriptionTier.price, SubscriptionTier.name)
        )
        return list(result.scalars().all())


class SubscriptionStore:
    """Reads and writes user subscriptions."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @store_operation("subscriptions.get_current")
    async def get_current(self, user_id: uuid.UUID) -> Optional[UserSubscription]:
        """
        Most recently created subscription with status 'active'.

        Does not look at expires_at; the resolver decides whether it still applies.
        """
        result = await self.session.execute(
            select(UserSubscription)
            .where(
                UserSubscription.user_id == user_id,
                UserSubscription.status == SubscriptionStatus.ACTIVE.value,
            )
            .order_by(UserSubscription.created_at.desc())
            .limit(1)
        )
        return result.scalars().first()

    @store_operation("subscriptions.create")
    async def create(
        self,
        user_id: uuid.UUID,
        tier_id: uuid.UUID,
        starts_at: datetime,
        expires_at: Optional[datetime],
        promo_code_id: Optional[uuid.UUID] = None,
    ) -> UserSubscription:
        subscription = UserSubscription(
            id=uuid.uuid4(),
            user_id=user_id,
            tier_id=tier_id,
            status=SubscriptionStatus.ACTIVE.value,
            starts_at=starts_at,
            expires_at=expires_at,
            promo_code_id=promo_code_id,
            created_at=starts_at,
            updated_at=starts_at,
        )
        self.session.add(subscription)
        await self.session.flush()
        return subscription

    @store_operation("subscriptions.expire_lapsed")
    async def expire_lapsed(self, now: datetime) -> int:
        """Mark active subscriptions whose expires_at has passed as expired. Returns the row count."""
        result = await self.session.execute(
            update(UserSubscription)
            .where(
                UserSubscription.status == SubscriptionStatus.ACTIVE.value,
                UserSubscription.expires_at.is_not(None),
                UserSubscription.expires_at <= now,
            )
            .values(status=SubscriptionStatus.EXPIRED.value, updated_at=now)
        )
        return result.rowcount or 0


def build_increment_statement(user_id: uuid.UUID, month_key: str, category: UsageCategory, now: datetime):
    """
    Single-statement upsert that bumps one category counter and the total.

    INSERT ... ON CONFLICT (user_id, month_year) DO UPDATE SET
        <counter> = ai_usage.<counter> + 1, total_count = ai_usage.total_count + 1
    RETURNING the new counters.

    Both counters move in the same row update, so total_count always equals
    the sum and concurrent increments serialize on the row lock.
    """
    counter = AIUsage.counter_for(category)
    values = {
        "id": uuid.uuid4(),
        "user_id": user_id,
        "month_year": month_key,
        "chatbot_count": 0,
        "analysis_count": 0,
        "total_count": 1,
        "created_at": now,
        "updated_at": now,
    }
    values[counter] = 1

    stmt = pg_insert(AIUsage).values(**values)
    stmt = stmt.on_conflict_do_update(
        constraint="uq_ai_usage_user_month",
        set_={
            counter: getattr(AIUsage, counter) + 1,
            "total_count": AIUsage.total_count + 1,
            "updated_at": now,
        },
    )
    return stmt.returning(AIUsage.chatbot_count, AIUsage.analysis_count, AIUsage.total_count)


class UsageLedger:
    """Per-user, per-month AI usage counters."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @store_operation("usage.get")
    async def get(self, user_id: uuid.UUID, month_key: str) -> Optional[UsageSnapshot]:
        result = await self.session.execute(
            select(AIUsage.chatbot_count, AIUsage.analysis_count, AIUsage.total_count)
            .where(AIUsage.user_id == user_id, AIUsage.month_year == month_key)
        )
        row = result.one_or_none()
        if row is None:
            return None
        return UsageSnapshot(
            chat_count=row.chatbot_count,
            analysis_count=row.analysis_count,
            total_count=row.total_count,
        )

    @store_operation("usage.increment_or_create")
    async def increment_or_create(
        self,
        user_id: uuid.UUID,
        month_key: str,
        category: UsageCategory,
        now: Optional[datetime] = None,
    ) -> UsageSnapshot:
        """
        Atomically add one call to the user's ledger row for the month.

        Commits immediately so the bookkeeping is durable independently of
        whatever else the caller does with the session.
        """
        stmt = build_increment_statement(user_id, month_key, category, now or utc_now())
        result = await self.session.execute(stmt)
        row = result.one()
        await self.session.commit()
        return UsageSnapshot(
            chat_count=row.chatbot_count,
            analysis_count=row.analysis_count,
            total_count=row.total_count,
        )


class PromoCodeStore:
    """Promo code lookups and redemption writes."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @store_operation("promo_codes.get_by_code")
    async def get_by_code(self, code: str) -> Optional[PromoCode]:
        result = await self.session.execute(
            select(PromoCode).where(PromoCode.code == PromoCode.normalize(code))
        )
        return result.scalar_one_or_none()

    @store_operation("promo_codes.has_redemption")
    async def has_redemption(self, user_id: uuid.UUID, promo_code_id: uuid.UUID) -> bool:
        result = await self.session.execute(
            select(PromoCodeUsage.id)
            .where(PromoCodeUsage.user_id == user_id, PromoCodeUsage.promo_code_id == promo_code_id)
            .limit(1)
        )
        return result.first() is not None

    @store_operation("promo_codes.increment_used_count")
    async def increment_used_count(self, promo_code_id: uuid.UUID) -> bool:
        """
        Bump used_count unless max_uses is already reached.

        Returns False when the conditional update matched no row.
        """
        result = await self.session.execute(
            update(PromoCode)
            .where(
                PromoCode.id == promo_code_id,
                or_(PromoCode.max_uses.is_(None), PromoCode.used_count < PromoCode.max_uses),
            )
            .values(used_count=PromoCode.used_count + 1)
        )
        return result.rowcount == 1

    @store_operation("promo_codes.record_redemption")
    async def record_redemption(
        self,
        user_id: uuid.UUID,
        promo_code_id: uuid.UUID,
        payment_id: Optional[uuid.UUID] = None,
    ) -> PromoCodeUsage:
        usage = PromoCodeUsage(
            id=uuid.uuid4(),
            user_id=user_id,
            promo_code_id=promo_code_id,
            payment_id=payment_id,
        )
        self.session.add(usage)
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise PromoRedemptionError(promo_code_id, PromoFailureReason.ALREADY_USED) from e
        return usage

    async def redeem(
        self,
        user_id: uuid.UUID,
        promo_code_id: uuid.UUID,
        payment_id: Optional[uuid.UUID] = None,
    ) -> None:
        """
        Record the redemption and consume one use.

        Must run inside the caller's transaction; raising leaves both writes
        to be rolled back together.
        """
        await self.record_redemption(user_id, promo_code_id, payment_id)
        if not await self.increment_used_count(promo_code_id):
            raise PromoRedemptionError(promo_code_id, PromoFailureReason.USAGE_LIMIT_REACHED)
