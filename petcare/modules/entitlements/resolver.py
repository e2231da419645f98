"""
Entitlement resolver: which tier governs a user right now.
"""

import logging
import uuid
from datetime import datetime

from petcare.models.tier import SubscriptionTier
from petcare.modules.entitlements.errors import ConfigurationError

logger = logging.getLogger(__name__)


def validate_tier(tier: SubscriptionTier) -> SubscriptionTier:
    """Raise ConfigurationError if the tier's limits are unusable."""
    if tier.monthly_limit is None or tier.grace_buffer is None:
        raise ConfigurationError(f"Tier '{tier.name}' has no monthly_limit/grace_buffer")
    if tier.monthly_limit < 0 or tier.grace_buffer < 0:
        raise ConfigurationError(
            f"Tier '{tier.name}' has negative limits "
            f"(monthly_limit={tier.monthly_limit}, grace_buffer={tier.grace_buffer})"
        )
    return tier


class EntitlementResolver:
    """
    Resolves a user's effective tier.

    Usage:
        resolver = EntitlementResolver(TierCatalog(db), SubscriptionStore(db))
        tier = await resolver.resolve_tier(user_id, now)
    """

    def __init__(self, catalog, subscriptions):
        """
        Args:
            catalog: TierCatalog (or compatible) for the default tier lookup
            subscriptions: SubscriptionStore (or compatible) for the user's current subscription
        """
        self.catalog = catalog
        self.subscriptions = subscriptions

    async def default_tier(self) -> SubscriptionTier:
        """
        The catalog's default tier.

        Raises:
            ConfigurationError: if the catalog has no usable default tier
        """
        tier = await self.catalog.get_default()
        if tier is None:
            raise ConfigurationError("No default subscription tier is configured")
        if not tier.is_active:
            raise ConfigurationError(f"Default subscription tier '{tier.name}' is inactive")
        return validate_tier(tier)

    async def resolve_tier(self, user_id: uuid.UUID, now: datetime) -> SubscriptionTier:
        """
        Return the tier of the user's most recent active subscription, if it
        has not passed expires_at; otherwise the default tier.

        Subscriptions to a tier that has since been deactivated are still
        honoured until they expire.

        Raises:
            ConfigurationError: default tier missing/inactive, or tier data malformed
            TransientStoreError: store unavailable
        """
        subscription = await self.subscriptions.get_current(user_id)

        if subscription is not None and subscription.is_current(now):
            tier = subscription.tier
            if tier is None:
                raise ConfigurationError(
                    f"Subscription {subscription.id} references a missing tier {subscription.tier_id}"
                )
            return validate_tier(tier)

        if subscription is not None:
            logger.info(
                f"Subscription for user {user_id} lapsed at {subscription.expires_at}, using default tier",
                extra={"user_id": str(user_id), "subscription_id": str(subscription.id)}
            )

        return await self.default_tier()
