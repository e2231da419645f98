"""
Quota gate: decides whether an AI-powered request may proceed.

Decision bands for a tier with monthly_limit L and grace_buffer G, at
current monthly usage U:

    U <  L          -> allowed, remaining = L - U (advisory when remaining is low)
    L <= U < L + G  -> allowed in grace, remaining = 0, warning with L + G - U left
    U >= L + G      -> blocked

Grace starts exactly at the limit. This module is the only place the bands
are defined; every handler that gates AI calls goes through QuotaGate.

Checking never mutates the ledger. Callers record usage (UsageRecorder)
only after the AI call has succeeded.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

from petcare.core.config import settings
from petcare.models.tier import SubscriptionTier
from petcare.models.usage import UsageCategory
from petcare.modules.entitlements.errors import TransientStoreError
from petcare.modules.entitlements.periods import month_key_for, utc_now
from petcare.modules.entitlements.schemas import QuotaDecision, UsageSnapshot

logger = logging.getLogger(__name__)


BLOCKED_MESSAGE = "You have exceeded your monthly limit. Please upgrade your plan."


def evaluate_quota(
    tier: SubscriptionTier,
    usage: Optional[UsageSnapshot],
    low_remaining_threshold: int = 3,
    month_key: Optional[str] = None,
) -> QuotaDecision:
    """
    Pure quota decision for a tier and the month's usage.

    Args:
        tier: Effective tier (monthly_limit, grace_buffer, name)
        usage: Ledger counters for the month, None if the user has no row yet
        low_remaining_threshold: Attach an advisory when remaining <= this
        month_key: Echoed back on the decision

    Returns:
        QuotaDecision
    """
    current_usage = usage.total_count if usage is not None else 0
    monthly_limit = tier.monthly_limit
    grace_buffer = tier.grace_buffer
    total_limit = tier.total_limit

    common = dict(
        tier_name=tier.name,
        current_usage=current_usage,
        monthly_limit=monthly_limit,
        grace_buffer=grace_buffer,
        month_key=month_key,
    )

    if current_usage >= total_limit:
        return QuotaDecision(
            allowed=False,
            remaining=0,
            is_grace=False,
            is_blocked=True,
            message=BLOCKED_MESSAGE,
            **common,
        )

    if current_usage >= monthly_limit:
        grace_remaining = total_limit - current_usage
        return QuotaDecision(
            allowed=True,
            remaining=0,
            is_grace=True,
            is_blocked=False,
            message=f"You have exceeded your regular limit. {grace_remaining} grace requests remaining.",
            **common,
        )

    remaining = monthly_limit - current_usage
    message = None
    if remaining <= low_remaining_threshold:
        message = f"Only {remaining} requests remaining this month."

    return QuotaDecision(
        allowed=True,
        remaining=remaining,
        is_grace=False,
        is_blocked=False,
        message=message,
        **common,
    )


def fail_open_decision(month_key: Optional[str] = None) -> QuotaDecision:
    """Decision used when usage could not be read: allow, flagged as degraded."""
    return QuotaDecision(
        allowed=True,
        remaining=0,
        is_grace=False,
        is_blocked=False,
        tier_name="unknown",
        month_key=month_key,
        degraded=True,
    )


class QuotaGate:
    """
    Quota checks for AI features.

    Usage:
        gate = QuotaGate(resolver, UsageLedger(db))
        decision = await gate.check_quota_fail_open(user_id, now)
        if not decision.allowed:
            return decision  # Show decision.message, do not call the AI provider
    """

    def __init__(self, resolver, ledger, low_remaining_threshold: Optional[int] = None):
        """
        Args:
            resolver: EntitlementResolver
            ledger: UsageLedger (or compatible) for reading the month's counters
            low_remaining_threshold: Defaults to settings.LOW_REMAINING_THRESHOLD
        """
        self.resolver = resolver
        self.ledger = ledger
        if low_remaining_threshold is None:
            low_remaining_threshold = settings.LOW_REMAINING_THRESHOLD
        self.low_remaining_threshold = low_remaining_threshold

    async def check_quota(
        self,
        user_id: uuid.UUID,
        now: datetime,
        month_key: Optional[str] = None,
    ) -> QuotaDecision:
        """
        Evaluate the user's quota for the month containing `now`.

        Raises:
            ConfigurationError: tier catalog is broken (fatal)
            TransientStoreError: a store could not be read
        """
        month_key = month_key or month_key_for(now)
        tier = await self.resolver.resolve_tier(user_id, now)
        usage = await self.ledger.get(user_id, month_key)

        decision = evaluate_quota(tier, usage, self.low_remaining_threshold, month_key)

        logger.info(
            f"Quota check for user {user_id}: {decision.current_usage}/{decision.monthly_limit} "
            f"(grace {decision.grace_buffer}) tier={decision.tier_name} allowed={decision.allowed}",
            extra={
                "user_id": str(user_id),
                "month_key": month_key,
                "tier": decision.tier_name,
                "current_usage": decision.current_usage,
                "is_grace": decision.is_grace,
                "is_blocked": decision.is_blocked,
            }
        )
        return decision

    async def check_quota_fail_open(
        self,
        user_id: uuid.UUID,
        now: datetime,
        month_key: Optional[str] = None,
    ) -> QuotaDecision:
        """
        check_quota with the fail-open policy applied.

        A store outage must not lock every user out of AI features, so a
        TransientStoreError yields an allowed, degraded decision and is logged
        at error level (reported to Sentry). ConfigurationError still propagates.
        """
        month_key = month_key or month_key_for(now)
        try:
            return await self.check_quota(user_id, now, month_key)
        except TransientStoreError as e:
            logger.error(
                f"Quota check failed for user {user_id}, allowing request: {e}",
                extra={"user_id": str(user_id), "month_key": month_key, "operation": e.operation}
            )
            return fail_open_decision(month_key)


@dataclass
class GatedCallResult:
    """Decision taken for a gated call and the call's result (None if denied)."""

    decision: QuotaDecision
    result: Any = None

    @property
    def denied(self) -> bool:
        return not self.decision.allowed


async def run_gated_call(
    gate: QuotaGate,
    recorder,
    user_id: uuid.UUID,
    category: UsageCategory,
    call: Callable[[], Awaitable[Any]],
    now: Optional[datetime] = None,
) -> GatedCallResult:
    """
    Check quota, run the AI call if allowed, then record usage.

    Exceptions from `call` propagate and no usage is recorded for them.
    An unknown category raises ValueError before anything else runs.
    Recording failures are absorbed by the recorder.

    Usage:
        outcome = await run_gated_call(
            gate, recorder, user_id, UsageCategory.CHAT,
            lambda: assistant.reply(message),
        )
        if outcome.denied:
            raise HTTPException(429, outcome.decision.message)
    """
    category = UsageCategory(category)
    now = now or utc_now()
    month_key = month_key_for(now)

    decision = await gate.check_quota_fail_open(user_id, now, month_key)
    if not decision.allowed:
        return GatedCallResult(decision=decision)

    result = await call()

    await recorder.record_usage(user_id, category, month_key)
    return GatedCallResult(decision=decision, result=result)
