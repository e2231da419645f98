"""
Usage recorder: counts a successful AI call against the user's monthly quota.
"""

import logging
import uuid
from typing import Optional

from petcare.core.sentry import capture_business_error
from petcare.models.usage import UsageCategory
from petcare.modules.entitlements.errors import TransientStoreError
from petcare.modules.entitlements.schemas import UsageSnapshot

logger = logging.getLogger(__name__)


class UsageRecorder:
    """
    Increments the usage ledger after an AI call succeeded.

    The increment is a single atomic upsert in the ledger, so concurrent
    requests for the same user never lose counts. A failed write is logged
    and reported; it never propagates, because the AI response has already
    been delivered by then.
    """

    def __init__(self, ledger):
        self.ledger = ledger

    async def record_usage(
        self,
        user_id: uuid.UUID,
        category: UsageCategory,
        month_key: str,
    ) -> Optional[UsageSnapshot]:
        """
        Add one call of `category` to the user's ledger row for `month_key`.

        Returns:
            The updated counters, or None if the write failed

        Raises:
            ValueError: unknown category (caller bug, not an infrastructure fault)
        """
        category = UsageCategory(category)

        try:
            snapshot = await self.ledger.increment_or_create(user_id, month_key, category)
        except TransientStoreError as e:
            capture_business_error(
                error=e,
                context={
                    "user_id": str(user_id),
                    "month_key": month_key,
                    "category": category.value,
                    "operation": "record_usage",
                },
                level="warning",
            )
            return None

        logger.info(
            f"Recorded {category.value} usage for user {user_id} in {month_key}: total={snapshot.total_count}",
            extra={
                "user_id": str(user_id),
                "month_key": month_key,
                "category": category.value,
                "total_count": snapshot.total_count,
            }
        )
        return snapshot
