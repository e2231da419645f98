"""
Celery tasks for subscription housekeeping.

Expiry is decided at read time by the entitlement resolver (it compares
expires_at with the request time). This sweep only keeps the stored status
column honest for reporting and admin views.
"""

import logging
from datetime import datetime

from petcare.core.celery_app import celery_app
from petcare.modules.entitlements.periods import utc_now
from petcare.modules.entitlements.stores import SubscriptionStore

logger = logging.getLogger(__name__)


async def run_expiry_sweep(session, now: datetime) -> int:
    """
    Mark every active subscription past expires_at as expired and commit.

    Returns:
        Number of subscriptions expired
    """
    expired = await SubscriptionStore(session).expire_lapsed(now)
    await session.commit()

    logger.info(
        f"Expired {expired} lapsed subscriptions",
        extra={"expired_count": expired, "run_at": now.isoformat()}
    )
    return expired


@celery_app.task(name="petcare.tasks.subscriptions.expire_lapsed_subscriptions")
def expire_lapsed_subscriptions():
    """
    Expire lapsed subscriptions.

    Runs daily at 01:00 UTC.

    Schedule:
        crontab(hour='1', minute='0')
    """
    import asyncio

    logger.info("Starting subscription expiry sweep")

    async def _sweep():
        from petcare.core.database import AsyncSessionLocal

        async with AsyncSessionLocal() as session:
            expired = await run_expiry_sweep(session, utc_now())

        return {
            "status": "success",
            "expired": expired,
        }

    return asyncio.run(_sweep())
