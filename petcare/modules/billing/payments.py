"""Payment records for subscription purchases."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from petcare.models.payment import Payment, PaymentStatus
from petcare.modules.entitlements.stores import store_operation


class PaymentStore:
    """Creates payments and moves them through pending -> completed/failed."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @store_operation("payments.create")
    async def create(
        self,
        user_id: uuid.UUID,
        tier_id: uuid.UUID,
        original_amount: int,
        discount_amount: int,
        final_amount: int,
        gateway: str,
        status: PaymentStatus,
        now: datetime,
        promo_code_id: Optional[uuid.UUID] = None,
    ) -> Payment:
        payment = Payment(
            id=uuid.uuid4(),
            user_id=user_id,
            tier_id=tier_id,
            promo_code_id=promo_code_id,
            original_amount=original_amount,
            discount_amount=discount_amount,
            final_amount=final_amount,
            gateway=gateway,
            status=PaymentStatus(status).value,
            created_at=now,
            updated_at=now,
        )
        self.session.add(payment)
        await self.session.flush()
        return payment

    @store_operation("payments.get_for_update")
    async def get_for_update(self, payment_id: uuid.UUID) -> Optional[Payment]:
        """Load a payment and lock its row until the transaction ends."""
        result = await self.session.execute(
            select(Payment).where(Payment.id == payment_id).with_for_update()
        )
        return result.scalar_one_or_none()

    @store_operation("payments.mark_completed")
    async def mark_completed(self, payment: Payment, transaction_id: Optional[str]) -> Payment:
        payment.status = PaymentStatus.COMPLETED.value
        payment.transaction_id = transaction_id
        await self.session.flush()
        return payment

    @store_operation("payments.mark_failed")
    async def mark_failed(self, payment: Payment, reason: str) -> Payment:
        payment.status = PaymentStatus.FAILED.value
        payment.failure_reason = reason
        await self.session.flush()
        return payment
