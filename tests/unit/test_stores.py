"""
Unit tests for the SQLAlchemy stores, against a mocked AsyncSession.

Tests:
- Infrastructure errors surface as TransientStoreError
- Redemption conflicts surface as PromoRedemptionError
- Ledger reads map rows to snapshots
"""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from petcare.models.usage import UsageCategory
from petcare.modules.entitlements.errors import PromoRedemptionError, TransientStoreError
from petcare.modules.entitlements.schemas import PromoFailureReason
from petcare.modules.entitlements.stores import PromoCodeStore, UsageLedger


MONTH = "2025-03"


@pytest.fixture
def db():
    session = MagicMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    return session


class TestUsageLedger:
    @pytest.mark.asyncio
    async def test_missing_row_reads_as_none(self, db, user_id):
        db.execute.return_value = MagicMock(**{"one_or_none.return_value": None})

        assert await UsageLedger(db).get(user_id, MONTH) is None

    @pytest.mark.asyncio
    async def test_row_maps_to_snapshot(self, db, user_id):
        row = MagicMock(chatbot_count=2, analysis_count=1, total_count=3)
        db.execute.return_value = MagicMock(**{"one_or_none.return_value": row})

        snapshot = await UsageLedger(db).get(user_id, MONTH)

        assert (snapshot.chat_count, snapshot.analysis_count, snapshot.total_count) == (2, 1, 3)

    @pytest.mark.asyncio
    async def test_increment_commits(self, db, user_id, now):
        row = MagicMock(chatbot_count=1, analysis_count=0, total_count=1)
        db.execute.return_value = MagicMock(**{"one.return_value": row})

        snapshot = await UsageLedger(db).increment_or_create(user_id, MONTH, UsageCategory.CHAT, now)

        assert snapshot.total_count == 1
        db.execute.assert_awaited_once()
        db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_connection_failure_is_transient(self, db, user_id, now):
        db.execute.side_effect = OperationalError("INSERT", {}, Exception("server closed the connection"))

        with pytest.raises(TransientStoreError) as exc_info:
            await UsageLedger(db).increment_or_create(user_id, MONTH, UsageCategory.ANALYSIS, now)

        assert exc_info.value.operation == "usage.increment_or_create"
        db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_os_error_is_transient(self, db, user_id):
        db.execute.side_effect = ConnectionRefusedError()

        with pytest.raises(TransientStoreError):
            await UsageLedger(db).get(user_id, MONTH)


class TestPromoCodeStore:
    @pytest.mark.asyncio
    async def test_duplicate_redemption_is_already_used(self, db, user_id):
        db.flush.side_effect = IntegrityError("INSERT", {}, Exception("uq_promo_code_usage_user_code"))
        promo_id = uuid.uuid4()

        with pytest.raises(PromoRedemptionError) as exc_info:
            await PromoCodeStore(db).record_redemption(user_id, promo_id)

        assert exc_info.value.reason == PromoFailureReason.ALREADY_USED
        assert exc_info.value.promo_code_id == promo_id

    @pytest.mark.asyncio
    async def test_exhausted_code_is_usage_limit_reached(self, db, user_id):
        db.execute.return_value = MagicMock(rowcount=0)

        with pytest.raises(PromoRedemptionError) as exc_info:
            await PromoCodeStore(db).redeem(user_id, uuid.uuid4())

        assert exc_info.value.reason == PromoFailureReason.USAGE_LIMIT_REACHED

    @pytest.mark.asyncio
    async def test_redeem_writes_usage_and_bumps_count(self, db, user_id):
        db.execute.return_value = MagicMock(rowcount=1)
        promo_id = uuid.uuid4()
        payment_id = uuid.uuid4()

        await PromoCodeStore(db).redeem(user_id, promo_id, payment_id)

        usage = db.add.call_args.args[0]
        assert usage.user_id == user_id
        assert usage.promo_code_id == promo_id
        assert usage.payment_id == payment_id
        db.flush.assert_awaited_once()
        db.execute.assert_awaited_once()
