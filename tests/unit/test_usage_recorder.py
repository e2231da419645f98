"""
Unit tests for usage recording.

Tests:
- Counters stay consistent (total = chat + analysis = N)
- Concurrent increments are not lost
- Store failures are reported, never raised
- The ledger upsert is a single INSERT ... ON CONFLICT DO UPDATE
"""

import asyncio
import uuid

import pytest
from unittest.mock import AsyncMock
from sqlalchemy.dialects import postgresql

from petcare.models.usage import UsageCategory
from petcare.modules.entitlements.errors import TransientStoreError
from petcare.modules.entitlements.recorder import UsageRecorder
from petcare.modules.entitlements.stores import build_increment_statement

from tests.conftest import NOW


MONTH = "2025-03"


class TestRecordUsage:
    @pytest.mark.asyncio
    async def test_first_call_creates_row(self, ledger, user_id):
        snapshot = await UsageRecorder(ledger).record_usage(user_id, UsageCategory.CHAT, MONTH)

        assert snapshot.chat_count == 1
        assert snapshot.analysis_count == 0
        assert snapshot.total_count == 1

    @pytest.mark.asyncio
    async def test_mixed_sequence_keeps_total_consistent(self, ledger, user_id):
        recorder = UsageRecorder(ledger)
        sequence = ["chat", "analysis", "chat", "chat", "analysis"]

        for category in sequence:
            await recorder.record_usage(user_id, category, MONTH)

        row = await ledger.get(user_id, MONTH)
        assert row.chat_count == 3
        assert row.analysis_count == 2
        assert row.total_count == row.chat_count + row.analysis_count == len(sequence)

    @pytest.mark.asyncio
    async def test_interleaved_categories_keep_total_in_sync(self, ledger, user_id):
        """Totals stay consistent through the recorder; the atomic upsert itself is checked in TestIncrementStatement."""
        recorder = UsageRecorder(ledger)

        await asyncio.gather(*[
            recorder.record_usage(user_id, UsageCategory.CHAT if i % 2 else UsageCategory.ANALYSIS, MONTH)
            for i in range(20)
        ])

        row = await ledger.get(user_id, MONTH)
        assert row.total_count == 20
        assert row.chat_count + row.analysis_count == 20

    @pytest.mark.asyncio
    async def test_months_are_separate_rows(self, ledger, user_id):
        recorder = UsageRecorder(ledger)

        await recorder.record_usage(user_id, UsageCategory.CHAT, "2025-02")
        await recorder.record_usage(user_id, UsageCategory.CHAT, MONTH)

        assert (await ledger.get(user_id, "2025-02")).total_count == 1
        assert (await ledger.get(user_id, MONTH)).total_count == 1

    @pytest.mark.asyncio
    async def test_unknown_category_is_a_caller_error(self, ledger, user_id):
        with pytest.raises(ValueError):
            await UsageRecorder(ledger).record_usage(user_id, "image", MONTH)


class TestRecordingFailures:
    @pytest.mark.asyncio
    async def test_store_failure_is_reported_not_raised(self, mocker, user_id):
        capture = mocker.patch("petcare.modules.entitlements.recorder.capture_business_error")
        ledger = AsyncMock()
        ledger.increment_or_create.side_effect = TransientStoreError("usage.increment_or_create")

        result = await UsageRecorder(ledger).record_usage(user_id, UsageCategory.CHAT, MONTH)

        assert result is None
        capture.assert_called_once()
        assert capture.call_args.kwargs["level"] == "warning"
        assert capture.call_args.kwargs["context"]["month_key"] == MONTH


class TestIncrementStatement:
    def compile(self, category):
        stmt = build_increment_statement(uuid.uuid4(), MONTH, category, NOW)
        return str(stmt.compile(dialect=postgresql.dialect()))

    def test_single_upsert_statement(self):
        sql = self.compile(UsageCategory.CHAT)

        assert sql.startswith("INSERT INTO ai_usage")
        assert "ON CONFLICT ON CONSTRAINT uq_ai_usage_user_month DO UPDATE" in sql
        assert "RETURNING" in sql

    def test_chat_bumps_chat_and_total(self):
        sql = self.compile(UsageCategory.CHAT)
        update_clause = sql.split("DO UPDATE")[1]

        assert "chatbot_count = (ai_usage.chatbot_count +" in update_clause
        assert "total_count = (ai_usage.total_count +" in update_clause
        assert "analysis_count" not in update_clause.split("RETURNING")[0]

    def test_analysis_bumps_analysis_and_total(self):
        sql = self.compile(UsageCategory.ANALYSIS)
        update_clause = sql.split("DO UPDATE")[1].split("RETURNING")[0]

        assert "analysis_count = (ai_usage.analysis_count +" in update_clause
        assert "chatbot_count" not in update_clause
