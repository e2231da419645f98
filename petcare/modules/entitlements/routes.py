"""
AI usage endpoints.

Handles:
- GET  /ai/usage  - quota decision for the current month (fail-open)
- POST /ai/usage  - record one successful AI call

Clients that call the AI provider directly check first, call the provider
only when allowed, and record usage only after the provider answered.
"""

import logging
import uuid
from fastapi import APIRouter, Depends

from petcare.modules.auth.dependencies import get_current_user_id
from petcare.modules.entitlements.dependencies import get_quota_gate, get_usage_recorder
from petcare.modules.entitlements.periods import month_key_for, utc_now
from petcare.modules.entitlements.quota import QuotaGate
from petcare.modules.entitlements.recorder import UsageRecorder
from petcare.modules.entitlements.schemas import QuotaDecision, UsageTrackRequest, UsageTrackResponse

logger = logging.getLogger(__name__)

# Create router
router = APIRouter()


@router.get("/usage", response_model=QuotaDecision)
async def check_usage(
    user_id: uuid.UUID = Depends(get_current_user_id),
    gate: QuotaGate = Depends(get_quota_gate),
):
    """
    Quota decision for the authenticated user.

    A blocked user gets a normal 200 response with is_blocked=true and a
    message to show; denial is not an error.
    """
    return await gate.check_quota_fail_open(user_id, utc_now())


@router.post("/usage", response_model=UsageTrackResponse)
async def track_usage(
    body: UsageTrackRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    recorder: UsageRecorder = Depends(get_usage_recorder),
):
    """
    Record one successful AI call.

    Always answers 200; success=false means the ledger write failed and was
    reported to operators.
    """
    month_key = month_key_for(utc_now())
    snapshot = await recorder.record_usage(user_id, body.category, month_key)
    return UsageTrackResponse(success=snapshot is not None, month_key=month_key)
