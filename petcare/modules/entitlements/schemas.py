"""Pydantic models for entitlement decisions and API payloads."""

from enum import Enum
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field

from petcare.models.usage import UsageCategory


class UsageSnapshot(BaseModel):
    """Counters of one usage ledger row. An absent row reads as all zeros."""

    chat_count: int = 0
    analysis_count: int = 0
    total_count: int = 0


class QuotaDecision(BaseModel):
    """
    Outcome of a quota check.

    Three bands, evaluated against the user's tier:
    - allowed: usage below monthly_limit
    - grace: monthly_limit <= usage < monthly_limit + grace_buffer (allowed, warned)
    - blocked: usage >= monthly_limit + grace_buffer
    """

    allowed: bool = Field(..., description="Whether the AI call may proceed")
    remaining: int = Field(..., description="Calls left in the normal allowance", ge=0)
    is_grace: bool = Field(False, description="Usage is past the allowance but inside the grace buffer")
    is_blocked: bool = Field(False, description="Usage reached allowance + grace buffer")
    tier_name: str = Field(..., description="Effective tier used for the decision")
    message: Optional[str] = Field(None, description="User-facing advisory or denial message")

    current_usage: int = 0
    monthly_limit: int = 0
    grace_buffer: int = 0
    month_key: Optional[str] = None
    degraded: bool = Field(False, description="Decision made without ledger data (fail-open)")


class PromoFailureReason(str, Enum):
    INVALID_CODE = "INVALID_CODE"
    EXPIRED = "EXPIRED"
    NOT_YET_ACTIVE = "NOT_YET_ACTIVE"
    USAGE_LIMIT_REACHED = "USAGE_LIMIT_REACHED"
    ALREADY_USED = "ALREADY_USED"
    INVALID_TIER = "INVALID_TIER"


class PromoValidation(BaseModel):
    """
    Result of validating a promo code for a purchase.

    Invalid codes carry a reason and nothing else; valid ones carry the
    computed discount against the target (or granted) tier price.
    """

    valid: bool
    reason: Optional[PromoFailureReason] = None
    message: Optional[str] = None

    promo_code_id: Optional[UUID] = None
    discount_type: Optional[str] = None
    discount_value: Optional[int] = None
    original_amount: int = 0
    discount_amount: int = 0
    final_amount: int = 0
    duration_months: int = 1

    # Set for free_tier codes only
    granted_tier_id: Optional[UUID] = None
    granted_tier_name: Optional[str] = None

    @classmethod
    def rejected(cls, reason: PromoFailureReason) -> "PromoValidation":
        return cls(valid=False, reason=reason, message=PROMO_FAILURE_MESSAGES[reason])


PROMO_FAILURE_MESSAGES = {
    PromoFailureReason.INVALID_CODE: "Invalid code",
    PromoFailureReason.EXPIRED: "Code expired",
    PromoFailureReason.NOT_YET_ACTIVE: "Code not yet active",
    PromoFailureReason.USAGE_LIMIT_REACHED: "Code usage limit reached",
    PromoFailureReason.ALREADY_USED: "You already used this code",
    PromoFailureReason.INVALID_TIER: "Invalid subscription tier",
}


# API payloads

class UsageTrackRequest(BaseModel):
    category: UsageCategory


class UsageTrackResponse(BaseModel):
    success: bool
    month_key: str


class PromoValidateRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)
    tier_id: Optional[UUID] = None


class TierResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    display_name: str
    monthly_limit: int
    grace_buffer: int
    price: int


class TierListResponse(BaseModel):
    tiers: List[TierResponse] = Field(default_factory=list)
