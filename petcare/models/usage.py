"""
AIUsage model - per-user, per-calendar-month AI consumption counters.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from sqlalchemy import Column, String, Integer, CheckConstraint, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID, TIMESTAMP

from petcare.core.database import Base


class UsageCategory(str, Enum):
    """AI features that consume quota."""
    CHAT = "chat"
    ANALYSIS = "analysis"


class AIUsage(Base):
    """
    Usage ledger row, one per (user, month_year).

    Created lazily on the first AI call of a month and never deleted.
    total_count is stored (not computed) so quota checks are a single read;
    the check constraint keeps it equal to the sum of the category counters.
    """

    __tablename__ = "ai_usage"
    __table_args__ = (
        UniqueConstraint("user_id", "month_year", name="uq_ai_usage_user_month"),
        CheckConstraint("chatbot_count >= 0 AND analysis_count >= 0", name="ck_ai_usage_non_negative"),
        CheckConstraint("total_count = chatbot_count + analysis_count", name="ck_ai_usage_total"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    month_year = Column(String(7), nullable=False)  # 'YYYY-MM'

    chatbot_count = Column(Integer, default=0, nullable=False)
    analysis_count = Column(Integer, default=0, nullable=False)
    total_count = Column(Integer, default=0, nullable=False)

    created_at = Column(TIMESTAMP(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = Column(TIMESTAMP(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    def __repr__(self):
        return f"<AIUsage user={self.user_id} {self.month_year} total={self.total_count}>"

    @staticmethod
    def counter_for(category: UsageCategory) -> str:
        """Column name holding the counter for a usage category."""
        return {
            UsageCategory.CHAT: "chatbot_count",
            UsageCategory.ANALYSIS: "analysis_count",
        }[UsageCategory(category)]
