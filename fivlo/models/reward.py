"""Reward ledger models for FIVLO."""

from datetime import date, datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class RewardReason(str, Enum):
    """Reason code of a ledger entry."""
    TASK_COMPLETION = "task_completion"
    POMODORO_COMPLETION = "pomodoro_completion"
    REMINDER_COMPLETION = "reminder_completion"
    DAILY_LOGIN = "daily_login"
    SPECIAL_EVENT = "special_event"
    ITEM_PURCHASE = "item_purchase"
    CUSTOMIZATION = "customization"
    REFUND = "refund"
    ADMIN_ADJUSTMENT = "admin_adjustment"


# Reasons that may be granted at most once per user and calendar day.
ONCE_PER_DAY_REASONS = frozenset({
    RewardReason.TASK_COMPLETION,
    RewardReason.POMODORO_COMPLETION,
    RewardReason.REMINDER_COMPLETION,
    RewardReason.DAILY_LOGIN,
})


def is_once_per_day(reason) -> bool:
    return RewardReason(reason) in ONCE_PER_DAY_REASONS


class RelatedEntityType(str, Enum):
    TASK = "task"
    POMODORO = "pomodoro"
    REMINDER = "reminder"
    SHOP_ITEM = "shop_item"
    OTHER = "other"


class RewardLedgerEntry(BaseModel):
    """Append-only coin record. Positive amounts are credits, negative are debits."""

    id: str = Field(..., description="Unique entry identifier")
    user_id: str = Field(..., description="User ID the entry belongs to")
    amount: int = Field(..., description="Signed coin amount")
    balance_after: int = Field(..., ge=0, description="Wallet balance right after this entry")
    reason: RewardReason = Field(..., description="Reason code")
    reward_day: Optional[date] = Field(None, description="Calendar day for once-per-day reasons")
    description: str = Field("", description="Human-readable description")
    related_entity_id: Optional[str] = Field(None, description="Related task/session/item id")
    related_entity_type: RelatedEntityType = Field(RelatedEntityType.OTHER, description="Related entity type")
    created_at: datetime = Field(..., description="Entry timestamp")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True


class GateOutcome(str, Enum):
    """Result of a daily completion evaluation."""
    REWARDED = "rewarded"
    NOT_APPLICABLE = "not_applicable"  # no task due that day
    INCOMPLETE = "incomplete"
    ALREADY_REWARDED = "already_rewarded"
    NOT_ELIGIBLE = "not_eligible"  # caller policy (e.g. free plan)


class DailyCompletionResult(BaseModel):
    """Outcome of `evaluate_daily_completion` / `mint_daily_reward`."""

    outcome: GateOutcome
    day: date
    reason: RewardReason
    entry: Optional[RewardLedgerEntry] = None
    balance: Optional[int] = None
    due_count: int = 0
    completed_count: int = 0

    class Config:
        """Pydantic configuration."""
        use_enum_values = True

    @property
    def rewarded(self) -> bool:
        return self.outcome == GateOutcome.REWARDED
