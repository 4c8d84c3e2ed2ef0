"""Data models for FIVLO."""

from fivlo.models.task import TaskTemplate, TaskInstance, TaskPriority
from fivlo.models.recurrence import RecurrenceRule, RepeatType, Weekday
from fivlo.models.reward import RewardLedgerEntry, RewardReason, GateOutcome, DailyCompletionResult
from fivlo.models.session import SessionRecord, SessionType, SessionStatus
from fivlo.models.stats import PeriodType, PeriodWindow, PeriodStats

__all__ = [
    "TaskTemplate",
    "TaskInstance",
    "TaskPriority",
    "RecurrenceRule",
    "RepeatType",
    "Weekday",
    "RewardLedgerEntry",
    "RewardReason",
    "GateOutcome",
    "DailyCompletionResult",
    "SessionRecord",
    "SessionType",
    "SessionStatus",
    "PeriodType",
    "PeriodWindow",
    "PeriodStats",
]
