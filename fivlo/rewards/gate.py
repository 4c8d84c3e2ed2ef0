"""Daily completion gate: mint at most one coin per user, reason and day.

The check-then-mint sequence is safe under concurrency because the ledger's
(user_id, reason, reward_day) unique key makes the mint an atomic
insert-if-absent, committed together with the wallet increment. A writer that
loses the race gets LedgerWriteConflictError; the evaluation is then re-run
once, which observes the winner's entry and reports `already_rewarded`.
"""

import logging
from datetime import date
from typing import Callable, Optional

from sqlalchemy.orm import Session

from fivlo.clock import Clock, system_clock
from fivlo.database.ledger_repository import LedgerRepository
from fivlo.database.repository import TaskInstanceRepository
from fivlo.database.user_repository import UserRepository
from fivlo.errors import LedgerWriteConflictError, UserNotFoundError
from fivlo.models.constants import DAILY_REWARD_AMOUNT
from fivlo.models.reward import (
    DailyCompletionResult,
    GateOutcome,
    RelatedEntityType,
    RewardReason,
    is_once_per_day,
)
from fivlo.rewards.notifier import LoggingNotifier, RewardNotifier

logger = logging.getLogger(__name__)

_DESCRIPTIONS = {
    RewardReason.TASK_COMPLETION: "All tasks completed for the day",
    RewardReason.POMODORO_COMPLETION: "Pomodoro session completed",
    RewardReason.REMINDER_COMPLETION: "All reminders completed for the day",
    RewardReason.DAILY_LOGIN: "Daily check-in",
}


def _retry_once_on_conflict(attempt: Callable[[], DailyCompletionResult], user_id: str) -> DailyCompletionResult:
    try:
        return attempt()
    except LedgerWriteConflictError:
        logger.warning(f"Ledger conflict for user {user_id}; re-evaluating once")
    return attempt()


def _notify(notifier: RewardNotifier, user_id: str, result: DailyCompletionResult) -> None:
    try:
        notifier.notify_reward(user_id, result.entry)
    except Exception as e:
        # The coin is already committed.
        logger.warning(f"Reward notifier failed for user {user_id}: {type(e).__name__}: {str(e)}")


def _mint(
    db: Session,
    user_id: str,
    day: date,
    reason: RewardReason,
    *,
    amount: int,
    clock: Clock,
    description: Optional[str],
    related_entity_id: Optional[str],
    related_entity_type: RelatedEntityType,
    due_count: int = 0,
    completed_count: int = 0,
) -> DailyCompletionResult:
    ledger = LedgerRepository(db)
    existing = ledger.find_daily_entry(user_id, reason, day)
    if existing is not None:
        return DailyCompletionResult(
            outcome=GateOutcome.ALREADY_REWARDED,
            day=day,
            reason=reason,
            entry=existing,
            balance=ledger.get_balance(user_id),
            due_count=due_count,
            completed_count=completed_count,
        )

    entry = ledger.append_entry(
        user_id,
        amount,
        reason,
        now=clock.utcnow(),
        reward_day=day,
        description=description if description is not None else _DESCRIPTIONS.get(RewardReason(reason), ""),
        related_entity_id=related_entity_id,
        related_entity_type=related_entity_type,
    )
    logger.info(f"Minted {amount} coin(s) for user {user_id}: {entry.reason} on {day}")
    return DailyCompletionResult(
        outcome=GateOutcome.REWARDED,
        day=day,
        reason=reason,
        entry=entry,
        balance=entry.balance_after,
        due_count=due_count,
        completed_count=completed_count,
    )


def _check_reason(reason: RewardReason) -> None:
    if not is_once_per_day(reason):
        raise ValueError(f"'{RewardReason(reason).value}' is not a once-per-day reward reason")


def evaluate_daily_completion(
    db: Session,
    user_id: str,
    day: date,
    reason: RewardReason = RewardReason.TASK_COMPLETION,
    *,
    eligible: bool = True,
    notifier: Optional[RewardNotifier] = None,
    amount: int = DAILY_REWARD_AMOUNT,
    clock: Optional[Clock] = None,
) -> DailyCompletionResult:
    """Reward the user once for completing every task due on `day`.

    Outcomes, checked in order: `not_eligible` (caller policy, e.g. free plan),
    `not_applicable` (nothing due), `incomplete`, `already_rewarded`, `rewarded`.

    Raises:
        UserNotFoundError: unknown user
        LedgerWriteConflictError: the mint conflicted twice in a row
    """
    _check_reason(reason)
    clock = clock or system_clock
    notifier = notifier or LoggingNotifier()

    def attempt() -> DailyCompletionResult:
        if not UserRepository(db).exists(user_id):
            raise UserNotFoundError(user_id)
        if not eligible:
            return DailyCompletionResult(outcome=GateOutcome.NOT_ELIGIBLE, day=day, reason=reason)

        due_count, completed_count = TaskInstanceRepository(db).completion_counts(user_id, day)
        if due_count == 0:
            return DailyCompletionResult(outcome=GateOutcome.NOT_APPLICABLE, day=day, reason=reason)
        if completed_count < due_count:
            return DailyCompletionResult(
                outcome=GateOutcome.INCOMPLETE,
                day=day,
                reason=reason,
                due_count=due_count,
                completed_count=completed_count,
            )
        return _mint(
            db,
            user_id,
            day,
            reason,
            amount=amount,
            clock=clock,
            description=None,
            related_entity_id=None,
            related_entity_type=RelatedEntityType.TASK,
            due_count=due_count,
            completed_count=completed_count,
        )

    result = _retry_once_on_conflict(attempt, user_id)
    if result.rewarded:
        _notify(notifier, user_id, result)
    return result


def mint_daily_reward(
    db: Session,
    user_id: str,
    day: date,
    reason: RewardReason,
    *,
    eligible: bool = True,
    notifier: Optional[RewardNotifier] = None,
    amount: int = DAILY_REWARD_AMOUNT,
    clock: Optional[Clock] = None,
    description: Optional[str] = None,
    related_entity_id: Optional[str] = None,
    related_entity_type: RelatedEntityType = RelatedEntityType.OTHER,
) -> DailyCompletionResult:
    """Once-per-day reward that does not depend on task completion (e.g. pomodoro)."""
    _check_reason(reason)
    clock = clock or system_clock
    notifier = notifier or LoggingNotifier()

    def attempt() -> DailyCompletionResult:
        if not UserRepository(db).exists(user_id):
            raise UserNotFoundError(user_id)
        if not eligible:
            return DailyCompletionResult(outcome=GateOutcome.NOT_ELIGIBLE, day=day, reason=reason)
        return _mint(
            db,
            user_id,
            day,
            reason,
            amount=amount,
            clock=clock,
            description=description,
            related_entity_id=related_entity_id,
            related_entity_type=related_entity_type,
        )

    result = _retry_once_on_conflict(attempt, user_id)
    if result.rewarded:
        _notify(notifier, user_id, result)
    return result
