"""Tests for the daily completion reward gate."""

import pytest
from datetime import date, timedelta
from unittest.mock import patch

from fivlo.database.ledger_repository import LedgerRepository
from fivlo.database.repository import TaskInstanceRepository
from fivlo.errors import LedgerWriteConflictError, UserNotFoundError
from fivlo.models.reward import GateOutcome, RewardReason
from fivlo.rewards.gate import evaluate_daily_completion, mint_daily_reward

DAY = date(2025, 1, 15)


class RecordingNotifier:
    def __init__(self):
        self.calls = []

    def notify_reward(self, user_id, entry):
        self.calls.append((user_id, entry))


class BrokenNotifier:
    def notify_reward(self, user_id, entry):
        raise RuntimeError("push service down")


@pytest.fixture
def add_tasks(db_session, make_instance):
    def _add(count, completed, day=DAY, user_id=None):
        repo = TaskInstanceRepository(db_session)
        for i in range(count):
            repo.create(make_instance(day, user_id=user_id, is_completed=i < completed, title=f"Task {i}"))
    return _add


class TestEvaluateDailyCompletion:

    def test_nothing_due_is_not_applicable(self, db_session, test_user_id, fixed_clock):
        result = evaluate_daily_completion(db_session, test_user_id, DAY, clock=fixed_clock)
        assert result.outcome == GateOutcome.NOT_APPLICABLE
        assert LedgerRepository(db_session).get_balance(test_user_id) == 0

    def test_one_incomplete_task_blocks_reward(self, db_session, test_user_id, add_tasks, fixed_clock):
        add_tasks(5, completed=4)
        result = evaluate_daily_completion(db_session, test_user_id, DAY, clock=fixed_clock)
        assert result.outcome == GateOutcome.INCOMPLETE
        assert (result.due_count, result.completed_count) == (5, 4)
        assert LedgerRepository(db_session).get_balance(test_user_id) == 0

    def test_all_complete_mints_one_coin(self, db_session, test_user_id, add_tasks, fixed_clock):
        add_tasks(3, completed=3)
        notifier = RecordingNotifier()
        result = evaluate_daily_completion(db_session, test_user_id, DAY, notifier=notifier, clock=fixed_clock)

        assert result.outcome == GateOutcome.REWARDED
        assert result.balance == 1
        assert result.entry.amount == 1
        assert result.entry.reward_day == DAY
        assert result.entry.reason == RewardReason.TASK_COMPLETION
        assert len(notifier.calls) == 1

    def test_second_evaluation_is_already_rewarded(self, db_session, test_user_id, add_tasks, fixed_clock):
        add_tasks(2, completed=2)
        notifier = RecordingNotifier()
        first = evaluate_daily_completion(db_session, test_user_id, DAY, notifier=notifier, clock=fixed_clock)
        second = evaluate_daily_completion(db_session, test_user_id, DAY, notifier=notifier, clock=fixed_clock)

        assert first.outcome == GateOutcome.REWARDED
        assert second.outcome == GateOutcome.ALREADY_REWARDED
        assert second.entry.id == first.entry.id
        assert second.balance == 1
        assert len(notifier.calls) == 1
        ledger = LedgerRepository(db_session)
        assert ledger.get_balance(test_user_id) == 1
        assert ledger.ledger_sum(test_user_id) == 1

    def test_other_days_are_independent(self, db_session, test_user_id, add_tasks, fixed_clock):
        add_tasks(1, completed=1)
        add_tasks(1, completed=1, day=DAY + timedelta(days=1))
        evaluate_daily_completion(db_session, test_user_id, DAY, clock=fixed_clock)
        result = evaluate_daily_completion(db_session, test_user_id, DAY + timedelta(days=1), clock=fixed_clock)
        assert result.outcome == GateOutcome.REWARDED
        assert result.balance == 2

    def test_tasks_of_other_users_are_ignored(self, db_session, test_user_id, free_user_id, add_tasks, fixed_clock):
        add_tasks(1, completed=1)
        add_tasks(1, completed=0, user_id=free_user_id)
        result = evaluate_daily_completion(db_session, test_user_id, DAY, clock=fixed_clock)
        assert result.outcome == GateOutcome.REWARDED

    def test_not_eligible_short_circuits(self, db_session, free_user_id, add_tasks, fixed_clock):
        add_tasks(1, completed=1, user_id=free_user_id)
        result = evaluate_daily_completion(db_session, free_user_id, DAY, eligible=False, clock=fixed_clock)
        assert result.outcome == GateOutcome.NOT_ELIGIBLE
        assert LedgerRepository(db_session).get_balance(free_user_id) == 0

    def test_unknown_user(self, db_session, fixed_clock):
        with pytest.raises(UserNotFoundError):
            evaluate_daily_completion(db_session, "ghost", DAY, clock=fixed_clock)

    def test_reason_must_be_once_per_day(self, db_session, test_user_id):
        with pytest.raises(ValueError):
            evaluate_daily_completion(db_session, test_user_id, DAY, RewardReason.ITEM_PURCHASE)

    def test_notifier_failure_keeps_the_coin(self, db_session, test_user_id, add_tasks, fixed_clock):
        add_tasks(1, completed=1)
        result = evaluate_daily_completion(
            db_session, test_user_id, DAY, notifier=BrokenNotifier(), clock=fixed_clock
        )
        assert result.outcome == GateOutcome.REWARDED
        assert LedgerRepository(db_session).get_balance(test_user_id) == 1


class TestConflictRetry:

    def test_conflict_is_retried_once(self, db_session, test_user_id, add_tasks, fixed_clock):
        add_tasks(1, completed=1)
        real_append = LedgerRepository.append_entry
        calls = []

        def flaky_append(self, *args, **kwargs):
            calls.append(1)
            if len(calls) == 1:
                raise LedgerWriteConflictError("simulated")
            return real_append(self, *args, **kwargs)

        with patch.object(LedgerRepository, "append_entry", flaky_append):
            result = evaluate_daily_completion(db_session, test_user_id, DAY, clock=fixed_clock)

        assert len(calls) == 2
        assert result.outcome == GateOutcome.REWARDED
        assert LedgerRepository(db_session).get_balance(test_user_id) == 1

    def test_second_conflict_propagates(self, db_session, test_user_id, add_tasks, fixed_clock):
        add_tasks(1, completed=1)
        with patch.object(
            LedgerRepository, "append_entry", side_effect=LedgerWriteConflictError("simulated")
        ) as append_mock:
            with pytest.raises(LedgerWriteConflictError):
                evaluate_daily_completion(db_session, test_user_id, DAY, clock=fixed_clock)
        assert append_mock.call_count == 2
        assert LedgerRepository(db_session).get_balance(test_user_id) == 0

    def test_stale_lookup_loses_to_stored_entry(self, db_session, test_user_id, add_tasks, fixed_clock):
        add_tasks(1, completed=1)
        first = evaluate_daily_completion(db_session, test_user_id, DAY, clock=fixed_clock)
        assert first.outcome == GateOutcome.REWARDED

        # The first lookup misses the stored entry, as a concurrent request would
        real_find = LedgerRepository.find_daily_entry
        lookups = []

        def stale_find(self, *args, **kwargs):
            lookups.append(1)
            if len(lookups) == 1:
                return None
            return real_find(self, *args, **kwargs)

        with patch.object(LedgerRepository, "find_daily_entry", stale_find):
            result = evaluate_daily_completion(db_session, test_user_id, DAY, clock=fixed_clock)

        assert len(lookups) == 2
        assert result.outcome == GateOutcome.ALREADY_REWARDED
        assert result.entry.id == first.entry.id
        assert result.balance == 1
        ledger = LedgerRepository(db_session)
        assert ledger.get_balance(test_user_id) == ledger.ledger_sum(test_user_id) == 1


class TestMintDailyReward:

    def test_pomodoro_reward_once_per_day(self, db_session, test_user_id, fixed_clock):
        first = mint_daily_reward(
            db_session, test_user_id, DAY, RewardReason.POMODORO_COMPLETION,
            clock=fixed_clock, related_entity_id="session-1",
        )
        second = mint_daily_reward(
            db_session, test_user_id, DAY, RewardReason.POMODORO_COMPLETION,
            clock=fixed_clock, related_entity_id="session-2",
        )
        assert first.outcome == GateOutcome.REWARDED
        assert first.entry.related_entity_id == "session-1"
        assert second.outcome == GateOutcome.ALREADY_REWARDED
        assert LedgerRepository(db_session).get_balance(test_user_id) == 1

    def test_independent_of_task_reward(self, db_session, test_user_id, add_tasks, fixed_clock):
        add_tasks(1, completed=1)
        evaluate_daily_completion(db_session, test_user_id, DAY, clock=fixed_clock)
        result = mint_daily_reward(db_session, test_user_id, DAY, RewardReason.POMODORO_COMPLETION, clock=fixed_clock)
        assert result.outcome == GateOutcome.REWARDED
        assert result.balance == 2
