"""Tests for the reward ledger and wallet balance."""

import pytest
from datetime import date, datetime, timedelta

from fivlo.clock import resolve_timezone
from fivlo.database.ledger_repository import LedgerRepository
from fivlo.database.models import UserDB
from fivlo.errors import InsufficientCoinsError, LedgerWriteConflictError, UserNotFoundError
from fivlo.models.reward import RewardReason

NOW = datetime(2025, 1, 15, 3, 0)


@pytest.fixture
def ledger(db_session):
    return LedgerRepository(db_session)


class TestAppendEntry:

    def test_credit_updates_balance_and_records_balance_after(self, ledger, test_user_id):
        entry = ledger.append_entry(test_user_id, 5, RewardReason.SPECIAL_EVENT, now=NOW, description="Launch bonus")
        assert entry.amount == 5
        assert entry.balance_after == 5
        assert entry.reward_day is None
        assert ledger.get_balance(test_user_id) == 5

    def test_once_per_day_reason_requires_day(self, ledger, test_user_id):
        with pytest.raises(ValueError):
            ledger.append_entry(test_user_id, 1, RewardReason.DAILY_LOGIN, now=NOW)

    def test_zero_amount_rejected(self, ledger, test_user_id):
        with pytest.raises(ValueError):
            ledger.append_entry(test_user_id, 0, RewardReason.SPECIAL_EVENT, now=NOW)

    def test_unknown_user(self, ledger):
        with pytest.raises(UserNotFoundError):
            ledger.append_entry("ghost", 1, RewardReason.SPECIAL_EVENT, now=NOW)

    def test_find_daily_entry(self, ledger, test_user_id):
        day = date(2025, 1, 15)
        assert ledger.find_daily_entry(test_user_id, RewardReason.DAILY_LOGIN, day) is None
        entry = ledger.append_entry(test_user_id, 1, RewardReason.DAILY_LOGIN, now=NOW, reward_day=day)
        found = ledger.find_daily_entry(test_user_id, RewardReason.DAILY_LOGIN, day)
        assert found.id == entry.id
        assert ledger.find_daily_entry(test_user_id, RewardReason.TASK_COMPLETION, day) is None

    def test_second_daily_entry_hits_unique_key(self, ledger, test_user_id):
        day = date(2025, 1, 15)
        ledger.append_entry(test_user_id, 1, RewardReason.DAILY_LOGIN, now=NOW, reward_day=day)
        with pytest.raises(LedgerWriteConflictError):
            ledger.append_entry(test_user_id, 1, RewardReason.DAILY_LOGIN, now=NOW, reward_day=day)
        # The balance increment was rolled back with the rejected insert
        assert ledger.get_balance(test_user_id) == 1
        assert ledger.ledger_sum(test_user_id) == 1


class TestSpend:

    def test_spend_debits(self, ledger, test_user_id):
        ledger.append_entry(test_user_id, 10, RewardReason.SPECIAL_EVENT, now=NOW)
        entry = ledger.spend(test_user_id, 4, now=NOW, description="Theme", related_entity_id="theme-1")
        assert entry.amount == -4
        assert entry.balance_after == 6
        assert entry.reason == RewardReason.ITEM_PURCHASE
        assert ledger.get_balance(test_user_id) == 6

    def test_insufficient_coins_leaves_ledger_unchanged(self, ledger, test_user_id):
        ledger.append_entry(test_user_id, 3, RewardReason.SPECIAL_EVENT, now=NOW)
        with pytest.raises(InsufficientCoinsError) as exc:
            ledger.spend(test_user_id, 5, now=NOW)
        assert exc.value.balance == 3
        assert exc.value.required == 5
        assert ledger.get_balance(test_user_id) == 3
        entries, total = ledger.list_transactions(test_user_id)
        assert total == 1

    def test_spend_amount_must_be_positive(self, ledger, test_user_id):
        with pytest.raises(ValueError):
            ledger.spend(test_user_id, 0, now=NOW)

    def test_spend_exact_balance(self, ledger, test_user_id):
        ledger.append_entry(test_user_id, 2, RewardReason.SPECIAL_EVENT, now=NOW)
        assert ledger.spend(test_user_id, 2, now=NOW).balance_after == 0


class TestBalanceConsistency:

    def test_ledger_sum_matches_balance(self, ledger, test_user_id):
        ledger.append_entry(test_user_id, 1, RewardReason.TASK_COMPLETION, now=NOW, reward_day=date(2025, 1, 14))
        ledger.append_entry(test_user_id, 1, RewardReason.TASK_COMPLETION, now=NOW, reward_day=date(2025, 1, 15))
        ledger.append_entry(test_user_id, 7, RewardReason.SPECIAL_EVENT, now=NOW)
        ledger.spend(test_user_id, 3, now=NOW)
        assert ledger.ledger_sum(test_user_id) == ledger.get_balance(test_user_id) == 6

    def test_reconcile_repairs_drifted_balance(self, db_session, ledger, test_user_id):
        ledger.append_entry(test_user_id, 4, RewardReason.SPECIAL_EVENT, now=NOW)
        db_session.query(UserDB).filter(UserDB.id == test_user_id).update({UserDB.coins: 99})
        db_session.commit()

        assert ledger.reconcile_balance(test_user_id) == 4
        assert ledger.get_balance(test_user_id) == 4

    def test_reconcile_unknown_user(self, ledger):
        with pytest.raises(UserNotFoundError):
            ledger.reconcile_balance("ghost")


class TestLedgerQueries:

    @pytest.fixture
    def history(self, ledger, test_user_id):
        ledger.append_entry(test_user_id, 1, RewardReason.TASK_COMPLETION, now=datetime(2025, 1, 13, 2, 0),
                            reward_day=date(2025, 1, 13))
        ledger.append_entry(test_user_id, 1, RewardReason.POMODORO_COMPLETION, now=datetime(2025, 1, 14, 2, 0),
                            reward_day=date(2025, 1, 14))
        ledger.append_entry(test_user_id, 1, RewardReason.TASK_COMPLETION, now=datetime(2025, 1, 14, 3, 0),
                            reward_day=date(2025, 1, 14))
        ledger.spend(test_user_id, 2, now=datetime(2025, 1, 15, 1, 0))

    def test_list_is_newest_first(self, ledger, test_user_id, history):
        entries, total = ledger.list_transactions(test_user_id)
        assert total == 4
        assert entries[0].amount == -2
        assert [e.created_at for e in entries] == sorted((e.created_at for e in entries), reverse=True)

    def test_list_filters_and_pages(self, ledger, test_user_id, history):
        entries, total = ledger.list_transactions(test_user_id, reason=RewardReason.TASK_COMPLETION)
        assert total == 2
        assert all(e.reason == RewardReason.TASK_COMPLETION for e in entries)

        entries, total = ledger.list_transactions(test_user_id, limit=1, offset=1)
        assert total == 4
        assert len(entries) == 1
        assert entries[0].created_at == datetime(2025, 1, 14, 3, 0)

        entries, total = ledger.list_transactions(
            test_user_id, start=datetime(2025, 1, 14), end=datetime(2025, 1, 15)
        )
        assert total == 2

    def test_coin_stats(self, ledger, test_user_id, history):
        stats = ledger.coin_stats(test_user_id, since=datetime(2025, 1, 1))
        assert stats["total_earned"] == 3
        assert stats["total_spent"] == 2
        assert stats["net"] == 1
        assert stats["transactions"] == 4
        assert stats["by_reason"]["task_completion"] == {"count": 2, "total": 2}
        assert stats["by_reason"]["item_purchase"] == {"count": 1, "total": -2}

    def test_coin_stats_since_excludes_older(self, ledger, test_user_id, history):
        stats = ledger.coin_stats(test_user_id, since=datetime(2025, 1, 14, 2, 30))
        assert stats["transactions"] == 2
        assert stats["total_earned"] == 1

    def test_daily_activity_groups_by_local_day(self, ledger, test_user_id, history):
        activity = ledger.daily_activity(test_user_id, datetime(2025, 1, 1), resolve_timezone("Asia/Seoul"))
        assert [a["day"] for a in activity] == [date(2025, 1, 13), date(2025, 1, 14), date(2025, 1, 15)]
        assert activity[1] == {"day": date(2025, 1, 14), "earned": 2, "spent": 0, "transactions": 2}
        assert activity[2]["spent"] == 2

    def test_daily_activity_uses_timezone(self, ledger, test_user_id):
        # 2025-01-14 20:00 UTC is 2025-01-15 05:00 in Seoul
        ledger.append_entry(test_user_id, 1, RewardReason.SPECIAL_EVENT, now=datetime(2025, 1, 14, 20, 0))
        since = datetime(2025, 1, 14) - timedelta(days=1)
        assert ledger.daily_activity(test_user_id, since, resolve_timezone("Asia/Seoul"))[0]["day"] == date(2025, 1, 15)
        assert ledger.daily_activity(test_user_id, since, resolve_timezone("UTC"))[0]["day"] == date(2025, 1, 14)
