"""Reward notification collaborators."""

import logging
from typing import Protocol

from fivlo.models.reward import RewardLedgerEntry

logger = logging.getLogger(__name__)


class RewardNotifier(Protocol):
    """Told about a freshly minted reward. Delivery is best-effort."""

    def notify_reward(self, user_id: str, entry: RewardLedgerEntry) -> None:
        ...


class LoggingNotifier:
    """Default notifier: records the reward in the application log."""

    def notify_reward(self, user_id: str, entry: RewardLedgerEntry) -> None:
        logger.info(
            f"User {user_id} earned {entry.amount} coin(s) for {entry.reason} "
            f"on {entry.reward_day} (balance {entry.balance_after})"
        )
