"""Repository for the reward ledger and the cached wallet balance.

This is the only place that changes `users.coins`. Every change is made in the
same transaction as the ledger row that explains it.
"""

import logging
from collections import OrderedDict
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from zoneinfo import ZoneInfo

from fivlo.clock import to_local
from fivlo.database.models import RewardLedgerDB, UserDB, enum_to_value
from fivlo.errors import InsufficientCoinsError, LedgerWriteConflictError, UserNotFoundError
from fivlo.models.reward import RelatedEntityType, RewardLedgerEntry, RewardReason, is_once_per_day

logger = logging.getLogger(__name__)


class LedgerRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_balance(self, user_id: str) -> Optional[int]:
        """Cached balance, or None if the user does not exist."""
        return self.db.query(UserDB.coins).filter(UserDB.id == user_id).scalar()

    def find_daily_entry(self, user_id: str, reason: RewardReason, day: date) -> Optional[RewardLedgerEntry]:
        row = (
            self.db.query(RewardLedgerDB)
            .filter(
                RewardLedgerDB.user_id == user_id,
                RewardLedgerDB.reason == enum_to_value(reason),
                RewardLedgerDB.reward_day == day,
            )
            .first()
        )
        return row.to_pydantic() if row else None

    def append_entry(
        self,
        user_id: str,
        amount: int,
        reason: RewardReason,
        *,
        now: datetime,
        reward_day: Optional[date] = None,
        description: str = "",
        related_entity_id: Optional[str] = None,
        related_entity_type: RelatedEntityType = RelatedEntityType.OTHER,
    ) -> RewardLedgerEntry:
        """Append a ledger entry and apply it to the wallet in one transaction.

        Debits only succeed when the balance covers them. For once-per-day reasons
        the (user, reason, reward_day) unique key turns the insert into an atomic
        insert-if-absent; losing that race raises LedgerWriteConflictError.
        """
        if amount == 0:
            raise ValueError("Ledger amount must be non-zero")
        if is_once_per_day(reason):
            if reward_day is None:
                raise ValueError(f"reward_day is required for once-per-day reason '{enum_to_value(reason)}'")
        else:
            reward_day = None

        try:
            query = self.db.query(UserDB).filter(UserDB.id == user_id)
            if amount < 0:
                query = query.filter(UserDB.coins >= -amount)
            updated = query.update({UserDB.coins: UserDB.coins + amount}, synchronize_session=False)
            if updated == 0:
                self.db.rollback()
                balance = self.get_balance(user_id)
                if balance is None:
                    raise UserNotFoundError(user_id)
                raise InsufficientCoinsError(balance, -amount)

            balance = self.get_balance(user_id)
            row = RewardLedgerDB(
                user_id=user_id,
                amount=amount,
                balance_after=balance,
                reason=enum_to_value(reason),
                reward_day=reward_day,
                description=description,
                related_entity_id=related_entity_id,
                related_entity_type=enum_to_value(related_entity_type),
                created_at=now,
            )
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        except (UserNotFoundError, InsufficientCoinsError):
            raise
        except (IntegrityError, OperationalError) as e:
            self.db.rollback()
            logger.warning(
                f"Ledger write conflict for user {user_id} reason={enum_to_value(reason)} day={reward_day}: "
                f"{type(e).__name__}"
            )
            raise LedgerWriteConflictError(
                f"Could not record {enum_to_value(reason)} for user {user_id}; please retry"
            ) from e
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to append ledger entry for user {user_id}: {type(e).__name__}: {str(e)}")
            raise

        logger.debug(f"Ledger {row.id}: user {user_id} {amount:+d} ({row.reason}) -> balance {balance}")
        return row.to_pydantic()

    def spend(
        self,
        user_id: str,
        amount: int,
        *,
        now: datetime,
        reason: RewardReason = RewardReason.ITEM_PURCHASE,
        description: str = "",
        related_entity_id: Optional[str] = None,
        related_entity_type: RelatedEntityType = RelatedEntityType.SHOP_ITEM,
    ) -> RewardLedgerEntry:
        """Debit `amount` coins (InsufficientCoinsError if the balance is too low)."""
        if amount <= 0:
            raise ValueError("Spend amount must be positive")
        return self.append_entry(
            user_id,
            -amount,
            reason,
            now=now,
            description=description,
            related_entity_id=related_entity_id,
            related_entity_type=related_entity_type,
        )

    def list_transactions(
        self,
        user_id: str,
        *,
        reason: Optional[RewardReason] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[RewardLedgerEntry], int]:
        """Newest-first page of entries and the total number matching the filters."""
        query = self.db.query(RewardLedgerDB).filter(RewardLedgerDB.user_id == user_id)
        if reason is not None:
            query = query.filter(RewardLedgerDB.reason == enum_to_value(reason))
        if start is not None:
            query = query.filter(RewardLedgerDB.created_at >= start)
        if end is not None:
            query = query.filter(RewardLedgerDB.created_at < end)
        total = query.count()
        rows = (
            query.order_by(RewardLedgerDB.created_at.desc(), RewardLedgerDB.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return [row.to_pydantic() for row in rows], total

    def ledger_sum(self, user_id: str) -> int:
        total = (
            self.db.query(func.coalesce(func.sum(RewardLedgerDB.amount), 0))
            .filter(RewardLedgerDB.user_id == user_id)
            .scalar()
        )
        return int(total or 0)

    def reconcile_balance(self, user_id: str) -> int:
        """Reset the cached balance to the ledger total. Returns the new balance."""
        ledger_total = (
            self.db.query(func.coalesce(func.sum(RewardLedgerDB.amount), 0))
            .filter(RewardLedgerDB.user_id == user_id)
            .scalar_subquery()
        )
        try:
            updated = (
                self.db.query(UserDB)
                .filter(UserDB.id == user_id)
                .update({UserDB.coins: ledger_total}, synchronize_session=False)
            )
            if updated == 0:
                self.db.rollback()
                raise UserNotFoundError(user_id)
            self.db.commit()
        except UserNotFoundError:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to reconcile balance for user {user_id}: {type(e).__name__}: {str(e)}")
            raise
        balance = self.get_balance(user_id)
        logger.info(f"Reconciled balance for user {user_id}: {balance}")
        return balance

    def coin_stats(self, user_id: str, since: datetime) -> Dict:
        """Earned/spent totals and per-reason breakdown for entries at or after `since`."""
        rows = (
            self.db.query(
                RewardLedgerDB.reason,
                func.count(RewardLedgerDB.id),
                func.sum(RewardLedgerDB.amount),
                func.sum(case((RewardLedgerDB.amount > 0, RewardLedgerDB.amount), else_=0)),
                func.sum(case((RewardLedgerDB.amount < 0, -RewardLedgerDB.amount), else_=0)),
            )
            .filter(RewardLedgerDB.user_id == user_id, RewardLedgerDB.created_at >= since)
            .group_by(RewardLedgerDB.reason)
            .all()
        )
        by_reason = {}
        earned = spent = count = 0
        for reason, n, total, plus, minus in rows:
            by_reason[reason] = {"count": int(n), "total": int(total or 0)}
            earned += int(plus or 0)
            spent += int(minus or 0)
            count += int(n)
        return {
            "total_earned": earned,
            "total_spent": spent,
            "net": earned - spent,
            "transactions": count,
            "by_reason": by_reason,
        }

    def daily_activity(self, user_id: str, since: datetime, tz: ZoneInfo) -> List[Dict]:
        """Per local calendar day: earned, spent and number of entries (oldest day first)."""
        rows = (
            self.db.query(RewardLedgerDB.amount, RewardLedgerDB.created_at)
            .filter(RewardLedgerDB.user_id == user_id, RewardLedgerDB.created_at >= since)
            .order_by(RewardLedgerDB.created_at.asc())
            .all()
        )
        days: "OrderedDict[date, Dict]" = OrderedDict()
        for amount, created_at in rows:
            day = to_local(created_at, tz).date()
            bucket = days.setdefault(day, {"day": day, "earned": 0, "spent": 0, "transactions": 0})
            if amount > 0:
                bucket["earned"] += amount
            else:
                bucket["spent"] += -amount
            bucket["transactions"] += 1
        return list(days.values())
