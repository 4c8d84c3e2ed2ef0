"""Repository for TaskInstance database operations."""

import logging
from datetime import date, datetime
from typing import Iterable, List, Optional, Set, Tuple

from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fivlo.database.models import TaskInstanceDB, enum_to_value
from fivlo.models.task import TaskInstance

logger = logging.getLogger(__name__)


class TaskInstanceRepository:
    """Repository for dated task occurrences."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, instance: TaskInstance) -> TaskInstance:
        """Create a single task instance."""
        try:
            row = TaskInstanceDB.from_pydantic(instance)
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            logger.debug(f"Created task instance {instance.id} on {instance.due_date}: {instance.title[:50]}")
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create task instance {instance.id}: {type(e).__name__}: {str(e)}")
            raise

    def add_missing(
        self, template_id: str, instances: Iterable[TaskInstance], *, commit: bool = True
    ) -> List[TaskInstance]:
        """Insert the instances whose (template, date) slot is still free.

        Existing dates are checked first; the unique constraint catches a concurrent
        writer, in which case the check is re-run once against fresh state.
        With commit=False the rows are only flushed into the caller's transaction,
        and any error is left for the caller to roll back.
        """
        pending = list(instances)
        if not commit:
            existing = self.existing_dates(template_id)
            to_add = [i for i in pending if i.due_date not in existing]
            for instance in to_add:
                self.db.add(TaskInstanceDB.from_pydantic(instance))
            self.db.flush()
            return to_add

        for attempt in range(2):
            existing = self.existing_dates(template_id)
            to_add = [i for i in pending if i.due_date not in existing]
            if not to_add:
                return []
            try:
                for instance in to_add:
                    self.db.add(TaskInstanceDB.from_pydantic(instance))
                self.db.commit()
                logger.debug(f"Created {len(to_add)} instances for template {template_id}")
                return to_add
            except IntegrityError as e:
                self.db.rollback()
                if attempt == 1:
                    logger.error(f"Failed to materialize template {template_id}: {type(e).__name__}: {str(e)}")
                    raise
                logger.warning(f"Concurrent materialization of template {template_id}; re-checking existing dates")
            except Exception as e:
                self.db.rollback()
                logger.error(f"Failed to materialize template {template_id}: {type(e).__name__}: {str(e)}")
                raise
        return []

    def get(self, user_id: str, instance_id: str) -> Optional[TaskInstance]:
        row = (
            self.db.query(TaskInstanceDB)
            .filter(TaskInstanceDB.user_id == user_id, TaskInstanceDB.id == instance_id)
            .first()
        )
        return row.to_pydantic() if row else None

    def list_by_date(self, user_id: str, day: date) -> List[TaskInstance]:
        """All instances due on `day`, by time of day (untimed last)."""
        rows = (
            self.db.query(TaskInstanceDB)
            .filter(TaskInstanceDB.user_id == user_id, TaskInstanceDB.due_date == day)
            .order_by(TaskInstanceDB.due_time.is_(None), TaskInstanceDB.due_time.asc(), TaskInstanceDB.created_at.asc())
            .all()
        )
        return [row.to_pydantic() for row in rows]

    def list_between(self, user_id: str, first_day: date, last_day: date) -> List[TaskInstance]:
        """Instances due in [first_day, last_day] (inclusive)."""
        rows = (
            self.db.query(TaskInstanceDB)
            .filter(
                TaskInstanceDB.user_id == user_id,
                TaskInstanceDB.due_date >= first_day,
                TaskInstanceDB.due_date <= last_day,
            )
            .order_by(TaskInstanceDB.due_date.asc(), TaskInstanceDB.created_at.asc())
            .all()
        )
        return [row.to_pydantic() for row in rows]

    def list_for_template(self, template_id: str) -> List[TaskInstance]:
        rows = (
            self.db.query(TaskInstanceDB)
            .filter(TaskInstanceDB.template_id == template_id)
            .order_by(TaskInstanceDB.due_date.asc())
            .all()
        )
        return [row.to_pydantic() for row in rows]

    def existing_dates(self, template_id: str) -> Set[date]:
        rows = (
            self.db.query(TaskInstanceDB.due_date)
            .filter(TaskInstanceDB.template_id == template_id)
            .all()
        )
        return {r[0] for r in rows}

    def completion_counts(self, user_id: str, day: date) -> Tuple[int, int]:
        """Return (due, completed) instance counts for a day."""
        due, completed = (
            self.db.query(
                func.count(TaskInstanceDB.id),
                func.sum(case((TaskInstanceDB.is_completed.is_(True), 1), else_=0)),
            )
            .filter(TaskInstanceDB.user_id == user_id, TaskInstanceDB.due_date == day)
            .one()
        )
        return int(due or 0), int(completed or 0)

    def set_completion(self, user_id: str, instance_id: str, is_completed: bool, now: datetime) -> Optional[TaskInstance]:
        """Mark an instance complete or incomplete."""
        row = (
            self.db.query(TaskInstanceDB)
            .filter(TaskInstanceDB.user_id == user_id, TaskInstanceDB.id == instance_id)
            .first()
        )
        if row is None:
            return None
        row.is_completed = is_completed
        row.completed_at = now if is_completed else None
        row.updated_at = now
        try:
            self.db.commit()
            self.db.refresh(row)
            logger.debug(f"Set task instance {instance_id} completed={is_completed}")
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update task instance {instance_id}: {type(e).__name__}: {str(e)}")
            raise

    def update(self, instance: TaskInstance) -> TaskInstance:
        """Overwrite the editable fields of an instance (user_id must match)."""
        row = (
            self.db.query(TaskInstanceDB)
            .filter(TaskInstanceDB.user_id == instance.user_id, TaskInstanceDB.id == instance.id)
            .first()
        )
        if row is None:
            raise ValueError(f"Task instance {instance.id} not found")

        row.title = instance.title
        row.description = instance.description
        row.due_date = instance.due_date
        row.due_time = instance.due_time
        row.priority = enum_to_value(instance.priority)
        row.category_id = instance.category_id
        row.category_name = instance.category_name
        row.color = instance.color
        row.updated_at = instance.updated_at
        try:
            self.db.commit()
            self.db.refresh(row)
            logger.debug(f"Updated task instance {instance.id}")
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update task instance {instance.id}: {type(e).__name__}: {str(e)}")
            raise

    def delete(self, user_id: str, instance_id: str) -> bool:
        row = (
            self.db.query(TaskInstanceDB)
            .filter(TaskInstanceDB.user_id == user_id, TaskInstanceDB.id == instance_id)
            .first()
        )
        if row is None:
            return False
        try:
            self.db.delete(row)
            self.db.commit()
            logger.debug(f"Deleted task instance {instance_id}")
            return True
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete task instance {instance_id}: {type(e).__name__}: {str(e)}")
            raise

    def delete_for_template(
        self, user_id: str, template_id: str, *, only_incomplete: bool = False, commit: bool = True
    ) -> int:
        """Bulk delete a series' instances. Returns the number of rows removed.

        With commit=False the delete stays in the caller's open transaction.
        """
        query = self.db.query(TaskInstanceDB).filter(
            TaskInstanceDB.user_id == user_id,
            TaskInstanceDB.template_id == template_id,
        )
        if only_incomplete:
            query = query.filter(TaskInstanceDB.is_completed.is_(False))
        if not commit:
            return query.delete(synchronize_session=False)
        try:
            count = query.delete(synchronize_session=False)
            self.db.commit()
            logger.debug(f"Deleted {count} instances of template {template_id} (only_incomplete={only_incomplete})")
            return count
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete instances of template {template_id}: {type(e).__name__}: {str(e)}")
            raise
