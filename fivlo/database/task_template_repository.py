"""Repository for TaskTemplate database operations."""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from fivlo.database.models import TaskTemplateDB, enum_to_value
from fivlo.models.task import TaskTemplate

logger = logging.getLogger(__name__)


class TaskTemplateRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, template: TaskTemplate) -> TaskTemplate:
        row = TaskTemplateDB.from_pydantic(template)
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            logger.debug(f"Created task template {row.id}: {row.title[:50]}")
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create task template: {type(e).__name__}: {str(e)}")
            raise

    def get(self, user_id: str, template_id: str) -> Optional[TaskTemplate]:
        row = (
            self.db.query(TaskTemplateDB)
            .filter(TaskTemplateDB.user_id == user_id, TaskTemplateDB.id == template_id)
            .first()
        )
        return row.to_pydantic() if row else None

    def list_for_user(self, user_id: str) -> List[TaskTemplate]:
        rows = (
            self.db.query(TaskTemplateDB)
            .filter(TaskTemplateDB.user_id == user_id)
            .order_by(TaskTemplateDB.created_at.desc())
            .all()
        )
        return [row.to_pydantic() for row in rows]

    def update(self, template: TaskTemplate, *, commit: bool = True) -> TaskTemplate:
        """Overwrite a template's fields (user_id must match template.user_id).

        With commit=False the change is flushed into the caller's transaction.
        """
        row = (
            self.db.query(TaskTemplateDB)
            .filter(TaskTemplateDB.user_id == template.user_id, TaskTemplateDB.id == template.id)
            .first()
        )
        if row is None:
            raise ValueError(f"Task template {template.id} not found")

        row.category_id = template.category_id
        row.title = template.title
        row.description = template.description
        row.due_time = template.due_time
        row.priority = enum_to_value(template.priority)
        row.repeat_type = enum_to_value(template.repeat_type)
        row.repeat_days = [enum_to_value(d) for d in template.repeat_days]
        row.start_date = template.start_date
        row.repeat_end_date = template.repeat_end_date
        row.updated_at = datetime.utcnow()
        if not commit:
            self.db.flush()
            return row.to_pydantic()
        try:
            self.db.commit()
            self.db.refresh(row)
            logger.debug(f"Updated task template {template.id}")
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update task template {template.id}: {type(e).__name__}: {str(e)}")
            raise

    def delete(self, user_id: str, template_id: str) -> bool:
        """Permanently delete a template; its instances go with it (ON DELETE CASCADE)."""
        row = (
            self.db.query(TaskTemplateDB)
            .filter(TaskTemplateDB.user_id == user_id, TaskTemplateDB.id == template_id)
            .first()
        )
        if row is None:
            return False
        try:
            self.db.delete(row)
            self.db.commit()
            logger.debug(f"Deleted task template {template_id}")
            return True
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete task template {template_id}: {type(e).__name__}: {str(e)}")
            raise
