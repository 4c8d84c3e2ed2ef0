"""Task creation factory for FIVLO.

Centralizes template/instance construction so ids, timestamps and the
denormalized category fields are filled in the same way everywhere.
"""

import uuid
from datetime import date, datetime, time
from typing import List, Optional

from fivlo.models.category import Category
from fivlo.models.recurrence import RepeatType, Weekday
from fivlo.models.task import TaskInstance, TaskPriority, TaskTemplate


def create_task_template(
    user_id: str,
    title: str,
    start_date: date,
    *,
    category_id: Optional[str] = None,
    description: str = "",
    due_time: Optional[time] = None,
    priority: TaskPriority = TaskPriority.MEDIUM,
    repeat_type: RepeatType = RepeatType.NONE,
    repeat_days: Optional[List[Weekday]] = None,
    repeat_end_date: Optional[date] = None,
    now: Optional[datetime] = None,
) -> TaskTemplate:
    """Create a task template with a fresh id.

    Args:
        user_id: User ID who owns the template
        title: Task title
        start_date: Target date (first possible occurrence)
        repeat_type: Recurrence type; `none` for a one-off task
        repeat_days: Weekdays for weekly recurrence
        repeat_end_date: Inclusive end of the recurrence
        now: Creation timestamp (naive UTC); defaults to utcnow

    Returns:
        TaskTemplate (not yet persisted)
    """
    now = now or datetime.utcnow()
    return TaskTemplate(
        id=str(uuid.uuid4()),
        user_id=user_id,
        category_id=category_id,
        title=title,
        description=description,
        due_time=due_time,
        priority=priority,
        repeat_type=repeat_type,
        repeat_days=repeat_days or [],
        start_date=start_date,
        repeat_end_date=repeat_end_date,
        created_at=now,
        updated_at=now,
    )


def create_task_instance(
    template: TaskTemplate,
    due_date: date,
    category: Optional[Category] = None,
    *,
    template_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> TaskInstance:
    """Create the occurrence of `template` on `due_date`.

    The category's name and color are copied onto the instance, so later
    category edits do not rewrite history. `template_id` is the stored
    template reference (None for one-off tasks that have no template row).
    """
    now = now or datetime.utcnow()
    return TaskInstance(
        id=str(uuid.uuid4()),
        user_id=template.user_id,
        template_id=template_id,
        category_id=category.id if category else template.category_id,
        category_name=category.name if category else None,
        color=category.color if category else None,
        title=template.title,
        description=template.description,
        due_date=due_date,
        due_time=template.due_time,
        priority=template.priority,
        is_completed=False,
        completed_at=None,
        created_at=now,
        updated_at=now,
    )
