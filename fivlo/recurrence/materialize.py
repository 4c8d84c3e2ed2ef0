"""Materialize task templates into concrete, dated TaskInstance rows."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from fivlo.database.repository import TaskInstanceRepository
from fivlo.database.task_template_repository import TaskTemplateRepository
from fivlo.models.category import Category
from fivlo.models.task import TaskInstance, TaskTemplate
from fivlo.models.task_factory import create_task_instance
from fivlo.recurrence.expand import expand_recurrence

logger = logging.getLogger(__name__)


def _build_instances(
    template: TaskTemplate, category: Optional[Category], now: Optional[datetime]
) -> List[TaskInstance]:
    dates = expand_recurrence(template.recurrence_rule())
    return [
        create_task_instance(template, day, category, template_id=template.id, now=now)
        for day in dates
    ]


def materialize_template(
    db: Session,
    template: TaskTemplate,
    category: Optional[Category] = None,
    *,
    now: Optional[datetime] = None,
) -> List[TaskInstance]:
    """Create the missing instances of a stored template.

    Idempotent: dates that already have an instance for this template are skipped,
    so re-running creates nothing new. Returns the instances created by this call.
    """
    instances = _build_instances(template, category, now)
    created = TaskInstanceRepository(db).add_missing(template.id, instances)
    logger.info(f"Materialized template {template.id}: {len(created)} new of {len(instances)} dates")
    return created


def regenerate_template_instances(
    db: Session,
    template: TaskTemplate,
    category: Optional[Category] = None,
    *,
    now: Optional[datetime] = None,
) -> Tuple[int, List[TaskInstance]]:
    """Save an edited template and re-expand it.

    Incomplete instances are deleted and the new rule is expanded; completed
    instances are kept and their dates are not duplicated. The template write,
    the delete and the inserts commit together, so a failure leaves the old
    series in place.
    Returns (deleted_count, created_instances).
    """
    # Fail on a bad rule before touching existing rows.
    instances = _build_instances(template, category, now)

    repo = TaskInstanceRepository(db)
    try:
        TaskTemplateRepository(db).update(template, commit=False)
        deleted = repo.delete_for_template(template.user_id, template.id, only_incomplete=True, commit=False)
        created = repo.add_missing(template.id, instances, commit=False)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to regenerate template {template.id}: {type(e).__name__}: {str(e)}")
        raise
    logger.info(f"Regenerated template {template.id}: removed {deleted}, created {len(created)}")
    return deleted, created
