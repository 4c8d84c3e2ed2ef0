"""Tests for template materialization and regeneration."""

import pytest
from datetime import date, datetime
from unittest.mock import patch

from fivlo.database.category_repository import CategoryRepository
from fivlo.database.repository import TaskInstanceRepository
from fivlo.database.task_template_repository import TaskTemplateRepository
from fivlo.errors import InvalidRecurrenceError
from fivlo.models.recurrence import RepeatType, Weekday
from fivlo.models.task_factory import create_task_template
from fivlo.recurrence.materialize import materialize_template, regenerate_template_instances


@pytest.fixture
def category(db_session, test_user_id):
    return CategoryRepository(db_session).create(test_user_id, name="Study", color="#FF5733")


@pytest.fixture
def weekly_template(db_session, test_user_id, category):
    template = create_task_template(
        test_user_id,
        "Read a chapter",
        date(2025, 1, 6),
        category_id=category.id,
        repeat_type=RepeatType.WEEKLY,
        repeat_days=[Weekday.MON, Weekday.WED, Weekday.FRI],
        repeat_end_date=date(2025, 1, 24),
    )
    return TaskTemplateRepository(db_session).create(template)


class TestMaterializeTemplate:

    def test_creates_one_instance_per_date(self, db_session, weekly_template, category):
        created = materialize_template(db_session, weekly_template, category)
        assert len(created) == 9
        stored = TaskInstanceRepository(db_session).list_for_template(weekly_template.id)
        assert [i.due_date for i in stored] == [i.due_date for i in created]

    def test_instances_carry_category_snapshot(self, db_session, weekly_template, category):
        created = materialize_template(db_session, weekly_template, category)
        assert all(i.category_name == "Study" and i.color == "#FF5733" for i in created)
        assert all(i.category_id == category.id for i in created)
        assert all(i.title == "Read a chapter" and not i.is_completed for i in created)

    def test_rerun_is_idempotent(self, db_session, weekly_template, category):
        materialize_template(db_session, weekly_template, category)
        again = materialize_template(db_session, weekly_template, category)
        assert again == []
        assert len(TaskInstanceRepository(db_session).list_for_template(weekly_template.id)) == 9

    def test_daily_template(self, db_session, test_user_id):
        template = TaskTemplateRepository(db_session).create(create_task_template(
            test_user_id,
            "Stretch",
            date(2025, 3, 1),
            repeat_type=RepeatType.DAILY,
            repeat_end_date=date(2025, 3, 7),
        ))
        created = materialize_template(db_session, template)
        assert len(created) == 7
        assert created[0].category_name is None


class TestRegenerateTemplate:

    def test_keeps_completed_and_replaces_incomplete(self, db_session, test_user_id, weekly_template, category):
        instances = TaskInstanceRepository(db_session)
        created = materialize_template(db_session, weekly_template, category)
        done = created[0]
        instances.set_completion(test_user_id, done.id, True, datetime(2025, 1, 6, 9, 0))

        # Mondays only from now on
        edited = weekly_template.model_copy(update={"repeat_days": [Weekday.MON]})
        saved = TaskTemplateRepository(db_session).update(edited)
        deleted, new = regenerate_template_instances(db_session, saved, category)

        assert deleted == 8
        # 2025-01-06 is kept (completed); 01-13 and 01-20 are new
        assert [i.due_date for i in new] == [date(2025, 1, 13), date(2025, 1, 20)]
        remaining = instances.list_for_template(weekly_template.id)
        assert [i.due_date for i in remaining] == [date(2025, 1, 6), date(2025, 1, 13), date(2025, 1, 20)]
        assert remaining[0].id == done.id
        assert remaining[0].is_completed

    def test_invalid_rule_leaves_instances_untouched(self, db_session, weekly_template, category):
        materialize_template(db_session, weekly_template, category)
        broken = weekly_template.model_copy(update={"repeat_days": []})
        with pytest.raises(InvalidRecurrenceError):
            regenerate_template_instances(db_session, broken, category)
        assert len(TaskInstanceRepository(db_session).list_for_template(weekly_template.id)) == 9

    def test_saves_template_with_new_instances(self, db_session, test_user_id, weekly_template, category):
        edited = weekly_template.model_copy(update={"title": "Read two chapters"})
        regenerate_template_instances(db_session, edited, category)

        assert TaskTemplateRepository(db_session).get(test_user_id, weekly_template.id).title == "Read two chapters"
        titles = {i.title for i in TaskInstanceRepository(db_session).list_for_template(weekly_template.id)}
        assert titles == {"Read two chapters"}

    def test_failed_insert_keeps_old_series_and_template(self, db_session, test_user_id, weekly_template, category):
        materialize_template(db_session, weekly_template, category)
        edited = weekly_template.model_copy(update={"title": "Read two chapters", "repeat_days": [Weekday.MON]})

        with patch.object(TaskInstanceRepository, "add_missing", side_effect=RuntimeError("disk full")):
            with pytest.raises(RuntimeError):
                regenerate_template_instances(db_session, edited, category)

        remaining = TaskInstanceRepository(db_session).list_for_template(weekly_template.id)
        assert len(remaining) == 9
        assert {i.title for i in remaining} == {"Read a chapter"}
        stored = TaskTemplateRepository(db_session).get(test_user_id, weekly_template.id)
        assert stored.title == "Read a chapter"
        assert len(stored.repeat_days) == 3
