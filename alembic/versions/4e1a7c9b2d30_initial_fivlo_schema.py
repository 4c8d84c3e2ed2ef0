"""Initial FIVLO schema: users, categories, tasks, reward ledger, pomodoro sessions

Revision ID: 4e1a7c9b2d30
Revises:
Create Date: 2026-10-18
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "4e1a7c9b2d30"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "users",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("timezone", sa.String(), nullable=False),
        sa.Column("is_premium", sa.Boolean(), nullable=False),
        sa.Column("coins", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("coins >= 0", name="ck_users_coins_non_negative"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "categories",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("color", sa.String(), nullable=False),
        sa.Column("icon", sa.String(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_categories_user_id"), "categories", ["user_id"], unique=False)

    op.create_table(
        "task_templates",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("category_id", sa.String(), nullable=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=False),
        sa.Column("due_time", sa.Time(), nullable=True),
        sa.Column("priority", sa.String(), nullable=False),
        sa.Column("repeat_type", sa.String(), nullable=False),
        sa.Column("repeat_days", sa.JSON(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("repeat_end_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_task_templates_user_id"), "task_templates", ["user_id"], unique=False)

    op.create_table(
        "task_instances",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("template_id", sa.String(), nullable=True),
        sa.Column("category_id", sa.String(), nullable=True),
        sa.Column("category_name", sa.String(), nullable=True),
        sa.Column("color", sa.String(), nullable=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("due_time", sa.Time(), nullable=True),
        sa.Column("priority", sa.String(), nullable=False),
        sa.Column("is_completed", sa.Boolean(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["template_id"], ["task_templates.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("template_id", "due_date", name="uq_task_instance_template_date"),
    )
    op.create_index(op.f("ix_task_instances_user_id"), "task_instances", ["user_id"], unique=False)
    op.create_index(op.f("ix_task_instances_template_id"), "task_instances", ["template_id"], unique=False)
    op.create_index("ix_task_instances_user_due_date", "task_instances", ["user_id", "due_date"], unique=False)

    op.create_table(
        "reward_ledger",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("balance_after", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(), nullable=False),
        sa.Column("reward_day", sa.Date(), nullable=True),
        sa.Column("description", sa.String(), nullable=False),
        sa.Column("related_entity_id", sa.String(), nullable=True),
        sa.Column("related_entity_type", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("amount <> 0", name="ck_reward_ledger_amount_non_zero"),
        sa.CheckConstraint("balance_after >= 0", name="ck_reward_ledger_balance_non_negative"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "reason", "reward_day", name="uq_reward_ledger_user_reason_day"),
    )
    op.create_index(op.f("ix_reward_ledger_user_id"), "reward_ledger", ["user_id"], unique=False)
    op.create_index(op.f("ix_reward_ledger_reason"), "reward_ledger", ["reason"], unique=False)
    op.create_index("ix_reward_ledger_user_created_at", "reward_ledger", ["user_id", "created_at"], unique=False)

    op.create_table(
        "pomodoro_sessions",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("goal", sa.String(), nullable=False),
        sa.Column("color", sa.String(), nullable=True),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("duration_min", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("ended_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_pomodoro_sessions_user_id"), "pomodoro_sessions", ["user_id"], unique=False)
    op.create_index(op.f("ix_pomodoro_sessions_status"), "pomodoro_sessions", ["status"], unique=False)
    op.create_index("ix_pomodoro_sessions_user_started_at", "pomodoro_sessions", ["user_id", "started_at"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_pomodoro_sessions_user_started_at", table_name="pomodoro_sessions")
    op.drop_index(op.f("ix_pomodoro_sessions_status"), table_name="pomodoro_sessions")
    op.drop_index(op.f("ix_pomodoro_sessions_user_id"), table_name="pomodoro_sessions")
    op.drop_table("pomodoro_sessions")

    op.drop_index("ix_reward_ledger_user_created_at", table_name="reward_ledger")
    op.drop_index(op.f("ix_reward_ledger_reason"), table_name="reward_ledger")
    op.drop_index(op.f("ix_reward_ledger_user_id"), table_name="reward_ledger")
    op.drop_table("reward_ledger")

    op.drop_index("ix_task_instances_user_due_date", table_name="task_instances")
    op.drop_index(op.f("ix_task_instances_template_id"), table_name="task_instances")
    op.drop_index(op.f("ix_task_instances_user_id"), table_name="task_instances")
    op.drop_table("task_instances")

    op.drop_index(op.f("ix_task_templates_user_id"), table_name="task_templates")
    op.drop_table("task_templates")

    op.drop_index(op.f("ix_categories_user_id"), table_name="categories")
    op.drop_table("categories")

    op.drop_table("users")
