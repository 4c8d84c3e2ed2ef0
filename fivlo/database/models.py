"""SQLAlchemy database models for FIVLO."""

from datetime import datetime
import uuid
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Time,
    UniqueConstraint,
)

from typing import Union, TypeVar, Type
from fivlo.database.database import Base
from fivlo.models.constants import DEFAULT_TIMEZONE
from fivlo.models.recurrence import RepeatType
from fivlo.models.reward import RelatedEntityType, RewardReason
from fivlo.models.session import SessionStatus, SessionType
from fivlo.models.task import TaskPriority

T = TypeVar('T')


def enum_to_value(enum_obj: Union[str, T]) -> str:
    """Convert enum to string value (handles both enum and string)."""
    if hasattr(enum_obj, 'value'):
        return enum_obj.value
    return str(enum_obj)


def value_to_enum(value: str, enum_class: Type[T], default: T) -> T:
    """Convert string to enum with fallback to default."""
    if not value:
        return default
    try:
        return enum_class(value.lower())
    except (ValueError, AttributeError):
        return default


def _new_id() -> str:
    return str(uuid.uuid4())


class UserDB(Base):
    """Database model for User (including the cached wallet balance)."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("coins >= 0", name="ck_users_coins_non_negative"),
    )

    id = Column(String, primary_key=True, default=_new_id)
    email = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=True)
    timezone = Column(String, nullable=False, default=DEFAULT_TIMEZONE)
    is_premium = Column(Boolean, nullable=False, default=False)

    # Projection of the reward ledger; only changed alongside a ledger append.
    coins = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from fivlo.models.user import User
        return User(
            id=self.id,
            email=self.email,
            name=self.name,
            timezone=self.timezone or DEFAULT_TIMEZONE,
            is_premium=bool(self.is_premium),
            coins=self.coins or 0,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_pydantic(cls, user):
        """Create database model from Pydantic model (balance always starts at zero)."""
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            timezone=user.timezone,
            is_premium=user.is_premium,
            coins=0,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class CategoryDB(Base):
    """Database model for Category."""

    __tablename__ = "categories"

    id = Column(String, primary_key=True, default=_new_id)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    color = Column(String, nullable=False)
    icon = Column(String, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    is_default = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def to_pydantic(self):
        from fivlo.models.category import Category
        return Category(
            id=self.id,
            user_id=self.user_id,
            name=self.name,
            color=self.color,
            icon=self.icon,
            sort_order=self.sort_order,
            is_default=self.is_default,
            is_active=self.is_active,
            created_at=self.created_at,
        )


class TaskTemplateDB(Base):
    """Database model for a task template (definition + recurrence rule)."""

    __tablename__ = "task_templates"

    id = Column(String, primary_key=True, default=_new_id)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(String, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)

    title = Column(String, nullable=False)
    description = Column(String, nullable=False, default="")
    due_time = Column(Time, nullable=True)
    priority = Column(String, nullable=False, default=TaskPriority.MEDIUM.value)

    repeat_type = Column(String, nullable=False, default=RepeatType.NONE.value)
    repeat_days = Column(JSON, nullable=False, default=list)
    start_date = Column(Date, nullable=False)
    repeat_end_date = Column(Date, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_pydantic(self):
        from fivlo.models.task import TaskTemplate
        return TaskTemplate(
            id=self.id,
            user_id=self.user_id,
            category_id=self.category_id,
            title=self.title,
            description=self.description or "",
            due_time=self.due_time,
            priority=value_to_enum(self.priority, TaskPriority, TaskPriority.MEDIUM),
            repeat_type=value_to_enum(self.repeat_type, RepeatType, RepeatType.NONE),
            repeat_days=self.repeat_days or [],
            start_date=self.start_date,
            repeat_end_date=self.repeat_end_date,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_pydantic(cls, template):
        return cls(
            id=template.id,
            user_id=template.user_id,
            category_id=template.category_id,
            title=template.title,
            description=template.description,
            due_time=template.due_time,
            priority=enum_to_value(template.priority),
            repeat_type=enum_to_value(template.repeat_type),
            repeat_days=[enum_to_value(d) for d in template.repeat_days],
            start_date=template.start_date,
            repeat_end_date=template.repeat_end_date,
            created_at=template.created_at,
            updated_at=template.updated_at,
        )


class TaskInstanceDB(Base):
    """Database model for a dated task occurrence."""

    __tablename__ = "task_instances"
    __table_args__ = (
        # At most one occurrence per template and day.
        # Note: NULL template_id (one-off tasks) does not participate.
        UniqueConstraint("template_id", "due_date", name="uq_task_instance_template_date"),
        Index("ix_task_instances_user_due_date", "user_id", "due_date"),
    )

    id = Column(String, primary_key=True, default=_new_id)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    template_id = Column(String, ForeignKey("task_templates.id", ondelete="CASCADE"), nullable=True, index=True)

    # Category is denormalized at creation time
    category_id = Column(String, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    category_name = Column(String, nullable=True)
    color = Column(String, nullable=True)

    title = Column(String, nullable=False)
    description = Column(String, nullable=False, default="")
    due_date = Column(Date, nullable=False)
    due_time = Column(Time, nullable=True)
    priority = Column(String, nullable=False, default=TaskPriority.MEDIUM.value)

    is_completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_pydantic(self):
        from fivlo.models.task import TaskInstance
        return TaskInstance(
            id=self.id,
            user_id=self.user_id,
            template_id=self.template_id,
            category_id=self.category_id,
            category_name=self.category_name,
            color=self.color,
            title=self.title,
            description=self.description or "",
            due_date=self.due_date,
            due_time=self.due_time,
            priority=value_to_enum(self.priority, TaskPriority, TaskPriority.MEDIUM),
            is_completed=bool(self.is_completed),
            completed_at=self.completed_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_pydantic(cls, instance):
        return cls(
            id=instance.id,
            user_id=instance.user_id,
            template_id=instance.template_id,
            category_id=instance.category_id,
            category_name=instance.category_name,
            color=instance.color,
            title=instance.title,
            description=instance.description,
            due_date=instance.due_date,
            due_time=instance.due_time,
            priority=enum_to_value(instance.priority),
            is_completed=instance.is_completed,
            completed_at=instance.completed_at,
            created_at=instance.created_at,
            updated_at=instance.updated_at,
        )


class RewardLedgerDB(Base):
    """Append-only coin ledger. Rows are never updated."""

    __tablename__ = "reward_ledger"
    __table_args__ = (
        # Once-per-day reasons carry reward_day; other reasons leave it NULL and are unconstrained.
        UniqueConstraint("user_id", "reason", "reward_day", name="uq_reward_ledger_user_reason_day"),
        Index("ix_reward_ledger_user_created_at", "user_id", "created_at"),
        CheckConstraint("amount <> 0", name="ck_reward_ledger_amount_non_zero"),
        CheckConstraint("balance_after >= 0", name="ck_reward_ledger_balance_non_negative"),
    )

    id = Column(String, primary_key=True, default=_new_id)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    balance_after = Column(Integer, nullable=False)
    reason = Column(String, nullable=False, index=True)
    reward_day = Column(Date, nullable=True)
    description = Column(String, nullable=False, default="")
    related_entity_id = Column(String, nullable=True)
    related_entity_type = Column(String, nullable=False, default=RelatedEntityType.OTHER.value)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def to_pydantic(self):
        from fivlo.models.reward import RewardLedgerEntry
        return RewardLedgerEntry(
            id=self.id,
            user_id=self.user_id,
            amount=self.amount,
            balance_after=self.balance_after,
            reason=RewardReason(self.reason),
            reward_day=self.reward_day,
            description=self.description or "",
            related_entity_id=self.related_entity_id,
            related_entity_type=value_to_enum(self.related_entity_type, RelatedEntityType, RelatedEntityType.OTHER),
            created_at=self.created_at,
        )


class PomodoroSessionDB(Base):
    """Database model for a pomodoro session."""

    __tablename__ = "pomodoro_sessions"
    __table_args__ = (
        Index("ix_pomodoro_sessions_user_started_at", "user_id", "started_at"),
    )

    id = Column(String, primary_key=True, default=_new_id)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    goal = Column(String, nullable=False)
    color = Column(String, nullable=True)
    type = Column(String, nullable=False, default=SessionType.FOCUS.value)
    duration_min = Column(Integer, nullable=False)
    status = Column(String, nullable=False, default=SessionStatus.ACTIVE.value, index=True)
    started_at = Column(DateTime, nullable=False)
    ended_at = Column(DateTime, nullable=True)

    def to_pydantic(self):
        from fivlo.models.session import SessionRecord
        return SessionRecord(
            id=self.id,
            user_id=self.user_id,
            goal=self.goal,
            color=self.color,
            type=value_to_enum(self.type, SessionType, SessionType.FOCUS),
            duration_min=self.duration_min,
            status=value_to_enum(self.status, SessionStatus, SessionStatus.ACTIVE),
            started_at=self.started_at,
            ended_at=self.ended_at,
        )

    @classmethod
    def from_pydantic(cls, session):
        return cls(
            id=session.id,
            user_id=session.user_id,
            goal=session.goal,
            color=session.color,
            type=enum_to_value(session.type),
            duration_min=session.duration_min,
            status=enum_to_value(session.status),
            started_at=session.started_at,
            ended_at=session.ended_at,
        )
