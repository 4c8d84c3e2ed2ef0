"""FastAPI web application for FIVLO."""

import calendar
import logging
import uuid
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Path, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from fivlo.api.schemas import (
    ActiveSessionResponse,
    AuthResponse,
    CalendarResponse,
    CalendarSummary,
    CategoryCreateRequest,
    CategoryListResponse,
    CategoryUpdateRequest,
    ProfileUpdateRequest,
    PurchaseRequest,
    RegisterRequest,
    SessionFinishResponse,
    SessionStartRequest,
    TaskCompleteRequest,
    TaskCompleteResponse,
    TaskCreateRequest,
    TaskCreateResponse,
    TaskListResponse,
    TaskUpdateRequest,
    TemplateUpdateRequest,
    TemplateUpdateResponse,
    TransactionListResponse,
    WalletEntryResponse,
)
from fivlo.auth.dependencies import get_current_user
from fivlo.auth.jwt import create_access_token
from fivlo.clock import Clock, get_clock, resolve_timezone, to_utc_naive
from fivlo.database.category_repository import CategoryRepository
from fivlo.database.database import get_db
from fivlo.database.ledger_repository import LedgerRepository
from fivlo.database.models import enum_to_value
from fivlo.database.repository import TaskInstanceRepository
from fivlo.database.session_repository import SessionRepository
from fivlo.database.task_template_repository import TaskTemplateRepository
from fivlo.database.user_repository import UserRepository
from fivlo.errors import (
    DuplicateCategoryError,
    FivloError,
    InsufficientCoinsError,
    InsufficientDataError,
    InvalidRecurrenceError,
    LedgerWriteConflictError,
    NotFoundError,
    PremiumRequiredError,
    RecurrenceRangeExceededError,
    SessionStateError,
    TemplateLockedError,
    UserNotFoundError,
)
from fivlo.integrations.openai_client import OpenAIClient, get_openai_client
from fivlo.models.category import Category
from fivlo.models.constants import (
    DEFAULT_FOCUS_MINUTES,
    MAX_SESSION_MINUTES,
    MIN_SESSION_MINUTES,
    POMODORO_DURATIONS,
    QUICK_START_GOAL,
    REWARD_PREMIUM_ONLY,
)
from fivlo.models.recurrence import RepeatType
from fivlo.models.reward import RelatedEntityType, RewardReason
from fivlo.models.session import SessionRecord, SessionStatus, SessionType
from fivlo.models.stats import DDayProgress, PeriodStats, PeriodType
from fivlo.models.task import TaskInstance, TaskTemplate
from fivlo.models.task_factory import create_task_instance, create_task_template
from fivlo.models.user import User
from fivlo.recurrence.expand import expand_recurrence
from fivlo.recurrence.materialize import materialize_template, regenerate_template_instances
from fivlo.rewards.gate import evaluate_daily_completion, mint_daily_reward
from fivlo.rewards.notifier import LoggingNotifier, RewardNotifier
from fivlo.stats.aggregator import compute_stats, routine_profile
from fivlo.stats.dday import compute_dday_progress
from fivlo.stats.windows import period_window, utc_bounds

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="FIVLO API",
    description="Pomodoro timers, tasks and a coin reward ledger",
    version="0.1.0",
)

# Checked in order; the first matching class wins.
_ERROR_STATUS = [
    (InvalidRecurrenceError, status.HTTP_400_BAD_REQUEST),
    (RecurrenceRangeExceededError, status.HTTP_400_BAD_REQUEST),
    (InsufficientCoinsError, status.HTTP_400_BAD_REQUEST),
    (UserNotFoundError, status.HTTP_404_NOT_FOUND),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InsufficientDataError, status.HTTP_404_NOT_FOUND),
    (DuplicateCategoryError, status.HTTP_409_CONFLICT),
    (LedgerWriteConflictError, status.HTTP_409_CONFLICT),
    (SessionStateError, status.HTTP_409_CONFLICT),
    (TemplateLockedError, status.HTTP_409_CONFLICT),
    (PremiumRequiredError, status.HTTP_403_FORBIDDEN),
]

_SPEND_REASONS = {RewardReason.ITEM_PURCHASE, RewardReason.CUSTOMIZATION}


@app.exception_handler(FivloError)
async def handle_domain_error(request: Request, exc: FivloError):
    status_code = next(
        (code for cls, code in _ERROR_STATUS if isinstance(exc, cls)),
        status.HTTP_400_BAD_REQUEST,
    )
    body = {"detail": str(exc)}
    if isinstance(exc, LedgerWriteConflictError):
        body["detail"] = "The reward could not be recorded right now; please retry"
    for attr in ("field", "max_days", "balance", "required"):
        if getattr(exc, attr, None) is not None:
            body[attr] = getattr(exc, attr)
    logger.debug(f"{request.method} {request.url.path} -> {status_code}: {type(exc).__name__}")
    return JSONResponse(status_code=status_code, content=body)


def get_notifier() -> RewardNotifier:
    """Reward notifier dependency (for FastAPI)."""
    return LoggingNotifier()


def _reward_eligible(user: User) -> bool:
    """Coin rewards are a premium feature unless FIVLO_REWARD_PREMIUM_ONLY is off."""
    return user.is_premium if REWARD_PREMIUM_ONLY else True


def _resolve_category(db: Session, user_id: str, category_id: Optional[str]) -> Category:
    repo = CategoryRepository(db)
    if category_id:
        category = repo.get(user_id, category_id)
        if not category:
            raise NotFoundError(f"Category {category_id} not found")
        return category
    return repo.ensure_default(user_id)


def _local_day_bounds(first_day: date, last_day: date, tz_name: str):
    """Naive UTC [start, end) covering the local days first_day..last_day."""
    tz = resolve_timezone(tz_name)
    start = datetime.combine(first_day, time(0, 0), tzinfo=tz)
    end = datetime.combine(last_day + timedelta(days=1), time(0, 0), tzinfo=tz)
    return to_utc_naive(start), to_utc_naive(end)


def _period_stats(db: Session, user: User, period: PeriodType, reference: date, clock: Clock) -> PeriodStats:
    window = period_window(period, reference, user.timezone)
    start, end = utc_bounds(window)
    sessions = SessionRepository(db).list_between(user.id, start, end)
    stats = compute_stats(sessions, window, today=clock.today(user.timezone))
    logger.debug(f"{window.period} stats for user {user.id} ({window.label}): {stats.total_sessions} sessions")
    return stats


def _remaining_seconds(session: SessionRecord, now: datetime) -> int:
    elapsed = (now - session.started_at).total_seconds()
    return max(0, int(session.duration_min * 60 - elapsed))


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "healthy"}


# Auth

@app.post("/auth/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    request: RegisterRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Create a user with an empty wallet and a default category."""
    users = UserRepository(db)
    email = request.email.strip().lower()
    if users.get_by_email(email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email is already registered")

    now = clock.utcnow()
    user = users.create(
        User(
            id=str(uuid.uuid4()),
            email=email,
            name=request.name,
            timezone=resolve_timezone(request.timezone).key,
            is_premium=request.is_premium,
            coins=0,
            created_at=now,
            updated_at=now,
        )
    )
    CategoryRepository(db).ensure_default(user.id)
    logger.info(f"Registered user {user.id}")
    return AuthResponse(access_token=create_access_token(user.id, user.email, now=now), user=user)


@app.get("/auth/me", response_model=User)
def me(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    user = UserRepository(db).get(current_user.id)
    if not user:
        raise UserNotFoundError(current_user.id)
    return user


@app.patch("/auth/me", response_model=User)
def update_me(
    request: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Change the display name or timezone."""
    tz_name = request.timezone
    if tz_name is not None and resolve_timezone(tz_name).key != tz_name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown timezone: {tz_name}")
    user = UserRepository(db).update_profile(current_user.id, name=request.name, timezone=tz_name)
    if not user:
        raise UserNotFoundError(current_user.id)
    return user


# Categories

@app.get("/categories", response_model=CategoryListResponse)
def list_categories(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return CategoryListResponse(categories=CategoryRepository(db).list_active(current_user.id))


@app.post("/categories", response_model=Category, status_code=status.HTTP_201_CREATED)
def create_category(
    request: CategoryCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return CategoryRepository(db).create(
        current_user.id, name=request.name, color=request.color, icon=request.icon
    )


@app.put("/categories/{category_id}", response_model=Category)
def update_category(
    category_id: str,
    request: CategoryUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Rename or recolor a category. Existing tasks keep their captured name and color."""
    category = CategoryRepository(db).update(
        current_user.id, category_id, name=request.name, color=request.color, icon=request.icon
    )
    if not category:
        raise NotFoundError(f"Category {category_id} not found")
    return category


# Tasks

@app.post("/tasks", response_model=TaskCreateResponse, status_code=status.HTTP_201_CREATED)
def create_task(
    request: TaskCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Create a one-off task, or a recurring template and all of its instances."""
    category = _resolve_category(db, current_user.id, request.category_id)
    now = clock.utcnow()
    template = create_task_template(
        current_user.id,
        request.title,
        request.date,
        category_id=category.id,
        description=request.description,
        due_time=request.time,
        priority=request.priority,
        repeat_type=request.repeat_type,
        repeat_days=request.repeat_days,
        repeat_end_date=request.repeat_end_date,
        now=now,
    )
    # Reject a bad rule before anything is stored.
    expand_recurrence(template.recurrence_rule())

    if RepeatType(template.repeat_type) == RepeatType.NONE:
        instance = TaskInstanceRepository(db).create(
            create_task_instance(template, request.date, category, now=now)
        )
        return TaskCreateResponse(template=None, instances=[instance], created_count=1)

    saved = TaskTemplateRepository(db).create(template)
    created = materialize_template(db, saved, category, now=now)
    return TaskCreateResponse(template=saved, instances=created, created_count=len(created))


@app.get("/tasks", response_model=TaskListResponse)
def list_tasks(
    day: Optional[date] = Query(None, alias="date", description="Defaults to today in the user's timezone"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    day = day or clock.today(current_user.timezone)
    tasks = TaskInstanceRepository(db).list_by_date(current_user.id, day)
    return TaskListResponse(
        date=day,
        tasks=tasks,
        total=len(tasks),
        completed=sum(1 for t in tasks if t.is_completed),
    )


@app.get("/tasks/calendar/{year}/{month}", response_model=CalendarResponse)
def task_calendar(
    year: int = Path(..., ge=2000, le=2100),
    month: int = Path(..., ge=1, le=12),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Month view grouped by day."""
    first_day = date(year, month, 1)
    last_day = date(year, month, calendar.monthrange(year, month)[1])
    tasks = TaskInstanceRepository(db).list_between(current_user.id, first_day, last_day)

    days: Dict[str, List] = {}
    for task in tasks:
        days.setdefault(task.due_date.isoformat(), []).append(task)
    return CalendarResponse(
        year=year,
        month=month,
        days=days,
        summary=CalendarSummary(
            total_tasks=len(tasks),
            completed_tasks=sum(1 for t in tasks if t.is_completed),
            active_days=len(days),
        ),
    )


# Request field -> template attribute
_TEMPLATE_FIELDS = {
    "title": "title",
    "description": "description",
    "time": "due_time",
    "category_id": "category_id",
    "priority": "priority",
    "date": "start_date",
    "repeat_type": "repeat_type",
    "repeat_days": "repeat_days",
    "repeat_end_date": "repeat_end_date",
}


def _comparable(attr: str, value):
    # Weekday order carries no meaning.
    if attr == "repeat_days":
        return {enum_to_value(d) for d in value}
    return enum_to_value(value) if isinstance(value, Enum) else value


@app.get("/tasks/templates", response_model=List[TaskTemplate])
def list_templates(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Recurring templates, newest first."""
    return TaskTemplateRepository(db).list_for_user(current_user.id)


@app.put("/tasks/templates/{template_id}", response_model=TemplateUpdateResponse)
def update_template(
    template_id: str,
    request: TemplateUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Edit a recurring template.

    Its instances already carry the template's fields, so any change is only
    accepted with `regenerate=true`. That saves the template and replaces the
    incomplete instances in one transaction; completed ones are kept.
    """
    templates = TaskTemplateRepository(db)
    template = templates.get(current_user.id, template_id)
    if not template:
        raise NotFoundError(f"Task template {template_id} not found")

    updates = {}
    for field, attr in _TEMPLATE_FIELDS.items():
        value = getattr(request, field)
        if field in request.model_fields_set and value is not None:
            updates[attr] = value

    changed = sorted(
        attr for attr, value in updates.items()
        if _comparable(attr, value) != _comparable(attr, getattr(template, attr))
    )
    if not request.regenerate:
        if changed:
            raise TemplateLockedError(
                f"An expanded template can only change with regenerate=true (changed: {', '.join(changed)})"
            )
        return TemplateUpdateResponse(template=template)

    category = _resolve_category(db, current_user.id, updates.get("category_id", template.category_id))
    updated = template.model_copy(update={**updates, "category_id": category.id, "updated_at": clock.utcnow()})
    # Reject a bad rule before anything is written.
    expand_recurrence(updated.recurrence_rule())

    deleted, created = regenerate_template_instances(db, updated, category, now=clock.utcnow())
    return TemplateUpdateResponse(
        template=templates.get(current_user.id, template_id),
        deleted_count=deleted,
        created_count=len(created),
    )


@app.get("/tasks/{task_id}", response_model=TaskInstance)
def get_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    instance = TaskInstanceRepository(db).get(current_user.id, task_id)
    if not instance:
        raise NotFoundError(f"Task {task_id} not found")
    return instance


@app.put("/tasks/{task_id}", response_model=TaskInstance)
def update_task(
    task_id: str,
    request: TaskUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Edit a one-off task; series instances change through their template."""
    repo = TaskInstanceRepository(db)
    instance = repo.get(current_user.id, task_id)
    if not instance:
        raise NotFoundError(f"Task {task_id} not found")
    if instance.template_id:
        raise TemplateLockedError(
            f"Task {task_id} belongs to template {instance.template_id}; edit the template with regenerate=true"
        )

    updates = {}
    for field, attr in (("title", "title"), ("description", "description"), ("date", "due_date"),
                        ("time", "due_time"), ("priority", "priority")):
        value = getattr(request, field)
        if field in request.model_fields_set and value is not None:
            updates[attr] = value
    if "category_id" in request.model_fields_set and request.category_id:
        category = _resolve_category(db, current_user.id, request.category_id)
        updates.update(category_id=category.id, category_name=category.name, color=category.color)

    updated = instance.model_copy(update={**updates, "updated_at": clock.utcnow()})
    return repo.update(updated)


@app.patch("/tasks/{task_id}/complete", response_model=TaskCompleteResponse)
def complete_task(
    task_id: str,
    request: Optional[TaskCompleteRequest] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    notifier: RewardNotifier = Depends(get_notifier),
):
    """Toggle (or set) completion, then evaluate today's completion reward."""
    repo = TaskInstanceRepository(db)
    instance = repo.get(current_user.id, task_id)
    if not instance:
        raise NotFoundError(f"Task {task_id} not found")

    target = not instance.is_completed
    if request is not None and request.is_completed is not None:
        target = request.is_completed
    updated = repo.set_completion(current_user.id, task_id, target, clock.utcnow())

    reward = None
    if target:
        reward = evaluate_daily_completion(
            db,
            current_user.id,
            clock.today(current_user.timezone),
            RewardReason.TASK_COMPLETION,
            eligible=_reward_eligible(current_user),
            notifier=notifier,
            clock=clock,
        )
    return TaskCompleteResponse(task=updated, reward=reward)


@app.delete("/tasks/templates/{template_id}")
def delete_template(
    template_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete a recurring series and all of its instances."""
    templates = TaskTemplateRepository(db)
    if not templates.get(current_user.id, template_id):
        raise NotFoundError(f"Task template {template_id} not found")
    deleted = TaskInstanceRepository(db).delete_for_template(current_user.id, template_id)
    templates.delete(current_user.id, template_id)
    return {"deleted": True, "deleted_instances": deleted}


@app.delete("/tasks/{task_id}")
def delete_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not TaskInstanceRepository(db).delete(current_user.id, task_id):
        raise NotFoundError(f"Task {task_id} not found")
    return {"deleted": True}


# Pomodoro

@app.get("/pomodoro/status")
def pomodoro_status(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    active = SessionRepository(db).get_active(current_user.id)
    return {
        "durations": POMODORO_DURATIONS,
        "limits": {"min_minutes": MIN_SESSION_MINUTES, "max_minutes": MAX_SESSION_MINUTES},
        "active_session": ActiveSessionResponse(
            session=active,
            remaining_seconds=_remaining_seconds(active, clock.utcnow()) if active else 0,
        ),
    }


def _start_session(db: Session, user: User, request: SessionStartRequest, clock: Clock) -> SessionRecord:
    sessions = SessionRepository(db)
    if sessions.get_active(user.id):
        raise SessionStateError("Another session is still running; complete or abandon it first")
    return sessions.create(
        SessionRecord(
            id=str(uuid.uuid4()),
            user_id=user.id,
            goal=request.goal.strip(),
            color=request.color,
            type=request.type,
            duration_min=request.duration_min,
            status=SessionStatus.ACTIVE,
            started_at=clock.utcnow(),
        )
    )


@app.post("/pomodoro/sessions", response_model=SessionRecord, status_code=status.HTTP_201_CREATED)
def start_session(
    request: SessionStartRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    return _start_session(db, current_user, request, clock)


@app.post("/pomodoro/quick-start", response_model=SessionRecord, status_code=status.HTTP_201_CREATED)
def quick_start(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Start a default 25 minute focus session."""
    request = SessionStartRequest(goal=QUICK_START_GOAL, type=SessionType.FOCUS, duration_min=DEFAULT_FOCUS_MINUTES)
    return _start_session(db, current_user, request, clock)


@app.get("/pomodoro/sessions", response_model=List[SessionRecord])
def list_sessions(
    day: Optional[date] = Query(None, alias="date"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    day = day or clock.today(current_user.timezone)
    start, end = _local_day_bounds(day, day, current_user.timezone)
    return SessionRepository(db).list_between(current_user.id, start, end)


@app.get("/pomodoro/active", response_model=ActiveSessionResponse)
def active_session(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    session = SessionRepository(db).get_active(current_user.id)
    if not session:
        return ActiveSessionResponse()
    return ActiveSessionResponse(session=session, remaining_seconds=_remaining_seconds(session, clock.utcnow()))


def _finish_session(db: Session, user_id: str, session_id: str, new_status: SessionStatus, clock: Clock) -> SessionRecord:
    sessions = SessionRepository(db)
    session = sessions.get(user_id, session_id)
    if not session:
        raise NotFoundError(f"Session {session_id} not found")
    if session.is_finalized or not sessions.finalize(user_id, session_id, new_status, clock.utcnow()):
        raise SessionStateError(f"Session {session_id} is already {session.status}")
    return sessions.get(user_id, session_id)


@app.post("/pomodoro/sessions/{session_id}/complete", response_model=SessionFinishResponse)
def complete_session(
    session_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    notifier: RewardNotifier = Depends(get_notifier),
):
    """Complete a session; the first completed focus session of the day earns a coin."""
    session = _finish_session(db, current_user.id, session_id, SessionStatus.COMPLETED, clock)
    reward = None
    if session.type == SessionType.FOCUS:
        reward = mint_daily_reward(
            db,
            current_user.id,
            clock.today(current_user.timezone),
            RewardReason.POMODORO_COMPLETION,
            eligible=_reward_eligible(current_user),
            notifier=notifier,
            clock=clock,
            description=f"Pomodoro completed: {session.goal}",
            related_entity_id=session.id,
            related_entity_type=RelatedEntityType.POMODORO,
        )
    return SessionFinishResponse(session=session, reward=reward)


@app.post("/pomodoro/sessions/{session_id}/abandon", response_model=SessionFinishResponse)
def abandon_session(
    session_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    session = _finish_session(db, current_user.id, session_id, SessionStatus.ABANDONED, clock)
    return SessionFinishResponse(session=session)


# Wallet

@app.get("/wallet/balance")
def wallet_balance(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    balance = LedgerRepository(db).get_balance(current_user.id)
    if balance is None:
        raise UserNotFoundError(current_user.id)
    return {"balance": balance}


@app.get("/wallet/transactions", response_model=TransactionListResponse)
def wallet_transactions(
    reason: Optional[RewardReason] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: int = Query(50, ge=1, le=200),
    skip: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Ledger history, newest first. Date filters are local calendar days (inclusive)."""
    start = end = None
    if start_date:
        start, _ = _local_day_bounds(start_date, start_date, current_user.timezone)
    if end_date:
        _, end = _local_day_bounds(end_date, end_date, current_user.timezone)
    entries, total = LedgerRepository(db).list_transactions(
        current_user.id, reason=reason, start=start, end=end, limit=limit, offset=skip
    )
    return TransactionListResponse(transactions=entries, total=total, limit=limit, skip=skip)


@app.get("/wallet/stats")
def wallet_stats(
    days: int = Query(30, ge=1, le=365),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    since = clock.utcnow() - timedelta(days=days)
    ledger = LedgerRepository(db)
    stats = ledger.coin_stats(current_user.id, since)
    stats["days"] = days
    stats["balance"] = ledger.get_balance(current_user.id)
    return stats


@app.get("/wallet/daily-activity")
def wallet_daily_activity(
    days: int = Query(7, ge=1, le=90),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    since = clock.utcnow() - timedelta(days=days)
    activity = LedgerRepository(db).daily_activity(
        current_user.id, since, resolve_timezone(current_user.timezone)
    )
    return {"days": days, "activity": activity}


@app.post("/wallet/purchase", response_model=WalletEntryResponse)
def wallet_purchase(
    request: PurchaseRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Spend coins; rejected with 400 when the balance does not cover the price."""
    if request.reason not in _SPEND_REASONS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"'{request.reason.value}' is not a spending reason")
    entry = LedgerRepository(db).spend(
        current_user.id,
        request.price,
        now=clock.utcnow(),
        reason=request.reason,
        description=request.description or f"Purchased item {request.item_id}",
        related_entity_id=request.item_id,
        related_entity_type=RelatedEntityType.SHOP_ITEM,
    )
    return WalletEntryResponse(entry=entry, balance=entry.balance_after)


@app.post("/wallet/reconcile")
def wallet_reconcile(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Recompute the cached balance from the ledger."""
    return {"balance": LedgerRepository(db).reconcile_balance(current_user.id)}


# Analysis

@app.get("/analysis/daily", response_model=PeriodStats)
def analysis_daily(
    day: Optional[date] = Query(None, alias="date"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    return _period_stats(db, current_user, PeriodType.DAILY, day or clock.today(current_user.timezone), clock)


@app.get("/analysis/weekly", response_model=PeriodStats)
def analysis_weekly(
    day: Optional[date] = Query(None, alias="date", description="Any day of the week"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    return _period_stats(db, current_user, PeriodType.WEEKLY, day or clock.today(current_user.timezone), clock)


@app.get("/analysis/monthly/{year}/{month}", response_model=PeriodStats)
def analysis_monthly(
    year: int = Path(..., ge=2000, le=2100),
    month: int = Path(..., ge=1, le=12),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    return _period_stats(db, current_user, PeriodType.MONTHLY, date(year, month, 1), clock)


@app.get("/analysis/dday/{goal}", response_model=DDayProgress)
def analysis_dday(
    goal: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Progress of a 30-day goal (premium only)."""
    if not current_user.is_premium:
        raise PremiumRequiredError("D-Day goals are only available to premium users")
    sessions = SessionRepository(db).list_by_goal(current_user.id, goal)
    return compute_dday_progress(goal, sessions, clock.today(current_user.timezone), current_user.timezone)


@app.get("/analysis/dashboard")
def analysis_dashboard(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    today = clock.today(current_user.timezone)
    daily = _period_stats(db, current_user, PeriodType.DAILY, today, clock)
    weekly = _period_stats(db, current_user, PeriodType.WEEKLY, today, clock)
    due, completed = TaskInstanceRepository(db).completion_counts(current_user.id, today)
    return {
        "date": today,
        "today": {
            "total_sessions": daily.total_sessions,
            "completed_sessions": daily.completed_sessions,
            "focus_time": daily.total_focus_time,
            "completion_rate": daily.completion_rate,
        },
        "week": {
            "label": weekly.window.label,
            "focus_time": weekly.total_focus_time,
            "active_days": weekly.active_days,
            "best_day": weekly.best_day,
        },
        "tasks": {"due": due, "completed": completed},
        "balance": LedgerRepository(db).get_balance(current_user.id),
        "is_premium": current_user.is_premium,
    }


@app.get("/analysis/ai-recommendation")
def analysis_ai_recommendation(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    ai_client: OpenAIClient = Depends(get_openai_client),
):
    """Routine recommendation from the last 30 days of sessions."""
    now = clock.utcnow()
    sessions = SessionRepository(db).list_between(current_user.id, now - timedelta(days=30), now + timedelta(seconds=1))
    if not sessions:
        return {
            "success": False,
            "message": "Not enough data for a routine recommendation yet. Complete a few pomodoro sessions first.",
        }
    profile = routine_profile(sessions, current_user.timezone)
    recommendation = ai_client.generate_routine_recommendation(profile, now=now)
    logger.info(
        f"Routine recommendation for user {current_user.id}: {recommendation.type}, confidence {recommendation.confidence}"
    )
    return recommendation


@app.get("/analysis/ai-status")
def analysis_ai_status(
    current_user: User = Depends(get_current_user),
    ai_client: OpenAIClient = Depends(get_openai_client),
):
    return ai_client.get_service_status()
