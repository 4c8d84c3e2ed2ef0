"""D-Day goal progress: a fixed-length goal tracked by its pomodoro goal label."""

from datetime import date, timedelta
from typing import Optional, Sequence

from fivlo.clock import resolve_timezone, to_local
from fivlo.errors import InsufficientDataError
from fivlo.models.constants import DDAY_DAILY_TARGET_MINUTES, DDAY_GOAL_DAYS
from fivlo.models.session import SessionRecord
from fivlo.models.stats import DDayProgress
from fivlo.stats.aggregator import focus_minutes


def compute_dday_progress(
    goal: str,
    sessions: Sequence[SessionRecord],
    today: date,
    tz_name: Optional[str] = None,
    *,
    goal_days: int = DDAY_GOAL_DAYS,
    daily_target_minutes: int = DDAY_DAILY_TARGET_MINUTES,
) -> DDayProgress:
    """Progress of `goal` since its first session.

    The goal starts on the local day of the earliest session and lasts
    `goal_days` days; the target is `daily_target_minutes` per day.

    Raises:
        InsufficientDataError: no sessions for the goal
    """
    if not sessions:
        raise InsufficientDataError(f"No sessions found for goal '{goal}'")

    tz = resolve_timezone(tz_name)
    first = min(sessions, key=lambda s: s.started_at)
    start_date = to_local(first.started_at, tz).date()

    # The first day counts as day 1.
    elapsed = max(1, (today - start_date).days + 1)
    focus = sum(focus_minutes(s) for s in sessions)
    target = goal_days * daily_target_minutes

    return DDayProgress(
        goal=goal,
        start_date=start_date,
        target_date=start_date + timedelta(days=goal_days),
        total_days=goal_days,
        elapsed_days=elapsed,
        remaining_days=max(0, goal_days - elapsed),
        current_focus_time=focus,
        target_focus_time=target,
        percentage=min(100, round(focus / target * 100)) if target else 0,
        daily_average=round(focus / elapsed),
        sessions=len(sessions),
    )
