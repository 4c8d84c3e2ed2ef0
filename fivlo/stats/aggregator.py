"""Descriptive statistics over pomodoro sessions in one period window.

Everything here is a pure function of its inputs.
"""

from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Union

from fivlo.clock import resolve_timezone, to_local
from fivlo.models.recurrence import weekday_of
from fivlo.models.session import SessionRecord, SessionStatus, SessionType
from fivlo.models.stats import (
    DayBucket,
    GoalStat,
    HourBucket,
    PeriodStats,
    PeriodType,
    PeriodWindow,
    RoutineProfile,
)
from fivlo.stats.windows import window_days


def is_completed(session: SessionRecord) -> bool:
    return session.status == SessionStatus.COMPLETED


def focus_minutes(session: SessionRecord) -> int:
    """Minutes a session contributes to focus time (completed focus sessions only)."""
    if is_completed(session) and session.type == SessionType.FOCUS:
        return session.duration_min
    return 0


def _percent(part: float, whole: float) -> float:
    if not whole:
        return 0.0
    return round(part / whole * 100, 1)


def _hour_buckets(local_sessions) -> List[HourBucket]:
    buckets = [HourBucket(hour=h) for h in range(24)]
    for local_start, session in local_sessions:
        bucket = buckets[local_start.hour]
        bucket.sessions += 1
        if is_completed(session):
            bucket.completed_sessions += 1
        bucket.focus_time += focus_minutes(session)
    return buckets


def _day_buckets(local_sessions, window: PeriodWindow) -> List[DayBucket]:
    buckets: Dict[date, DayBucket] = {
        day: DayBucket(day=day, weekday=weekday_of(day).value) for day in window_days(window)
    }
    for local_start, session in local_sessions:
        bucket = buckets.get(local_start.date())
        if bucket is None:
            continue
        bucket.sessions += 1
        if is_completed(session):
            bucket.completed_sessions += 1
        bucket.focus_time += focus_minutes(session)
    return list(buckets.values())


def _goal_breakdown(sessions: Iterable[SessionRecord], total_focus: int) -> List[GoalStat]:
    counts: Dict[str, int] = defaultdict(int)
    minutes: Dict[str, int] = defaultdict(int)
    for session in sessions:
        counts[session.goal] += 1
        minutes[session.goal] += focus_minutes(session)
    goals = [
        GoalStat(
            goal=goal,
            sessions=counts[goal],
            focus_time=minutes[goal],
            percentage=_percent(minutes[goal], total_focus),
        )
        for goal in counts
    ]
    goals.sort(key=lambda g: (-g.focus_time, g.goal))
    return goals


def longest_streak(days: Sequence[DayBucket]) -> int:
    best = run = 0
    for bucket in days:
        run = run + 1 if bucket.is_active else 0
        best = max(best, run)
    return best


def current_streak(days: Sequence[DayBucket], anchor: date) -> int:
    """Consecutive active days ending at `anchor` (0 if the anchor day is inactive)."""
    streak = 0
    for bucket in reversed(days):
        if bucket.day > anchor:
            continue
        if not bucket.is_active:
            break
        streak += 1
    return streak


def _optimal(buckets: Sequence[Union[HourBucket, DayBucket]]):
    # max() keeps the first of equal elements, i.e. the earliest bucket.
    best = max(buckets, key=lambda b: b.focus_time, default=None)
    if best is None or best.focus_time == 0:
        return None
    return best


def compute_stats(
    sessions: Iterable[SessionRecord],
    window: PeriodWindow,
    *,
    today: Optional[date] = None,
) -> PeriodStats:
    """Aggregate sessions started inside `window`.

    Sessions outside the window are ignored. `today` anchors the current streak of
    monthly windows; without it the window's last day is used.
    An empty input yields zero counts and zero-filled buckets.
    """
    tz = resolve_timezone(window.timezone)
    local_sessions = []
    for session in sessions:
        local_start = to_local(session.started_at, tz)
        if window.start <= local_start < window.end:
            local_sessions.append((local_start, session))
    local_sessions.sort(key=lambda pair: pair[0])
    in_window = [session for _, session in local_sessions]

    total = len(in_window)
    completed = sum(1 for s in in_window if is_completed(s))
    total_focus = sum(focus_minutes(s) for s in in_window)
    period = PeriodType(window.period)

    stats = PeriodStats(
        window=window,
        total_sessions=total,
        completed_sessions=completed,
        total_focus_time=total_focus,
        average_session_length=round(total_focus / completed, 1) if completed else 0.0,
        completion_rate=_percent(completed, total),
        goals=_goal_breakdown(in_window, total_focus),
    )

    if period == PeriodType.DAILY:
        stats.hourly = _hour_buckets(local_sessions)
        stats.active_days = 1 if completed else 0
        stats.optimal_focus_time = _optimal(stats.hourly)
        return stats

    days = _day_buckets(local_sessions, window)
    stats.daily = days
    stats.active_days = sum(1 for d in days if d.is_active)
    stats.optimal_focus_time = _optimal(days)
    if total_focus > 0:
        stats.best_day = max(days, key=lambda d: d.focus_time)
        stats.worst_day = min(days, key=lambda d: d.focus_time)

    if period == PeriodType.MONTHLY:
        stats.longest_streak = longest_streak(days)
        anchor = window.last_day if today is None else min(today, window.last_day)
        stats.current_streak = 0 if anchor < window.first_day else current_streak(days, anchor)
    return stats


def routine_profile(sessions: Iterable[SessionRecord], tz_name: Optional[str] = None) -> RoutineProfile:
    """Summarize focus habits across an arbitrary span (e.g. the last 30 days)."""
    tz = resolve_timezone(tz_name)
    local_sessions = sorted(
        ((to_local(s.started_at, tz), s) for s in sessions),
        key=lambda pair: pair[0],
    )
    all_sessions = [s for _, s in local_sessions]
    total = len(all_sessions)
    completed = sum(1 for s in all_sessions if is_completed(s))
    total_focus = sum(focus_minutes(s) for s in all_sessions)

    hourly = _hour_buckets(local_sessions)
    peak = _optimal(hourly)
    ranked = sorted((b for b in hourly if b.focus_time > 0), key=lambda b: (-b.focus_time, b.hour))
    active_days = {local.date() for local, s in local_sessions if is_completed(s)}

    return RoutineProfile(
        total_sessions=total,
        completed_sessions=completed,
        total_focus_time=total_focus,
        average_session_length=round(total_focus / completed, 1) if completed else 0.0,
        completion_rate=_percent(completed, total),
        active_days=len(active_days),
        peak_hour=peak.hour if peak else None,
        productive_hours=[b.hour for b in ranked[:3]],
        top_goals=_goal_breakdown(all_sessions, total_focus)[:3],
    )
