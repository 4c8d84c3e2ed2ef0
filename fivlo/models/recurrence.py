"""Recurrence rule model for FIVLO task templates.

A rule is attached to a task template and expanded into dated task instances
(see `fivlo.recurrence.expand`).
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class RepeatType(str, Enum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class Weekday(str, Enum):
    MON = "mon"
    TUE = "tue"
    WED = "wed"
    THU = "thu"
    FRI = "fri"
    SAT = "sat"
    SUN = "sun"


# Python weekday: Monday=0 ... Sunday=6
WEEKDAY_ORDER: List[Weekday] = [
    Weekday.MON,
    Weekday.TUE,
    Weekday.WED,
    Weekday.THU,
    Weekday.FRI,
    Weekday.SAT,
    Weekday.SUN,
]


def weekday_of(d: date) -> Weekday:
    return WEEKDAY_ORDER[d.weekday()]


class RecurrenceRule(BaseModel):
    """Repeat definition for a task template.

    Notes:
    - `start_date` is the template's target date and the first possible occurrence.
    - `end_date` is inclusive and required for every type except `none`.
    - `weekdays` is only meaningful for weekly rules.
    """

    type: RepeatType = RepeatType.NONE
    start_date: date
    end_date: Optional[date] = None
    weekdays: List[Weekday] = Field(
        default_factory=list, description="For weekly rules: weekdays on which the task occurs"
    )

    @field_validator("weekdays")
    @classmethod
    def _dedupe_weekdays(cls, v):
        # Deduplicate but preserve order
        seen = set()
        out: List[Weekday] = []
        for day in v or []:
            if day not in seen:
                seen.add(day)
                out.append(day)
        return out
