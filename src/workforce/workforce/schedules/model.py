from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Optional


@dataclass(frozen=True)
class ScheduleDay:
    weekday: int  # ISO: Monday=1 .. Sunday=7
    work_start: Optional[time] = None
    work_end: Optional[time] = None
    lunch_start: Optional[time] = None
    lunch_end: Optional[time] = None
    is_day_off: bool = False


@dataclass(frozen=True)
class Schedule:
    schedule_id: int
    user_id: int
    name: str
    timezone: str
    is_default: bool
    days: tuple[ScheduleDay, ...] = ()

    def day(self, weekday: int) -> Optional[ScheduleDay]:
        for d in self.days:
            if d.weekday == weekday:
                return d
        return None


@dataclass(frozen=True)
class WorkingHours:
    work_start: time
    work_end: time
    lunch_start: Optional[time] = None
    lunch_end: Optional[time] = None
