from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Mapping, Optional

from ..core.enums import TimesheetStatus
from ..time_entries.model import TimeEntry


@dataclass(frozen=True)
class Timesheet:
    timesheet_id: int
    user_id: int
    week_start_date: date
    week_end_date: date
    status: TimesheetStatus = TimesheetStatus.DRAFT
    total_minutes: int = 0
    total_hours: float = 0.0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class CompanyTotal:
    company_id: Optional[int]
    company_name: str
    minutes: int
    hours: float


@dataclass(frozen=True)
class TimeSummary:
    total_minutes: int = 0
    total_hours: float = 0.0
    entries_count: int = 0
    # Minutes per status, not entry counts.
    by_status: Mapping[str, int] = field(default_factory=dict)
    by_company: tuple[CompanyTotal, ...] = ()


@dataclass(frozen=True)
class TimesheetView:
    """Stored timesheet plus a live summary recomputed from the week's entries."""

    timesheet: Timesheet
    summary: TimeSummary
    entries: tuple[TimeEntry, ...] = ()


@dataclass(frozen=True)
class UserReport:
    user_id: int
    display_name: Optional[str]
    summary: TimeSummary
    entries: tuple[TimeEntry, ...] = ()


@dataclass(frozen=True)
class TimeReport:
    start_date: date
    end_date: date
    summary: TimeSummary
    users: tuple[UserReport, ...] = ()
    filters: Mapping[str, object] = field(default_factory=dict)
