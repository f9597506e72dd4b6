from __future__ import annotations

from datetime import date
from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import TimesheetStatus
from .model import Timesheet


class TimesheetRepository(Protocol):
    def get_by_id(self, timesheet_id: int) -> Optional[Timesheet]:
        raise NotImplementedError

    def get_for_week(self, *, user_id: int, week_start_date: date) -> Optional[Timesheet]:
        raise NotImplementedError

    def list_timesheets(
        self,
        *,
        user_ids: Optional[Iterable[int]] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[TimesheetStatus] = None,
    ) -> Sequence[Timesheet]:
        """Ordered by week_start_date, newest first. Dates filter on week_start_date."""

        raise NotImplementedError

    def create(
        self,
        *,
        user_id: int,
        week_start_date: date,
        week_end_date: date,
        total_minutes: int,
        total_hours: float,
    ) -> int:
        """Insert a DRAFT timesheet; ConflictError when one already exists for (user, week)."""

        raise NotImplementedError

    def update_status(self, *, timesheet_id: int, status: TimesheetStatus, expected_status: TimesheetStatus) -> bool:
        """Conditional transition: applied only while the stored status equals ``expected_status``."""

        raise NotImplementedError
