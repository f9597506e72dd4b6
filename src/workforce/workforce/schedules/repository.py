from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import Schedule, ScheduleDay, WorkingHours


class ScheduleRepository(Protocol):
    def get_by_id(self, *, schedule_id: int) -> Optional[Schedule]:
        raise NotImplementedError

    def list_for_user(self, *, user_id: Optional[int] = None) -> Sequence[Schedule]:
        raise NotImplementedError

    def get_default_for_user(self, *, user_id: int) -> Optional[Schedule]:
        raise NotImplementedError

    def create(
        self,
        *,
        user_id: int,
        name: str,
        timezone: str,
        is_default: bool,
        days: Sequence[ScheduleDay],
    ) -> int:
        """Create schedule + days atomically.

        When ``is_default`` is set, the user's other schedules lose the flag in the same transaction.
        Returns schedule_id.
        """

        raise NotImplementedError

    def update(
        self,
        *,
        schedule_id: int,
        name: Optional[str] = None,
        timezone: Optional[str] = None,
        is_default: Optional[bool] = None,
        days: Optional[Sequence[ScheduleDay]] = None,
    ) -> bool:
        """Update header fields and, when ``days`` is given, replace all days atomically."""

        raise NotImplementedError

    def delete(self, *, schedule_id: int) -> bool:
        raise NotImplementedError


class WorkingHoursLookup(Protocol):
    """What time tracking needs from schedules."""

    def get_working_hours_for_date(self, user_id: int, work_date: date) -> Optional[WorkingHours]:
        raise NotImplementedError
