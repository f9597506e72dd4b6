from __future__ import annotations

import logging
from datetime import date
from typing import Optional, Sequence

from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_TIMEZONE
from ..core.exceptions import NotFoundError, ValidationError
from ..users.repository import UserRepository
from .model import Schedule, ScheduleDay, WorkingHours
from .repository import ScheduleRepository

logger = logging.getLogger(__name__)


def validate_schedule_days(days: Sequence[ScheduleDay]) -> None:
    weekdays = [d.weekday for d in days]
    if len(weekdays) != len(set(weekdays)):
        raise ValidationError("Duplicate weekdays are not allowed")

    for day in days:
        if day.weekday < 1 or day.weekday > 7:
            raise ValidationError("Weekday must be between 1 and 7")
        if day.is_day_off:
            continue

        if day.work_start and day.work_end and day.work_start >= day.work_end:
            raise ValidationError("Work start time must be before work end time")

        if day.lunch_start and day.lunch_end:
            if day.lunch_start >= day.lunch_end:
                raise ValidationError("Lunch start time must be before lunch end time")
            if day.work_start and day.work_end:
                if day.lunch_start <= day.work_start or day.lunch_end >= day.work_end:
                    raise ValidationError("Lunch time must be within working hours")


class ScheduleService:
    """Use case: weekly work schedules and the per-day working-hours lookup."""

    def __init__(self, schedules: ScheduleRepository, users: UserRepository, *, default_timezone: str = DEFAULT_TIMEZONE):
        self._schedules = schedules
        self._users = users
        self._default_timezone = default_timezone

    def create_schedule(
        self,
        *,
        user_id: int,
        name: str,
        days: Sequence[ScheduleDay],
        timezone: Optional[str] = None,
        is_default: bool = False,
    ) -> Schedule:
        if not self._users.exists(int(user_id)):
            raise NotFoundError("User not found")

        name = require_non_empty(name, "Schedule name")
        validate_schedule_days(days)

        schedule_id = self._schedules.create(
            user_id=int(user_id),
            name=name,
            timezone=(timezone or "").strip() or self._default_timezone,
            is_default=bool(is_default),
            days=list(days),
        )
        logger.info("Schedule created: id=%s user=%s default=%s", schedule_id, user_id, is_default)
        return self.get_schedule(schedule_id)

    def get_schedule(self, schedule_id: int) -> Schedule:
        schedule = self._schedules.get_by_id(schedule_id=int(schedule_id))
        if not schedule:
            raise NotFoundError("Schedule not found")
        return schedule

    def list_schedules(self, *, user_id: Optional[int] = None) -> Sequence[Schedule]:
        return self._schedules.list_for_user(user_id=user_id)

    def update_schedule(
        self,
        schedule_id: int,
        *,
        name: Optional[str] = None,
        timezone: Optional[str] = None,
        is_default: Optional[bool] = None,
        days: Optional[Sequence[ScheduleDay]] = None,
    ) -> Schedule:
        self.get_schedule(schedule_id)

        if name is not None:
            name = require_non_empty(name, "Schedule name")
        if days is not None:
            validate_schedule_days(days)

        if not self._schedules.update(
            schedule_id=int(schedule_id),
            name=name,
            timezone=timezone,
            is_default=is_default,
            days=list(days) if days is not None else None,
        ):
            raise NotFoundError("Schedule not found")
        return self.get_schedule(schedule_id)

    def delete_schedule(self, schedule_id: int) -> None:
        self.get_schedule(schedule_id)
        if not self._schedules.delete(schedule_id=int(schedule_id)):
            raise NotFoundError("Schedule not found")
        logger.info("Schedule deleted: id=%s", schedule_id)

    def get_default_schedule(self, user_id: int) -> Optional[Schedule]:
        return self._schedules.get_default_for_user(user_id=int(user_id))

    def get_working_hours_for_date(self, user_id: int, work_date: date) -> Optional[WorkingHours]:
        """Working window of the user's default schedule for that weekday.

        None means day off, no default schedule, or no work times configured.
        """

        schedule = self.get_default_schedule(user_id)
        if not schedule:
            return None

        day = schedule.day(work_date.isoweekday())
        if not day or day.is_day_off or not day.work_start or not day.work_end:
            return None

        return WorkingHours(
            work_start=day.work_start,
            work_end=day.work_end,
            lunch_start=day.lunch_start,
            lunch_end=day.lunch_end,
        )
