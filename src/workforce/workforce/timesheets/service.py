from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Optional, Sequence

from ..common.datetime_utils import week_end, week_start
from ..companies.repository import CompanyRepository
from ..core.enums import EntryStatus, TimesheetStatus
from ..core.exceptions import ConflictError, InvalidStateError, NotFoundError, ValidationError
from ..time_entries.model import TimeEntry
from ..time_entries.repository import TimeEntryRepository
from ..users.repository import UserRepository
from .model import Timesheet, TimeReport, TimeSummary, TimesheetView, UserReport
from .repository import TimesheetRepository
from .summary import summarize

logger = logging.getLogger(__name__)


class TimesheetService:
    """Use case: weekly timesheets, their approval workflow and cross-user time reports."""

    def __init__(
        self,
        timesheets: TimesheetRepository,
        entries: TimeEntryRepository,
        users: UserRepository,
        companies: CompanyRepository,
    ):
        self._timesheets = timesheets
        self._entries = entries
        self._users = users
        self._companies = companies

    def _summarize(self, entries: Sequence[TimeEntry]) -> TimeSummary:
        names = self._companies.get_names({e.company_id for e in entries if e.company_id is not None})
        return summarize(entries, names)

    def _week_entries(self, user_id: int, start: date, end: date) -> Sequence[TimeEntry]:
        return self._entries.list_entries(user_ids=[int(user_id)], start_date=start, end_date=end, limit=None)

    def _view(self, timesheet: Timesheet) -> TimesheetView:
        entries = self._week_entries(timesheet.user_id, timesheet.week_start_date, timesheet.week_end_date)
        return TimesheetView(timesheet=timesheet, summary=self._summarize(entries), entries=tuple(entries))

    # -------- Commands --------
    def create_timesheet(self, *, user_id: int, week_start_date: date) -> TimesheetView:
        if not self._users.exists(int(user_id)):
            raise NotFoundError("User not found")

        start = week_start(week_start_date)
        end = week_end(start)

        existing = self._timesheets.get_for_week(user_id=int(user_id), week_start_date=start)
        if existing:
            raise ConflictError("Timesheet for this week already exists", conflicting_id=existing.timesheet_id)

        summary = self._summarize(self._week_entries(int(user_id), start, end))
        timesheet_id = self._timesheets.create(
            user_id=int(user_id),
            week_start_date=start,
            week_end_date=end,
            total_minutes=summary.total_minutes,
            total_hours=summary.total_hours,
        )
        logger.info(
            "Timesheet created: id=%s user=%s week=%s minutes=%s",
            timesheet_id,
            user_id,
            start,
            summary.total_minutes,
        )
        return self.get_timesheet(timesheet_id)

    def _transition(
        self,
        timesheet_id: int,
        *,
        expected: TimesheetStatus,
        to: TimesheetStatus,
        message: str,
    ) -> TimesheetView:
        timesheet = self._get(timesheet_id)
        if timesheet.status != expected:
            raise InvalidStateError(message)
        if not self._timesheets.update_status(timesheet_id=timesheet.timesheet_id, status=to, expected_status=expected):
            raise InvalidStateError(message)
        logger.info("Timesheet %s: %s -> %s", timesheet.timesheet_id, expected.value, to.value)
        return self.get_timesheet(timesheet.timesheet_id)

    def submit_timesheet(self, timesheet_id: int) -> TimesheetView:
        return self._transition(
            timesheet_id,
            expected=TimesheetStatus.DRAFT,
            to=TimesheetStatus.SUBMITTED,
            message="Only draft timesheets can be submitted",
        )

    def approve_timesheet(self, timesheet_id: int) -> TimesheetView:
        return self._transition(
            timesheet_id,
            expected=TimesheetStatus.SUBMITTED,
            to=TimesheetStatus.APPROVED,
            message="Only submitted timesheets can be approved",
        )

    def reject_timesheet(self, timesheet_id: int) -> TimesheetView:
        return self._transition(
            timesheet_id,
            expected=TimesheetStatus.SUBMITTED,
            to=TimesheetStatus.REJECTED,
            message="Only submitted timesheets can be rejected",
        )

    # -------- Queries --------
    def _get(self, timesheet_id: int) -> Timesheet:
        timesheet = self._timesheets.get_by_id(int(timesheet_id))
        if not timesheet:
            raise NotFoundError("Timesheet not found")
        return timesheet

    def get_timesheet(self, timesheet_id: int) -> TimesheetView:
        return self._view(self._get(timesheet_id))

    def list_timesheets(
        self,
        *,
        user_id: Optional[int] = None,
        user_ids: Optional[Iterable[int]] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[TimesheetStatus] = None,
    ) -> Sequence[TimesheetView]:
        allowed = None if user_ids is None else {int(u) for u in user_ids}
        if user_id is not None:
            allowed = {int(user_id)} if allowed is None else allowed & {int(user_id)}

        rows = self._timesheets.list_timesheets(
            user_ids=allowed,
            start_date=start_date,
            end_date=end_date,
            status=status,
        )
        return [self._view(t) for t in rows]

    def generate_time_report(
        self,
        *,
        start_date: date,
        end_date: date,
        user_id: Optional[int] = None,
        company_id: Optional[int] = None,
        status: Optional[EntryStatus] = None,
        user_ids: Optional[Iterable[int]] = None,
    ) -> TimeReport:
        """Group entries in the period by user, plus one overall summary. Nothing is persisted."""

        if end_date < start_date:
            raise ValidationError("End date must be >= start date")

        allowed = None if user_ids is None else {int(u) for u in user_ids}
        if user_id is not None:
            allowed = {int(user_id)} if allowed is None else allowed & {int(user_id)}

        entries = self._entries.list_entries(
            user_ids=allowed,
            start_date=start_date,
            end_date=end_date,
            company_id=company_id,
            status=status,
            limit=None,
        )

        names = self._companies.get_names({e.company_id for e in entries if e.company_id is not None})
        grouped: dict[int, list[TimeEntry]] = {}
        for entry in entries:
            grouped.setdefault(entry.user_id, []).append(entry)

        users = []
        for uid, user_entries in grouped.items():
            user = self._users.get_by_id(uid)
            users.append(
                UserReport(
                    user_id=uid,
                    display_name=user.display_name if user else None,
                    summary=summarize(user_entries, names),
                    entries=tuple(user_entries),
                )
            )

        return TimeReport(
            start_date=start_date,
            end_date=end_date,
            summary=summarize(entries, names),
            users=tuple(users),
            filters={
                "user_id": user_id,
                "company_id": company_id,
                "status": status.value if status else None,
            },
        )
