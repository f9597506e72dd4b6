from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Iterable, Optional, Sequence

from ..common.validators import require_non_negative
from ..companies.repository import CompanyRepository
from ..core.enums import EntrySource, EntryStatus
from ..core.exceptions import ConflictError, InvalidStateError, NotFoundError, ValidationError
from ..schedules.repository import WorkingHoursLookup
from ..users.repository import UserRepository
from .duration.factory import DurationStrategyFactory
from .model import NewTimeEntry, TimeEntry
from .repository import TimeEntryRepository

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = frozenset(
    {"work_date", "start_at", "end_at", "duration_minutes", "break_minutes", "company_id", "notes"}
)

_SUBMITTABLE = (EntryStatus.DRAFT, EntryStatus.REJECTED)


class TimeEntryService:
    """Use case: record, edit and move time entries through the approval workflow."""

    def __init__(
        self,
        entries: TimeEntryRepository,
        users: UserRepository,
        companies: CompanyRepository,
        working_hours: Optional[WorkingHoursLookup] = None,
        *,
        duration_factory: Optional[DurationStrategyFactory] = None,
    ):
        self._entries = entries
        self._users = users
        self._companies = companies
        self._working_hours = working_hours
        self._durations = duration_factory or DurationStrategyFactory()

    # -------- Validation helpers --------
    def _require_company(self, company_id: Optional[int]) -> Optional[int]:
        if company_id is None:
            return None
        if not self._companies.exists(int(company_id)):
            raise NotFoundError("Company not found")
        return int(company_id)

    def _check_overlap(
        self,
        *,
        user_id: int,
        work_date: date,
        start_at: Optional[datetime],
        end_at: Optional[datetime],
        exclude_entry_id: Optional[int] = None,
    ) -> None:
        if start_at is None or end_at is None:
            return
        other = self._entries.find_overlapping(
            user_id=user_id,
            work_date=work_date,
            start_at=start_at,
            end_at=end_at,
            exclude_entry_id=exclude_entry_id,
        )
        if other:
            raise ConflictError(
                f"Time entry overlaps with existing entry {other.entry_id}",
                conflicting_id=other.entry_id,
            )

    def _warn_outside_schedule(
        self,
        *,
        user_id: int,
        work_date: date,
        start_at: Optional[datetime],
        end_at: Optional[datetime],
    ) -> None:
        """Schedule bounds are guidance only: never blocks the write."""
        if self._working_hours is None or start_at is None or end_at is None:
            return

        try:
            hours = self._working_hours.get_working_hours_for_date(user_id, work_date)
            if not hours:
                return
            if start_at.time() < hours.work_start or end_at.time() > hours.work_end:
                logger.warning(
                    "Time entry outside working hours: user=%s date=%s %s-%s vs %s-%s",
                    user_id,
                    work_date,
                    start_at.strftime("%H:%M"),
                    end_at.strftime("%H:%M"),
                    hours.work_start.strftime("%H:%M"),
                    hours.work_end.strftime("%H:%M"),
                )
        except Exception as e:
            logger.warning("Could not validate against schedule: user=%s date=%s error=%s", user_id, work_date, e)

    # -------- Commands --------
    def create_entry(
        self,
        *,
        user_id: int,
        work_date: date,
        start_at: Optional[datetime] = None,
        end_at: Optional[datetime] = None,
        duration_minutes: Optional[int] = None,
        break_minutes: int = 0,
        company_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> TimeEntry:
        if not self._users.exists(int(user_id)):
            raise NotFoundError("User not found")
        company_id = self._require_company(company_id)
        break_minutes = require_non_negative(break_minutes, "Break minutes") or 0

        duration = self._durations.resolve(
            start_at=start_at,
            end_at=end_at,
            break_minutes=break_minutes,
            duration_minutes=duration_minutes,
        )

        self._check_overlap(user_id=int(user_id), work_date=work_date, start_at=start_at, end_at=end_at)
        self._warn_outside_schedule(user_id=int(user_id), work_date=work_date, start_at=start_at, end_at=end_at)

        entry_id = self._entries.create(
            NewTimeEntry(
                user_id=int(user_id),
                work_date=work_date,
                company_id=company_id,
                start_at=start_at,
                end_at=end_at,
                break_minutes=break_minutes,
                duration_minutes=duration,
                status=EntryStatus.DRAFT,
                source=EntrySource.MANUAL,
                notes=(notes or "").strip() or None,
            )
        )
        logger.info("Time entry created: id=%s user=%s date=%s minutes=%s", entry_id, user_id, work_date, duration)
        return self.get_entry(entry_id)

    def update_entry(self, entry_id: int, **changes: Any) -> TimeEntry:
        """Apply a partial update.

        Duration: an explicit ``duration_minutes`` is taken verbatim; otherwise it is re-derived only when
        start, end or break changed and the resulting entry has both start and end; otherwise the stored
        duration is kept, so edits to notes or company never touch a manual duration.
        """

        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unsupported fields: {', '.join(sorted(unknown))}")

        entry = self.get_entry(entry_id)
        if entry.status == EntryStatus.APPROVED:
            raise InvalidStateError("Cannot modify approved time entry")

        if "company_id" in changes:
            changes["company_id"] = self._require_company(changes["company_id"])
        if "break_minutes" in changes:
            changes["break_minutes"] = require_non_negative(changes["break_minutes"], "Break minutes") or 0
        if "notes" in changes:
            changes["notes"] = (changes["notes"] or "").strip() or None
        if changes.get("work_date") is None:
            changes.pop("work_date", None)

        manual = changes.pop("duration_minutes", None)
        updated = replace(entry, **changes)

        times_changed = "start_at" in changes or "end_at" in changes
        interval_changed = times_changed or "break_minutes" in changes
        if manual is not None:
            duration = self._durations.resolve(
                start_at=updated.start_at,
                end_at=updated.end_at,
                break_minutes=updated.break_minutes,
                duration_minutes=manual,
            )
        elif interval_changed and updated.has_interval:
            duration = self._durations.resolve(
                start_at=updated.start_at,
                end_at=updated.end_at,
                break_minutes=updated.break_minutes,
            )
        elif times_changed and (updated.start_at is not None or updated.end_at is not None) and not entry.is_open_timer:
            raise ValidationError("Both start and end time must be provided, or specify duration manually")
        else:
            duration = entry.duration_minutes
        updated = replace(updated, duration_minutes=duration)

        self._check_overlap(
            user_id=updated.user_id,
            work_date=updated.work_date,
            start_at=updated.start_at,
            end_at=updated.end_at,
            exclude_entry_id=updated.entry_id,
        )
        self._warn_outside_schedule(
            user_id=updated.user_id,
            work_date=updated.work_date,
            start_at=updated.start_at,
            end_at=updated.end_at,
        )

        if not self._entries.update(updated):
            # Approved (or removed) between read and write.
            raise InvalidStateError("Cannot modify approved time entry")
        logger.info("Time entry updated: id=%s minutes=%s", updated.entry_id, duration)
        return self.get_entry(updated.entry_id)

    def delete_entry(self, entry_id: int) -> None:
        entry = self.get_entry(entry_id)
        if entry.status == EntryStatus.APPROVED:
            raise InvalidStateError("Cannot delete approved time entry")
        if not self._entries.delete(entry_id=entry.entry_id):
            raise NotFoundError("Time entry not found")
        logger.info("Time entry deleted: id=%s user=%s", entry.entry_id, entry.user_id)

    def _transition(self, entry_id: int, *, to: EntryStatus, allowed: Iterable[EntryStatus], message: str) -> TimeEntry:
        allowed = tuple(allowed)
        entry = self.get_entry(entry_id)
        if entry.status not in allowed:
            raise InvalidStateError(message)
        if not self._entries.update_status(entry_id=entry.entry_id, status=to, expected_statuses=allowed):
            raise InvalidStateError(message)
        logger.info("Time entry %s: %s -> %s", entry.entry_id, entry.status.value, to.value)
        return self.get_entry(entry.entry_id)

    def submit_entry(self, entry_id: int) -> TimeEntry:
        entry = self.get_entry(entry_id)
        if entry.is_open_timer:
            raise InvalidStateError("Stop the running timer before submitting")
        return self._transition(
            entry_id,
            to=EntryStatus.SUBMITTED,
            allowed=_SUBMITTABLE,
            message="Only draft or rejected time entries can be submitted",
        )

    def approve_entry(self, entry_id: int) -> TimeEntry:
        return self._transition(
            entry_id,
            to=EntryStatus.APPROVED,
            allowed=(EntryStatus.SUBMITTED,),
            message="Only submitted time entries can be approved",
        )

    def reject_entry(self, entry_id: int) -> TimeEntry:
        return self._transition(
            entry_id,
            to=EntryStatus.REJECTED,
            allowed=(EntryStatus.SUBMITTED,),
            message="Only submitted time entries can be rejected",
        )

    # -------- Queries --------
    def get_entry(self, entry_id: int) -> TimeEntry:
        entry = self._entries.get_by_id(int(entry_id))
        if not entry:
            raise NotFoundError("Time entry not found")
        return entry

    def list_entries(
        self,
        *,
        user_id: Optional[int] = None,
        user_ids: Optional[Iterable[int]] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        company_id: Optional[int] = None,
        status: Optional[EntryStatus] = None,
    ) -> Sequence[TimeEntry]:
        """``user_ids`` is the caller's allowed set (None = everyone); ``user_id`` narrows further."""

        if start_date and end_date and end_date < start_date:
            raise ValidationError("End date must be >= start date")

        allowed = None if user_ids is None else {int(u) for u in user_ids}
        if user_id is not None:
            allowed = {int(user_id)} if allowed is None else allowed & {int(user_id)}

        return self._entries.list_entries(
            user_ids=allowed,
            start_date=start_date,
            end_date=end_date,
            company_id=company_id,
            status=status,
        )
