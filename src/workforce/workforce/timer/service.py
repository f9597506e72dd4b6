from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_local, whole_minutes_between
from ..common.validators import require_non_negative
from ..companies.repository import CompanyRepository
from ..core.enums import EntrySource, EntryStatus
from ..core.exceptions import ConflictError, InvalidStateError, NotFoundError, UnsupportedOperationError
from ..time_entries.model import NewTimeEntry, TimeEntry
from ..time_entries.repository import TimeEntryRepository
from .model import TimerStatus

logger = logging.getLogger(__name__)


def _snapshot(entry: TimeEntry, *, now: datetime) -> TimerStatus:
    end = entry.end_at or now
    elapsed = max(0, whole_minutes_between(entry.start_at, end))
    if entry.end_at is None:
        current = max(0, elapsed - entry.break_minutes)
    else:
        current = entry.duration_minutes
    return TimerStatus(
        is_active=entry.end_at is None,
        entry_id=entry.entry_id,
        work_date=entry.work_date,
        started_at=entry.start_at,
        ended_at=entry.end_at,
        elapsed_minutes=elapsed,
        current_duration=current,
        break_minutes=entry.break_minutes,
        company_id=entry.company_id,
        notes=entry.notes,
    )


class TimerService:
    """Use case: one live timer per user, stored as an open TIMER entry (start set, end empty)."""

    def __init__(
        self,
        entries: TimeEntryRepository,
        companies: CompanyRepository,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._entries = entries
        self._companies = companies
        self._clock = clock

    def _active_or_fail(self, user_id: int) -> TimeEntry:
        active = self._entries.find_open_timer(user_id=int(user_id))
        if not active:
            raise InvalidStateError("No active timer found")
        return active

    def start_timer(self, user_id: int, *, company_id: Optional[int] = None, notes: Optional[str] = None) -> TimerStatus:
        if self._entries.find_open_timer(user_id=int(user_id)):
            raise InvalidStateError("Timer is already running")
        if company_id is not None and not self._companies.exists(int(company_id)):
            raise NotFoundError("Company not found")

        now = self._clock()
        try:
            entry_id = self._entries.create(
                NewTimeEntry(
                    user_id=int(user_id),
                    work_date=now.date(),
                    company_id=int(company_id) if company_id is not None else None,
                    start_at=now,
                    end_at=None,
                    break_minutes=0,
                    duration_minutes=0,
                    status=EntryStatus.DRAFT,
                    source=EntrySource.TIMER,
                    notes=(notes or "").strip() or None,
                )
            )
        except ConflictError:
            # Another request opened a timer between our check and the insert.
            raise InvalidStateError("Timer is already running")

        logger.info("Timer started: user=%s entry=%s", user_id, entry_id)
        entry = self._entries.get_by_id(entry_id)
        return _snapshot(entry, now=now)

    def stop_timer(self, user_id: int, *, break_minutes: int = 0, notes: Optional[str] = None) -> TimerStatus:
        active = self._active_or_fail(user_id)
        break_minutes = require_non_negative(break_minutes, "Break minutes") or 0

        now = self._clock()
        elapsed = max(0, whole_minutes_between(active.start_at, now))
        stopped = replace(
            active,
            end_at=now,
            break_minutes=break_minutes,
            duration_minutes=max(0, elapsed - break_minutes),
            notes=(notes or "").strip() or active.notes,
        )
        if not self._entries.close_timer(
            entry_id=stopped.entry_id,
            end_at=stopped.end_at,
            break_minutes=stopped.break_minutes,
            duration_minutes=stopped.duration_minutes,
            notes=stopped.notes,
        ):
            raise InvalidStateError("No active timer found")

        logger.info("Timer stopped: user=%s entry=%s minutes=%s", user_id, active.entry_id, stopped.duration_minutes)
        return _snapshot(self._entries.get_by_id(active.entry_id) or stopped, now=now)

    def get_timer_status(self, user_id: int) -> Optional[TimerStatus]:
        active = self._entries.find_open_timer(user_id=int(user_id))
        if not active:
            return None
        return _snapshot(active, now=self._clock())

    def cancel_timer(self, user_id: int) -> None:
        active = self._active_or_fail(user_id)
        self._entries.delete(entry_id=active.entry_id)
        logger.info("Timer cancelled: user=%s entry=%s", user_id, active.entry_id)

    def pause_timer(self, user_id: int) -> TimerStatus:
        raise UnsupportedOperationError("Pause functionality not implemented")

    def resume_timer(self, user_id: int) -> TimerStatus:
        raise UnsupportedOperationError("Resume functionality not implemented")
