from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional, Protocol, Sequence

from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import EntryStatus
from .model import NewTimeEntry, TimeEntry


class TimeEntryRepository(Protocol):
    def get_by_id(self, entry_id: int) -> Optional[TimeEntry]:
        raise NotImplementedError

    def list_entries(
        self,
        *,
        user_ids: Optional[Iterable[int]] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        company_id: Optional[int] = None,
        status: Optional[EntryStatus] = None,
        limit: Optional[int] = DEFAULT_LIST_LIMIT,
    ) -> Sequence[TimeEntry]:
        """Entries ordered by work_date, then start_at.

        ``user_ids=None`` means all users; ``limit=None`` returns every matching row.
        """

        raise NotImplementedError

    def find_overlapping(
        self,
        *,
        user_id: int,
        work_date: date,
        start_at: datetime,
        end_at: datetime,
        exclude_entry_id: Optional[int] = None,
    ) -> Optional[TimeEntry]:
        raise NotImplementedError

    def find_open_timer(self, *, user_id: int) -> Optional[TimeEntry]:
        raise NotImplementedError

    def create(self, entry: NewTimeEntry) -> int:
        """Insert and return entry_id.

        Raises ConflictError when the interval overlaps another entry of the same user and day,
        or when a second open timer would exist for the user.
        """

        raise NotImplementedError

    def update(self, entry: TimeEntry) -> bool:
        """Persist all mutable fields; overlap is re-checked excluding the entry itself."""

        raise NotImplementedError

    def close_timer(
        self,
        *,
        entry_id: int,
        end_at: datetime,
        break_minutes: int,
        duration_minutes: int,
        notes: Optional[str],
    ) -> bool:
        """Close an open timer entry. Not overlap-checked: entries logged while it ran stay valid.

        Returns False when the entry is missing or already closed.
        """

        raise NotImplementedError

    def update_status(
        self,
        *,
        entry_id: int,
        status: EntryStatus,
        expected_statuses: Iterable[EntryStatus],
    ) -> bool:
        """Conditional transition: only applied while the current status is one of ``expected_statuses``."""

        raise NotImplementedError

    def delete(self, *, entry_id: int) -> bool:
        raise NotImplementedError
