from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import EntrySource, EntryStatus


@dataclass(frozen=True)
class TimeEntry:
    entry_id: int
    user_id: int
    work_date: date
    company_id: Optional[int] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    break_minutes: int = 0
    duration_minutes: int = 0
    status: EntryStatus = EntryStatus.DRAFT
    source: EntrySource = EntrySource.MANUAL
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_open_timer(self) -> bool:
        return self.source == EntrySource.TIMER and self.start_at is not None and self.end_at is None

    @property
    def has_interval(self) -> bool:
        return self.start_at is not None and self.end_at is not None

    def overlaps(self, start_at: datetime, end_at: datetime) -> bool:
        """Inclusive on both ends: entries that only touch still count as overlapping."""
        if not self.has_interval:
            return False
        return self.start_at <= end_at and self.end_at >= start_at


@dataclass(frozen=True)
class NewTimeEntry:
    user_id: int
    work_date: date
    company_id: Optional[int]
    start_at: Optional[datetime]
    end_at: Optional[datetime]
    break_minutes: int
    duration_minutes: int
    status: EntryStatus = EntryStatus.DRAFT
    source: EntrySource = EntrySource.MANUAL
    notes: Optional[str] = None
