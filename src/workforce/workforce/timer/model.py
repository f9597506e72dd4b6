from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True)
class TimerStatus:
    """Snapshot of a timer entry; ``is_active`` is False once stopped."""

    is_active: bool
    entry_id: int
    work_date: date
    started_at: datetime
    ended_at: Optional[datetime]
    elapsed_minutes: int
    current_duration: int
    break_minutes: int = 0
    company_id: Optional[int] = None
    notes: Optional[str] = None
