from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ...core.exceptions import ValidationError
from .base import DurationStrategy
from .interval_strategy import IntervalDurationStrategy
from .manual_strategy import ManualDurationStrategy


@dataclass
class DurationStrategyFactory:
    """Factory Pattern: pick the duration rule from what the caller supplied.

    Priority: manual duration, then start/end interval. Half an interval or nothing at all is rejected.
    """

    def for_input(
        self,
        *,
        start_at: Optional[datetime],
        end_at: Optional[datetime],
        duration_minutes: Optional[int],
    ) -> DurationStrategy:
        if duration_minutes is not None:
            return ManualDurationStrategy()
        if start_at is not None and end_at is not None:
            return IntervalDurationStrategy()
        if start_at is not None or end_at is not None:
            raise ValidationError("Both start and end time must be provided, or specify duration manually")
        raise ValidationError("Either provide start/end times or manual duration")

    def resolve(
        self,
        *,
        start_at: Optional[datetime],
        end_at: Optional[datetime],
        break_minutes: int = 0,
        duration_minutes: Optional[int] = None,
    ) -> int:
        strategy = self.for_input(start_at=start_at, end_at=end_at, duration_minutes=duration_minutes)
        return strategy.resolve(
            start_at=start_at,
            end_at=end_at,
            break_minutes=break_minutes,
            duration_minutes=duration_minutes,
        )
