from __future__ import annotations

from datetime import datetime
from typing import Optional

from ...common.datetime_utils import whole_minutes_between
from ...core.exceptions import ValidationError
from .base import DurationStrategy


class IntervalDurationStrategy(DurationStrategy):
    """Whole minutes between start and end, minus the break, floored at zero."""

    def resolve(
        self,
        *,
        start_at: Optional[datetime],
        end_at: Optional[datetime],
        break_minutes: int,
        duration_minutes: Optional[int],
    ) -> int:
        if start_at is None or end_at is None:
            raise ValidationError("Both start and end time must be provided, or specify duration manually")
        if start_at >= end_at:
            raise ValidationError("End time must be after start time")
        return max(0, whole_minutes_between(start_at, end_at) - int(break_minutes or 0))
