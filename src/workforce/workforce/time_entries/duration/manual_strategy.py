from __future__ import annotations

from datetime import datetime
from typing import Optional

from ...core.exceptions import ValidationError
from .base import DurationStrategy


class ManualDurationStrategy(DurationStrategy):
    """Explicit duration wins; start/end are kept as context and not checked against it."""

    def resolve(
        self,
        *,
        start_at: Optional[datetime],
        end_at: Optional[datetime],
        break_minutes: int,
        duration_minutes: Optional[int],
    ) -> int:
        if duration_minutes is None:
            raise ValidationError("Duration is required")
        if int(duration_minutes) < 0:
            raise ValidationError("Duration must be >= 0")
        return int(duration_minutes)
