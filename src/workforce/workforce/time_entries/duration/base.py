from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional


class DurationStrategy(ABC):
    """Strategy Pattern: encapsulate how a time entry's duration is obtained."""

    @abstractmethod
    def resolve(
        self,
        *,
        start_at: Optional[datetime],
        end_at: Optional[datetime],
        break_minutes: int,
        duration_minutes: Optional[int],
    ) -> int:
        raise NotImplementedError
