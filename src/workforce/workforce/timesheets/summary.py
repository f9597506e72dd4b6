from __future__ import annotations

from typing import Iterable, Mapping, Optional

from ..common.datetime_utils import minutes_to_hours
from ..core.constants import NO_COMPANY_LABEL
from ..core.enums import EntryStatus
from ..time_entries.model import TimeEntry
from .model import CompanyTotal, TimeSummary


def summarize(entries: Iterable[TimeEntry], company_names: Optional[Mapping[int, str]] = None) -> TimeSummary:
    """Aggregate entry durations: total, per status (minutes) and per company (first-seen order)."""

    company_names = company_names or {}
    total = 0
    count = 0
    by_status = {s.value: 0 for s in EntryStatus}
    by_company: dict[Optional[int], int] = {}

    for entry in entries:
        minutes = int(entry.duration_minutes or 0)
        total += minutes
        count += 1
        by_status[entry.status.value] += minutes
        by_company[entry.company_id] = by_company.get(entry.company_id, 0) + minutes

    return TimeSummary(
        total_minutes=total,
        total_hours=minutes_to_hours(total),
        entries_count=count,
        by_status=by_status,
        by_company=tuple(
            CompanyTotal(
                company_id=company_id,
                company_name=(
                    company_names.get(company_id, NO_COMPANY_LABEL) if company_id is not None else NO_COMPANY_LABEL
                ),
                minutes=minutes,
                hours=minutes_to_hours(minutes),
            )
            for company_id, minutes in by_company.items()
        ),
    )
