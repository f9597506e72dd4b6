from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..core.enums import TimesheetStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import conflict_on_duplicate, db_cursor, fetchall, fetchone, in_clause
from .model import Timesheet
from .repository import TimesheetRepository

_COLUMNS = (
    "timesheet_id, user_id, week_start_date, week_end_date, status, total_minutes, total_hours, "
    "created_at, updated_at"
)


def _row_to_timesheet(r: Dict[str, Any]) -> Timesheet:
    return Timesheet(
        timesheet_id=int(r["timesheet_id"]),
        user_id=int(r["user_id"]),
        week_start_date=r["week_start_date"],
        week_end_date=r["week_end_date"],
        status=TimesheetStatus(r["status"]),
        total_minutes=int(r.get("total_minutes") or 0),
        total_hours=float(r.get("total_hours") or 0),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


class MySQLTimesheetRepository(TimesheetRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, timesheet_id: int) -> Optional[Timesheet]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM timesheets WHERE timesheet_id=%s", (int(timesheet_id),))
            r = fetchone(cur)
            return _row_to_timesheet(r) if r else None

    def get_for_week(self, *, user_id: int, week_start_date: date) -> Optional[Timesheet]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM timesheets WHERE user_id=%s AND week_start_date=%s",
                (int(user_id), week_start_date),
            )
            r = fetchone(cur)
            return _row_to_timesheet(r) if r else None

    def list_timesheets(
        self,
        *,
        user_ids: Optional[Iterable[int]] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[TimesheetStatus] = None,
    ) -> Sequence[Timesheet]:
        where: List[str] = []
        params: List[Any] = []

        if user_ids is not None:
            ids = sorted({int(u) for u in user_ids})
            if not ids:
                return []
            where.append(f"user_id IN ({in_clause(ids)})")
            params.extend(ids)
        if start_date:
            where.append("week_start_date >= %s")
            params.append(start_date)
        if end_date:
            where.append("week_start_date <= %s")
            params.append(end_date)
        if status is not None:
            where.append("status=%s")
            params.append(status.value)

        sql = f"SELECT {_COLUMNS} FROM timesheets"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY week_start_date DESC, timesheet_id DESC"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_row_to_timesheet(r) for r in fetchall(cur)]

    def create(
        self,
        *,
        user_id: int,
        week_start_date: date,
        week_end_date: date,
        total_minutes: int,
        total_hours: float,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            # uq_timesheets_user_week
            with conflict_on_duplicate("Timesheet for this week already exists"):
                cur.execute(
                    """
                    INSERT INTO timesheets(user_id, week_start_date, week_end_date, status, total_minutes, total_hours)
                    VALUES(%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        int(user_id),
                        week_start_date,
                        week_end_date,
                        TimesheetStatus.DRAFT.value,
                        int(total_minutes),
                        float(total_hours),
                    ),
                )
            return int(cur.lastrowid)

    def update_status(self, *, timesheet_id: int, status: TimesheetStatus, expected_status: TimesheetStatus) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE timesheets SET status=%s WHERE timesheet_id=%s AND status=%s",
                (status.value, int(timesheet_id), expected_status.value),
            )
            return cur.rowcount > 0
