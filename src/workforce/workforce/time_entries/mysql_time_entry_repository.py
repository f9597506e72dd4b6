from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import EntrySource, EntryStatus
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import conflict_on_duplicate, db_cursor, fetchall, fetchone, in_clause
from .model import NewTimeEntry, TimeEntry
from .repository import TimeEntryRepository

_COLUMNS = (
    "entry_id, user_id, company_id, work_date, start_at, end_at, break_minutes, "
    "duration_minutes, status, source, notes, created_at, updated_at"
)

_OPEN_TIMER_CONFLICT = "Timer is already running"


def _row_to_entry(r: Dict[str, Any]) -> TimeEntry:
    return TimeEntry(
        entry_id=int(r["entry_id"]),
        user_id=int(r["user_id"]),
        company_id=int(r["company_id"]) if r.get("company_id") is not None else None,
        work_date=r["work_date"],
        start_at=r.get("start_at"),
        end_at=r.get("end_at"),
        break_minutes=int(r.get("break_minutes") or 0),
        duration_minutes=int(r.get("duration_minutes") or 0),
        status=EntryStatus(r["status"]),
        source=EntrySource(r["source"]),
        notes=r.get("notes"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


def _find_overlapping(
    cur,
    *,
    user_id: int,
    work_date: date,
    start_at: datetime,
    end_at: datetime,
    exclude_entry_id: Optional[int],
) -> Optional[TimeEntry]:
    sql = f"""
        SELECT {_COLUMNS}
        FROM time_entries
        WHERE user_id=%s
          AND work_date=%s
          AND start_at IS NOT NULL
          AND end_at IS NOT NULL
          AND start_at <= %s
          AND end_at >= %s
    """
    params: List[Any] = [int(user_id), work_date, end_at, start_at]
    if exclude_entry_id is not None:
        sql += " AND entry_id <> %s"
        params.append(int(exclude_entry_id))
    sql += " ORDER BY start_at ASC LIMIT 1"

    cur.execute(sql, tuple(params))
    r = fetchone(cur)
    return _row_to_entry(r) if r else None


def _lock_user(cur, user_id: int) -> None:
    # Serializes writes of one user's entries until commit.
    cur.execute("SELECT user_id FROM users WHERE user_id=%s FOR UPDATE", (int(user_id),))
    fetchone(cur)


def _guard_overlap(cur, *, user_id: int, work_date: date, start_at, end_at, exclude_entry_id=None) -> None:
    if start_at is None or end_at is None:
        return
    other = _find_overlapping(
        cur,
        user_id=user_id,
        work_date=work_date,
        start_at=start_at,
        end_at=end_at,
        exclude_entry_id=exclude_entry_id,
    )
    if other:
        raise ConflictError(
            f"Time entry overlaps with existing entry {other.entry_id}",
            conflicting_id=other.entry_id,
        )


class MySQLTimeEntryRepository(TimeEntryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, entry_id: int) -> Optional[TimeEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM time_entries WHERE entry_id=%s", (int(entry_id),))
            r = fetchone(cur)
            return _row_to_entry(r) if r else None

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
        where: List[str] = []
        params: List[Any] = []

        if user_ids is not None:
            ids = sorted({int(u) for u in user_ids})
            if not ids:
                return []
            where.append(f"user_id IN ({in_clause(ids)})")
            params.extend(ids)
        if start_date:
            where.append("work_date >= %s")
            params.append(start_date)
        if end_date:
            where.append("work_date <= %s")
            params.append(end_date)
        if company_id is not None:
            where.append("company_id=%s")
            params.append(int(company_id))
        if status is not None:
            where.append("status=%s")
            params.append(status.value)

        sql = f"SELECT {_COLUMNS} FROM time_entries"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY work_date ASC, start_at ASC, entry_id ASC"
        if limit is not None:
            sql += " LIMIT %s"
            params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_row_to_entry(r) for r in fetchall(cur)]

    def find_overlapping(
        self,
        *,
        user_id: int,
        work_date: date,
        start_at: datetime,
        end_at: datetime,
        exclude_entry_id: Optional[int] = None,
    ) -> Optional[TimeEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            return _find_overlapping(
                cur,
                user_id=user_id,
                work_date=work_date,
                start_at=start_at,
                end_at=end_at,
                exclude_entry_id=exclude_entry_id,
            )

    def find_open_timer(self, *, user_id: int) -> Optional[TimeEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM time_entries
                WHERE user_id=%s AND source=%s AND start_at IS NOT NULL AND end_at IS NULL
                ORDER BY start_at DESC
                LIMIT 1
                """,
                (int(user_id), EntrySource.TIMER.value),
            )
            r = fetchone(cur)
            return _row_to_entry(r) if r else None

    def create(self, entry: NewTimeEntry) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            _lock_user(cur, entry.user_id)
            _guard_overlap(
                cur,
                user_id=entry.user_id,
                work_date=entry.work_date,
                start_at=entry.start_at,
                end_at=entry.end_at,
            )
            # uq_time_entries_open_timer rejects a second open timer for the same user.
            with conflict_on_duplicate(_OPEN_TIMER_CONFLICT):
                cur.execute(
                    """
                    INSERT INTO time_entries(
                        user_id, company_id, work_date, start_at, end_at,
                        break_minutes, duration_minutes, status, source, notes
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        int(entry.user_id),
                        entry.company_id,
                        entry.work_date,
                        entry.start_at,
                        entry.end_at,
                        int(entry.break_minutes),
                        int(entry.duration_minutes),
                        entry.status.value,
                        entry.source.value,
                        entry.notes,
                    ),
                )
            return int(cur.lastrowid)

    def update(self, entry: TimeEntry) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            _lock_user(cur, entry.user_id)
            _guard_overlap(
                cur,
                user_id=entry.user_id,
                work_date=entry.work_date,
                start_at=entry.start_at,
                end_at=entry.end_at,
                exclude_entry_id=entry.entry_id,
            )
            with conflict_on_duplicate(_OPEN_TIMER_CONFLICT):
                cur.execute(
                    """
                    UPDATE time_entries
                    SET company_id=%s,
                        work_date=%s,
                        start_at=%s,
                        end_at=%s,
                        break_minutes=%s,
                        duration_minutes=%s,
                        notes=%s
                    WHERE entry_id=%s AND status<>%s
                    """,
                    (
                        entry.company_id,
                        entry.work_date,
                        entry.start_at,
                        entry.end_at,
                        int(entry.break_minutes),
                        int(entry.duration_minutes),
                        entry.notes,
                        int(entry.entry_id),
                        EntryStatus.APPROVED.value,
                    ),
                )
            return cur.rowcount > 0

    def close_timer(
        self,
        *,
        entry_id: int,
        end_at: datetime,
        break_minutes: int,
        duration_minutes: int,
        notes: Optional[str],
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE time_entries
                SET end_at=%s,
                    break_minutes=%s,
                    duration_minutes=%s,
                    notes=%s
                WHERE entry_id=%s AND source=%s AND end_at IS NULL
                """,
                (
                    end_at,
                    int(break_minutes),
                    int(duration_minutes),
                    notes,
                    int(entry_id),
                    EntrySource.TIMER.value,
                ),
            )
            return cur.rowcount > 0

    def update_status(
        self,
        *,
        entry_id: int,
        status: EntryStatus,
        expected_statuses: Iterable[EntryStatus],
    ) -> bool:
        expected = [s.value for s in expected_statuses]
        if not expected:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE time_entries SET status=%s WHERE entry_id=%s AND status IN ({in_clause(expected)})",
                (status.value, int(entry_id), *expected),
            )
            return cur.rowcount > 0

    def delete(self, *, entry_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM time_entries WHERE entry_id=%s", (int(entry_id),))
            return cur.rowcount > 0
