from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, normalize_mysql_time
from .model import Schedule, ScheduleDay
from .repository import ScheduleRepository

_SCHEDULE_COLUMNS = "schedule_id, user_id, name, timezone, is_default"


def _insert_days(cur, schedule_id: int, days: Sequence[ScheduleDay]) -> None:
    if not days:
        return
    cur.executemany(
        """
        INSERT INTO schedule_days(schedule_id, weekday, work_start, work_end, lunch_start, lunch_end, is_day_off)
        VALUES(%s,%s,%s,%s,%s,%s,%s)
        """,
        [
            (
                int(schedule_id),
                int(d.weekday),
                d.work_start,
                d.work_end,
                d.lunch_start,
                d.lunch_end,
                1 if d.is_day_off else 0,
            )
            for d in days
        ],
    )


class MySQLScheduleRepository(ScheduleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _load(self, cur, headers: list[dict]) -> list[Schedule]:
        if not headers:
            return []
        ids = [int(h["schedule_id"]) for h in headers]
        cur.execute(
            f"""
            SELECT schedule_id, weekday, work_start, work_end, lunch_start, lunch_end, is_day_off
            FROM schedule_days
            WHERE schedule_id IN ({in_clause(ids)})
            ORDER BY weekday ASC
            """,
            tuple(ids),
        )
        days_by_schedule: dict[int, list[ScheduleDay]] = {sid: [] for sid in ids}
        for r in fetchall(cur):
            days_by_schedule[int(r["schedule_id"])].append(
                ScheduleDay(
                    weekday=int(r["weekday"]),
                    work_start=normalize_mysql_time(r.get("work_start")),
                    work_end=normalize_mysql_time(r.get("work_end")),
                    lunch_start=normalize_mysql_time(r.get("lunch_start")),
                    lunch_end=normalize_mysql_time(r.get("lunch_end")),
                    is_day_off=bool(r.get("is_day_off")),
                )
            )

        return [
            Schedule(
                schedule_id=int(h["schedule_id"]),
                user_id=int(h["user_id"]),
                name=h["name"],
                timezone=h["timezone"],
                is_default=bool(h["is_default"]),
                days=tuple(days_by_schedule[int(h["schedule_id"])]),
            )
            for h in headers
        ]

    def get_by_id(self, *, schedule_id: int) -> Optional[Schedule]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SCHEDULE_COLUMNS} FROM schedules WHERE schedule_id=%s", (int(schedule_id),))
            header = fetchone(cur)
            if not header:
                return None
            return self._load(cur, [header])[0]

    def list_for_user(self, *, user_id: Optional[int] = None) -> Sequence[Schedule]:
        with db_cursor(self._conn_factory) as (_, cur):
            if user_id is None:
                cur.execute(f"SELECT {_SCHEDULE_COLUMNS} FROM schedules ORDER BY user_id, is_default DESC, name")
            else:
                cur.execute(
                    f"SELECT {_SCHEDULE_COLUMNS} FROM schedules WHERE user_id=%s ORDER BY is_default DESC, name",
                    (int(user_id),),
                )
            return self._load(cur, fetchall(cur))

    def get_default_for_user(self, *, user_id: int) -> Optional[Schedule]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_SCHEDULE_COLUMNS} FROM schedules WHERE user_id=%s AND is_default=1 LIMIT 1",
                (int(user_id),),
            )
            header = fetchone(cur)
            if not header:
                return None
            return self._load(cur, [header])[0]

    def create(self, *, user_id: int, name: str, timezone: str, is_default: bool, days: Sequence[ScheduleDay]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            if is_default:
                cur.execute(
                    "UPDATE schedules SET is_default=0 WHERE user_id=%s AND is_default=1",
                    (int(user_id),),
                )
            cur.execute(
                "INSERT INTO schedules(user_id, name, timezone, is_default) VALUES(%s,%s,%s,%s)",
                (int(user_id), name, timezone, 1 if is_default else 0),
            )
            schedule_id = int(cur.lastrowid)
            _insert_days(cur, schedule_id, days)
            return schedule_id

    def update(
        self,
        *,
        schedule_id: int,
        name: Optional[str] = None,
        timezone: Optional[str] = None,
        is_default: Optional[bool] = None,
        days: Optional[Sequence[ScheduleDay]] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT user_id FROM schedules WHERE schedule_id=%s FOR UPDATE", (int(schedule_id),))
            r = fetchone(cur)
            if not r:
                return False

            if is_default is True:
                cur.execute(
                    "UPDATE schedules SET is_default=0 WHERE user_id=%s AND schedule_id<>%s AND is_default=1",
                    (int(r["user_id"]), int(schedule_id)),
                )

            sets: list[str] = []
            params: list[object] = []
            if name is not None:
                sets.append("name=%s")
                params.append(name)
            if timezone is not None:
                sets.append("timezone=%s")
                params.append(timezone)
            if is_default is not None:
                sets.append("is_default=%s")
                params.append(1 if is_default else 0)
            if sets:
                cur.execute(
                    f"UPDATE schedules SET {', '.join(sets)} WHERE schedule_id=%s",
                    tuple(params + [int(schedule_id)]),
                )

            if days is not None:
                cur.execute("DELETE FROM schedule_days WHERE schedule_id=%s", (int(schedule_id),))
                _insert_days(cur, int(schedule_id), days)
            return True

    def delete(self, *, schedule_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM schedule_days WHERE schedule_id=%s", (int(schedule_id),))
            cur.execute("DELETE FROM schedules WHERE schedule_id=%s", (int(schedule_id),))
            return cur.rowcount > 0
