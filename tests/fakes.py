"""In-memory repositories shared by the service and controller tests."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta

from src.workforce.workforce.companies.model import Company
from src.workforce.workforce.core.enums import EntrySource, EntryStatus, PermissionLevel, TimesheetStatus
from src.workforce.workforce.core.exceptions import ConflictError
from src.workforce.workforce.rbac.model import Permission, PermissionKey, Role, RoleGrants, UserAuthContext
from src.workforce.workforce.schedules.model import Schedule
from src.workforce.workforce.time_entries.model import TimeEntry
from src.workforce.workforce.timesheets.model import Timesheet
from src.workforce.workforce.users.model import User


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: int) -> None:
        self.now = self.now + timedelta(minutes=minutes)


class FakeUserRepo:
    def __init__(self, users=()):
        self._users = {u.user_id: u for u in users}

    def add(self, user_id: int, email: str = None, display_name: str = None, password_hash: str = "x") -> User:
        user = User(
            user_id=user_id,
            email=email or f"user{user_id}@example.com",
            display_name=display_name or f"User {user_id}",
            password_hash=password_hash,
        )
        self._users[user_id] = user
        return user

    def get_by_id(self, user_id):
        return self._users.get(int(user_id))

    def get_by_email(self, email):
        for u in self._users.values():
            if u.email == email:
                return u
        return None

    def exists(self, user_id):
        return int(user_id) in self._users


class FakeCompanyRepo:
    def __init__(self):
        self._companies: dict[int, Company] = {}
        self._memberships: dict[int, set[int]] = {}

    def add(self, company_id: int, name: str, members=()) -> Company:
        company = Company(company_id=company_id, name=name)
        self._companies[company_id] = company
        for user_id in members:
            self._memberships.setdefault(int(user_id), set()).add(company_id)
        return company

    def get_by_id(self, company_id):
        return self._companies.get(int(company_id))

    def exists(self, company_id):
        return int(company_id) in self._companies

    def get_names(self, company_ids):
        return {int(c): self._companies[int(c)].name for c in company_ids if int(c) in self._companies}

    def list_company_ids_for_user(self, *, user_id):
        return sorted(self._memberships.get(int(user_id), set()))


class FakeRbacRepo:
    def __init__(self, users: FakeUserRepo):
        self._users = users
        self._next_id = 1
        self.roles: dict[int, Role] = {}
        self.permissions: dict[int, Permission] = {}
        self.links: dict[tuple[int, int], PermissionLevel] = {}
        self.user_roles: dict[int, list[int]] = {}

    def _new_id(self) -> int:
        nid = self._next_id
        self._next_id += 1
        return nid

    # helpers for tests
    def add_role(self, name: str, levels=None, *, is_system: bool = False) -> Role:
        role_id = self.create_role(name=name, description=None, is_system=is_system)
        for raw_key, level in (levels or {}).items():
            key = PermissionKey.parse(raw_key)
            perm = self.get_permission_by_key(key=key)
            if perm is None:
                self.create_permission(key=key, description=None)
                perm = self.get_permission_by_key(key=key)
            self.links[(role_id, perm.permission_id)] = PermissionLevel(level)
        return self.roles[role_id]

    def grant(self, user_id: int, *roles: Role) -> None:
        self.user_roles.setdefault(int(user_id), []).extend(r.role_id for r in roles)

    # graph
    def load_user_auth_context(self, *, user_id):
        if not self._users.exists(user_id):
            return None
        grants = []
        for role_id in self.user_roles.get(int(user_id), []):
            grants.append(RoleGrants(role=self.roles[role_id], levels=self.get_role_levels(role_id=role_id)))
        return UserAuthContext(user_id=int(user_id), roles=tuple(grants))

    # roles
    def get_role(self, *, role_id):
        return self.roles.get(int(role_id))

    def get_role_by_name(self, *, name):
        for r in self.roles.values():
            if r.name == name:
                return r
        return None

    def list_roles(self):
        return sorted(self.roles.values(), key=lambda r: r.name)

    def create_role(self, *, name, description, is_system=False):
        if self.get_role_by_name(name=name):
            raise ConflictError(f"Role with name '{name}' already exists")
        role_id = self._new_id()
        self.roles[role_id] = Role(role_id=role_id, name=name, description=description, is_system=is_system)
        return role_id

    def update_role(self, *, role_id, name, description):
        role = self.roles.get(int(role_id))
        if not role or role.is_system:
            return False
        self.roles[role.role_id] = replace(role, name=name, description=description)
        return True

    def delete_role(self, *, role_id):
        role = self.roles.pop(int(role_id), None)
        if role is None:
            return False
        self.links = {k: v for k, v in self.links.items() if k[0] != role.role_id}
        return True

    def count_role_users(self, *, role_id):
        return sum(1 for ids in self.user_roles.values() if int(role_id) in ids)

    # permissions
    def get_permission_by_key(self, *, key):
        for p in self.permissions.values():
            if p.key == key:
                return p
        return None

    def list_permissions(self):
        return list(self.permissions.values())

    def create_permission(self, *, key, description):
        permission_id = self._new_id()
        self.permissions[permission_id] = Permission(permission_id=permission_id, key=key, description=description)
        return permission_id

    # links
    def get_role_levels(self, *, role_id):
        return {
            self.permissions[pid].key: level
            for (rid, pid), level in self.links.items()
            if rid == int(role_id)
        }

    def upsert_role_levels(self, *, role_id, levels):
        for permission_id, level in levels.items():
            self.links[(int(role_id), int(permission_id))] = level

    def list_user_roles(self, *, user_id):
        return [self.roles[r] for r in self.user_roles.get(int(user_id), []) if r in self.roles]

    def replace_user_roles(self, *, user_id, role_ids):
        self.user_roles[int(user_id)] = [int(r) for r in role_ids]


class FakeScheduleRepo:
    def __init__(self):
        self._next_id = 1
        self.schedules: dict[int, Schedule] = {}

    def get_by_id(self, *, schedule_id):
        return self.schedules.get(int(schedule_id))

    def list_for_user(self, *, user_id=None):
        return [s for s in self.schedules.values() if user_id is None or s.user_id == int(user_id)]

    def get_default_for_user(self, *, user_id):
        for s in self.schedules.values():
            if s.user_id == int(user_id) and s.is_default:
                return s
        return None

    def _clear_default(self, user_id: int, keep: int) -> None:
        for sid, s in list(self.schedules.items()):
            if s.user_id == user_id and sid != keep and s.is_default:
                self.schedules[sid] = replace(s, is_default=False)

    def create(self, *, user_id, name, timezone, is_default, days):
        sid = self._next_id
        self._next_id += 1
        self.schedules[sid] = Schedule(
            schedule_id=sid,
            user_id=int(user_id),
            name=name,
            timezone=timezone,
            is_default=bool(is_default),
            days=tuple(days),
        )
        if is_default:
            self._clear_default(int(user_id), sid)
        return sid

    def update(self, *, schedule_id, name=None, timezone=None, is_default=None, days=None):
        s = self.schedules.get(int(schedule_id))
        if not s:
            return False
        s = replace(
            s,
            name=name if name is not None else s.name,
            timezone=timezone if timezone is not None else s.timezone,
            is_default=is_default if is_default is not None else s.is_default,
            days=tuple(days) if days is not None else s.days,
        )
        self.schedules[s.schedule_id] = s
        if s.is_default:
            self._clear_default(s.user_id, s.schedule_id)
        return True

    def delete(self, *, schedule_id):
        return self.schedules.pop(int(schedule_id), None) is not None


class FakeTimeEntryRepo:
    """Mirrors the MySQL adapter: overlap and open-timer rules are enforced on write."""

    def __init__(self):
        self._next_id = 1
        self.entries: dict[int, TimeEntry] = {}

    def get_by_id(self, entry_id):
        return self.entries.get(int(entry_id))

    def list_entries(self, *, user_ids=None, start_date=None, end_date=None, company_id=None, status=None, limit=500):
        rows = []
        for e in self.entries.values():
            if user_ids is not None and e.user_id not in set(user_ids):
                continue
            if start_date and e.work_date < start_date:
                continue
            if end_date and e.work_date > end_date:
                continue
            if company_id is not None and e.company_id != company_id:
                continue
            if status is not None and e.status != status:
                continue
            rows.append(e)
        rows.sort(key=lambda e: (e.work_date, e.start_at or datetime.min, e.entry_id))
        return rows if limit is None else rows[:limit]

    def find_overlapping(self, *, user_id, work_date, start_at, end_at, exclude_entry_id=None):
        for e in self.entries.values():
            if e.user_id != int(user_id) or e.work_date != work_date or e.entry_id == exclude_entry_id:
                continue
            if e.overlaps(start_at, end_at):
                return e
        return None

    def find_open_timer(self, *, user_id):
        for e in self.entries.values():
            if e.user_id == int(user_id) and e.is_open_timer:
                return e
        return None

    def _guard(self, entry, exclude_entry_id=None):
        if entry.start_at is not None and entry.end_at is not None:
            other = self.find_overlapping(
                user_id=entry.user_id,
                work_date=entry.work_date,
                start_at=entry.start_at,
                end_at=entry.end_at,
                exclude_entry_id=exclude_entry_id,
            )
            if other:
                raise ConflictError("Time entry overlaps with existing entry", conflicting_id=other.entry_id)
        if entry.source == EntrySource.TIMER and entry.start_at is not None and entry.end_at is None:
            open_timer = self.find_open_timer(user_id=entry.user_id)
            if open_timer and open_timer.entry_id != exclude_entry_id:
                raise ConflictError("Timer is already running")

    def create(self, entry):
        self._guard(entry)
        entry_id = self._next_id
        self._next_id += 1
        self.entries[entry_id] = TimeEntry(
            entry_id=entry_id,
            user_id=entry.user_id,
            work_date=entry.work_date,
            company_id=entry.company_id,
            start_at=entry.start_at,
            end_at=entry.end_at,
            break_minutes=entry.break_minutes,
            duration_minutes=entry.duration_minutes,
            status=entry.status,
            source=entry.source,
            notes=entry.notes,
        )
        return entry_id

    def update(self, entry):
        current = self.entries.get(entry.entry_id)
        if not current or current.status == EntryStatus.APPROVED:
            return False
        self._guard(entry, exclude_entry_id=entry.entry_id)
        self.entries[entry.entry_id] = replace(entry, status=current.status)
        return True

    def close_timer(self, *, entry_id, end_at, break_minutes, duration_minutes, notes):
        current = self.entries.get(int(entry_id))
        if not current or not current.is_open_timer:
            return False
        self.entries[current.entry_id] = replace(
            current,
            end_at=end_at,
            break_minutes=break_minutes,
            duration_minutes=duration_minutes,
            notes=notes,
        )
        return True

    def update_status(self, *, entry_id, status, expected_statuses):
        current = self.entries.get(int(entry_id))
        if not current or current.status not in tuple(expected_statuses):
            return False
        self.entries[current.entry_id] = replace(current, status=status)
        return True

    def delete(self, *, entry_id):
        return self.entries.pop(int(entry_id), None) is not None


class FakeTimesheetRepo:
    def __init__(self):
        self._next_id = 1
        self.timesheets: dict[int, Timesheet] = {}

    def get_by_id(self, timesheet_id):
        return self.timesheets.get(int(timesheet_id))

    def get_for_week(self, *, user_id, week_start_date):
        for t in self.timesheets.values():
            if t.user_id == int(user_id) and t.week_start_date == week_start_date:
                return t
        return None

    def list_timesheets(self, *, user_ids=None, start_date=None, end_date=None, status=None):
        rows = [
            t
            for t in self.timesheets.values()
            if (user_ids is None or t.user_id in set(user_ids))
            and (start_date is None or t.week_start_date >= start_date)
            and (end_date is None or t.week_start_date <= end_date)
            and (status is None or t.status == status)
        ]
        return sorted(rows, key=lambda t: (t.week_start_date, t.timesheet_id), reverse=True)

    def create(self, *, user_id, week_start_date, week_end_date, total_minutes, total_hours):
        if self.get_for_week(user_id=user_id, week_start_date=week_start_date):
            raise ConflictError("Timesheet for this week already exists")
        tid = self._next_id
        self._next_id += 1
        self.timesheets[tid] = Timesheet(
            timesheet_id=tid,
            user_id=int(user_id),
            week_start_date=week_start_date,
            week_end_date=week_end_date,
            status=TimesheetStatus.DRAFT,
            total_minutes=total_minutes,
            total_hours=total_hours,
        )
        return tid

    def update_status(self, *, timesheet_id, status, expected_status):
        t = self.timesheets.get(int(timesheet_id))
        if not t or t.status != expected_status:
            return False
        self.timesheets[t.timesheet_id] = replace(t, status=status)
        return True
