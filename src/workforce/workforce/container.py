from __future__ import annotations

from dataclasses import dataclass

from .companies.mysql_company_repository import MySQLCompanyRepository
from .core.constants import DEFAULT_TIMEZONE
from .database.connection import DBConfig, DatabaseConnection
from .rbac.factory import ScopingPolicyFactory
from .rbac.guard import AuthorizationGuard
from .rbac.mysql_rbac_repository import MySQLRbacRepository
from .rbac.service import RbacService
from .schedules.mysql_schedule_repository import MySQLScheduleRepository
from .schedules.service import ScheduleService
from .time_entries.duration.factory import DurationStrategyFactory
from .time_entries.mysql_time_entry_repository import MySQLTimeEntryRepository
from .time_entries.service import TimeEntryService
from .timer.service import TimerService
from .timesheets.mysql_timesheet_repository import MySQLTimesheetRepository
from .timesheets.service import TimesheetService
from .users.mysql_user_repository import MySQLUserRepository
from .users.service import AuthService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    users_repo: MySQLUserRepository
    companies_repo: MySQLCompanyRepository
    rbac_repo: MySQLRbacRepository
    schedules_repo: MySQLScheduleRepository
    time_entries_repo: MySQLTimeEntryRepository
    timesheets_repo: MySQLTimesheetRepository

    guard: AuthorizationGuard
    auth_service: AuthService
    rbac_service: RbacService
    schedule_service: ScheduleService
    time_entry_service: TimeEntryService
    timer_service: TimerService
    timesheet_service: TimesheetService


def build_container(*, db_config: dict, default_timezone: str = DEFAULT_TIMEZONE) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
    )
    conn = DatabaseConnection.get_instance(config)

    users_repo = MySQLUserRepository(conn)
    companies_repo = MySQLCompanyRepository(conn)
    rbac_repo = MySQLRbacRepository(conn)
    schedules_repo = MySQLScheduleRepository(conn)
    time_entries_repo = MySQLTimeEntryRepository(conn)
    timesheets_repo = MySQLTimesheetRepository(conn)

    guard = AuthorizationGuard(rbac_repo, ScopingPolicyFactory.default(companies_repo))
    auth_service = AuthService(users_repo)
    rbac_service = RbacService(rbac_repo, users_repo)
    schedule_service = ScheduleService(schedules_repo, users_repo, default_timezone=default_timezone)
    time_entry_service = TimeEntryService(
        time_entries_repo,
        users_repo,
        companies_repo,
        schedule_service,
        duration_factory=DurationStrategyFactory(),
    )
    timer_service = TimerService(time_entries_repo, companies_repo)
    timesheet_service = TimesheetService(timesheets_repo, time_entries_repo, users_repo, companies_repo)

    return Container(
        conn=conn,
        users_repo=users_repo,
        companies_repo=companies_repo,
        rbac_repo=rbac_repo,
        schedules_repo=schedules_repo,
        time_entries_repo=time_entries_repo,
        timesheets_repo=timesheets_repo,
        guard=guard,
        auth_service=auth_service,
        rbac_service=rbac_service,
        schedule_service=schedule_service,
        time_entry_service=time_entry_service,
        timer_service=timer_service,
        timesheet_service=timesheet_service,
    )
