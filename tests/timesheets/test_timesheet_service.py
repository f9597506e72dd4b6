from __future__ import annotations

from datetime import date

import pytest

from fakes import FakeCompanyRepo, FakeTimeEntryRepo, FakeTimesheetRepo, FakeUserRepo
from src.workforce.workforce.core.enums import EntryStatus, TimesheetStatus
from src.workforce.workforce.core.exceptions import ConflictError, InvalidStateError, NotFoundError, ValidationError
from src.workforce.workforce.time_entries.service import TimeEntryService
from src.workforce.workforce.timesheets.service import TimesheetService

MONDAY = date(2025, 3, 3)
SUNDAY = date(2025, 3, 9)


@pytest.fixture()
def env():
    users = FakeUserRepo()
    users.add(1, display_name="Alice")
    users.add(2, display_name="Bob")
    companies = FakeCompanyRepo()
    companies.add(10, "Acme")
    entries = FakeTimeEntryRepo()
    time_entries = TimeEntryService(entries, users, companies)
    service = TimesheetService(FakeTimesheetRepo(), entries, users, companies)
    return service, time_entries


@pytest.mark.parametrize("day", [date(2025, 3, 3), date(2025, 3, 5), date(2025, 3, 8), date(2025, 3, 9)])
def test_any_day_of_week_normalizes_to_monday(env, day):
    service, _ = env
    view = service.create_timesheet(user_id=1, week_start_date=day)
    assert view.timesheet.week_start_date == MONDAY
    assert view.timesheet.week_end_date == SUNDAY


def test_monday_then_sunday_of_same_week_collide(env):
    service, _ = env
    service.create_timesheet(user_id=1, week_start_date=MONDAY)
    with pytest.raises(ConflictError):
        service.create_timesheet(user_id=1, week_start_date=SUNDAY)


def test_next_monday_is_a_new_week(env):
    service, _ = env
    service.create_timesheet(user_id=1, week_start_date=SUNDAY)
    view = service.create_timesheet(user_id=1, week_start_date=date(2025, 3, 10))
    assert view.timesheet.week_start_date == date(2025, 3, 10)


def test_unknown_user_is_not_found(env):
    service, _ = env
    with pytest.raises(NotFoundError):
        service.create_timesheet(user_id=99, week_start_date=MONDAY)


def test_summary_snapshot_and_live_view(env):
    service, time_entries = env
    for minutes in (120, 180, 60):
        time_entries.create_entry(user_id=1, work_date=date(2025, 3, 4), duration_minutes=minutes, company_id=10)
    time_entries.create_entry(user_id=1, work_date=date(2025, 3, 10), duration_minutes=500)

    view = service.create_timesheet(user_id=1, week_start_date=MONDAY)
    assert view.timesheet.total_minutes == 360
    assert view.summary.total_hours == 6.0
    assert [c.company_name for c in view.summary.by_company] == ["Acme"]

    time_entries.create_entry(user_id=1, work_date=SUNDAY, duration_minutes=30)
    live = service.get_timesheet(view.timesheet.timesheet_id)
    assert live.timesheet.total_minutes == 360
    assert live.summary.total_minutes == 390


def test_transition_guards(env):
    service, _ = env
    tid = service.create_timesheet(user_id=1, week_start_date=MONDAY).timesheet.timesheet_id

    with pytest.raises(InvalidStateError):
        service.approve_timesheet(tid)
    with pytest.raises(InvalidStateError):
        service.reject_timesheet(tid)

    assert service.submit_timesheet(tid).timesheet.status == TimesheetStatus.SUBMITTED
    with pytest.raises(InvalidStateError):
        service.submit_timesheet(tid)

    assert service.approve_timesheet(tid).timesheet.status == TimesheetStatus.APPROVED
    with pytest.raises(InvalidStateError):
        service.submit_timesheet(tid)
    with pytest.raises(InvalidStateError):
        service.reject_timesheet(tid)


def test_reject_from_submitted(env):
    service, _ = env
    tid = service.create_timesheet(user_id=1, week_start_date=MONDAY).timesheet.timesheet_id
    service.submit_timesheet(tid)
    assert service.reject_timesheet(tid).timesheet.status == TimesheetStatus.REJECTED
    with pytest.raises(InvalidStateError):
        service.approve_timesheet(tid)


def test_list_timesheets_respects_allowed_users(env):
    service, _ = env
    service.create_timesheet(user_id=1, week_start_date=MONDAY)
    service.create_timesheet(user_id=2, week_start_date=MONDAY)

    assert [v.timesheet.user_id for v in service.list_timesheets(user_ids={2})] == [2]
    assert len(service.list_timesheets()) == 2


def test_time_report_groups_by_user_with_overall_summary(env):
    service, time_entries = env
    time_entries.create_entry(user_id=1, work_date=MONDAY, duration_minutes=120, company_id=10)
    time_entries.create_entry(user_id=1, work_date=date(2025, 3, 4), duration_minutes=60)
    time_entries.create_entry(user_id=2, work_date=MONDAY, duration_minutes=180)
    time_entries.create_entry(user_id=2, work_date=date(2025, 4, 1), duration_minutes=999)

    report = service.generate_time_report(start_date=MONDAY, end_date=SUNDAY)

    assert report.summary.total_minutes == 360
    assert report.summary.total_hours == 6.0
    by_user = {u.display_name: u.summary.total_minutes for u in report.users}
    assert by_user == {"Alice": 180, "Bob": 180}


def test_time_report_filters_and_scope(env):
    service, time_entries = env
    e = time_entries.create_entry(user_id=1, work_date=MONDAY, duration_minutes=120)
    time_entries.submit_entry(e.entry_id)
    time_entries.create_entry(user_id=1, work_date=MONDAY, duration_minutes=30, company_id=10)
    time_entries.create_entry(user_id=2, work_date=MONDAY, duration_minutes=180)

    submitted = service.generate_time_report(start_date=MONDAY, end_date=SUNDAY, status=EntryStatus.SUBMITTED)
    assert submitted.summary.total_minutes == 120
    assert submitted.filters["status"] == "SUBMITTED"

    scoped = service.generate_time_report(start_date=MONDAY, end_date=SUNDAY, user_ids={2})
    assert [u.user_id for u in scoped.users] == [2]

    by_company = service.generate_time_report(start_date=MONDAY, end_date=SUNDAY, company_id=10)
    assert by_company.summary.total_minutes == 30


def test_time_report_rejects_inverted_range(env):
    service, _ = env
    with pytest.raises(ValidationError):
        service.generate_time_report(start_date=SUNDAY, end_date=MONDAY)


def test_time_report_counts_every_entry_in_a_busy_period(env):
    service, time_entries = env
    for user_id in (1, 2):
        for n in range(300):
            time_entries.create_entry(user_id=user_id, work_date=date(2025, 3, 3 + n % 7), duration_minutes=60)

    report = service.generate_time_report(start_date=MONDAY, end_date=SUNDAY)

    assert report.summary.entries_count == 600
    assert report.summary.total_minutes == 36000
    assert {u.user_id: u.summary.entries_count for u in report.users} == {1: 300, 2: 300}


def test_week_summary_counts_every_entry(env):
    service, time_entries = env
    for n in range(520):
        time_entries.create_entry(user_id=1, work_date=date(2025, 3, 3 + n % 7), duration_minutes=10)

    view = service.create_timesheet(user_id=1, week_start_date=MONDAY)

    assert view.timesheet.total_minutes == 5200
    assert view.summary.entries_count == 520
    assert len(view.entries) == 520
