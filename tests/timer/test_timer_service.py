from __future__ import annotations

from datetime import datetime

import pytest

from fakes import FakeCompanyRepo, FakeTimeEntryRepo, FakeUserRepo, FixedClock
from src.workforce.workforce.core.enums import EntrySource, EntryStatus
from src.workforce.workforce.core.exceptions import InvalidStateError, NotFoundError, UnsupportedOperationError
from src.workforce.workforce.time_entries.service import TimeEntryService
from src.workforce.workforce.timer.service import TimerService


@pytest.fixture()
def env():
    clock = FixedClock(datetime(2025, 3, 3, 9, 0))
    entries = FakeTimeEntryRepo()
    companies = FakeCompanyRepo()
    companies.add(10, "Acme")
    return TimerService(entries, companies, clock=clock), entries, clock


def test_start_creates_open_timer_entry(env):
    service, entries, clock = env
    status = service.start_timer(1, company_id=10, notes="standup")

    entry = entries.get_by_id(status.entry_id)
    assert status.is_active
    assert entry.source == EntrySource.TIMER
    assert entry.status == EntryStatus.DRAFT
    assert entry.start_at == clock.now
    assert entry.end_at is None
    assert entry.duration_minutes == 0
    assert entry.work_date == clock.now.date()


def test_double_start_fails(env):
    service, _, _ = env
    service.start_timer(1)
    with pytest.raises(InvalidStateError, match="already running"):
        service.start_timer(1)


def test_timers_of_different_users_are_independent(env):
    service, _, _ = env
    service.start_timer(1)
    assert service.start_timer(2).is_active


def test_start_with_unknown_company_fails(env):
    service, _, _ = env
    with pytest.raises(NotFoundError):
        service.start_timer(1, company_id=99)


def test_status_reports_elapsed_and_working_minutes_without_persisting(env):
    service, entries, clock = env
    started = service.start_timer(1)
    clock.advance(95)

    status = service.get_timer_status(1)

    assert status.elapsed_minutes == 95
    assert status.current_duration == 95
    assert entries.get_by_id(started.entry_id).duration_minutes == 0


def test_status_without_timer_is_none(env):
    service, _, _ = env
    assert service.get_timer_status(1) is None


def test_stop_closes_timer_and_subtracts_break(env):
    service, entries, clock = env
    started = service.start_timer(1, notes="deep work")
    clock.advance(8 * 60)

    stopped = service.stop_timer(1, break_minutes=60)

    entry = entries.get_by_id(started.entry_id)
    assert not stopped.is_active
    assert entry.end_at == clock.now
    assert entry.duration_minutes == 420
    assert entry.break_minutes == 60
    assert entry.notes == "deep work"
    assert service.get_timer_status(1) is None


def test_stop_break_longer_than_elapsed_floors_at_zero(env):
    service, entries, clock = env
    started = service.start_timer(1)
    clock.advance(10)
    service.stop_timer(1, break_minutes=30)
    assert entries.get_by_id(started.entry_id).duration_minutes == 0


def test_stop_without_timer_fails(env):
    service, _, _ = env
    with pytest.raises(InvalidStateError, match="No active timer"):
        service.stop_timer(1)


def test_start_stop_start_succeeds(env):
    service, _, clock = env
    service.start_timer(1)
    clock.advance(30)
    service.stop_timer(1)
    clock.advance(5)

    assert service.start_timer(1).is_active


def test_cancel_hard_deletes_open_entry(env):
    service, entries, _ = env
    started = service.start_timer(1)

    service.cancel_timer(1)

    assert service.get_timer_status(1) is None
    assert entries.get_by_id(started.entry_id) is None


def test_cancel_without_timer_fails(env):
    service, _, _ = env
    with pytest.raises(InvalidStateError):
        service.cancel_timer(1)


def test_pause_and_resume_are_not_implemented(env):
    service, _, _ = env
    service.start_timer(1)
    with pytest.raises(UnsupportedOperationError):
        service.pause_timer(1)
    with pytest.raises(UnsupportedOperationError):
        service.resume_timer(1)


def test_stop_ignores_manual_entry_logged_inside_running_window(env):
    service, entries, clock = env
    users = FakeUserRepo()
    users.add(1)
    manual = TimeEntryService(entries, users, FakeCompanyRepo())

    started = service.start_timer(1)
    logged = manual.create_entry(
        user_id=1,
        work_date=clock.now.date(),
        start_at=datetime(2025, 3, 3, 10, 0),
        end_at=datetime(2025, 3, 3, 11, 0),
    )
    clock.advance(180)

    stopped = service.stop_timer(1)

    assert not stopped.is_active
    assert entries.get_by_id(started.entry_id).duration_minutes == 180
    assert entries.get_by_id(logged.entry_id).duration_minutes == 60
