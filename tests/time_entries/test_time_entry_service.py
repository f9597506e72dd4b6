from __future__ import annotations

import logging
from datetime import date, datetime, time

import pytest

from fakes import FakeCompanyRepo, FakeScheduleRepo, FakeTimeEntryRepo, FakeUserRepo
from src.workforce.workforce.core.enums import EntrySource, EntryStatus
from src.workforce.workforce.core.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from src.workforce.workforce.schedules.model import ScheduleDay
from src.workforce.workforce.schedules.service import ScheduleService
from src.workforce.workforce.time_entries.service import TimeEntryService

DAY = date(2025, 3, 3)  # Monday


def at(hour: int, minute: int = 0) -> datetime:
    return datetime.combine(DAY, time(hour, minute))


class ExplodingLookup:
    def get_working_hours_for_date(self, user_id, work_date):
        raise RuntimeError("schedule store down")


@pytest.fixture()
def env():
    users = FakeUserRepo()
    users.add(1)
    users.add(2)
    companies = FakeCompanyRepo()
    companies.add(10, "Acme")
    entries = FakeTimeEntryRepo()
    schedules = ScheduleService(FakeScheduleRepo(), users)
    service = TimeEntryService(entries, users, companies, schedules)
    return service, entries, schedules


def test_create_from_interval(env):
    service, _, _ = env
    entry = service.create_entry(user_id=1, work_date=DAY, start_at=at(9), end_at=at(17), break_minutes=60)

    assert entry.duration_minutes == 420
    assert entry.status == EntryStatus.DRAFT
    assert entry.source == EntrySource.MANUAL


def test_manual_duration_is_kept_verbatim(env):
    service, _, _ = env
    entry = service.create_entry(user_id=1, work_date=DAY, start_at=at(9), end_at=at(10), duration_minutes=300)
    assert entry.duration_minutes == 300

    only_manual = service.create_entry(user_id=1, work_date=date(2025, 3, 4), duration_minutes=45)
    assert only_manual.duration_minutes == 45
    assert only_manual.start_at is None


def test_genuine_overlap_is_a_conflict(env):
    service, _, _ = env
    first = service.create_entry(user_id=1, work_date=DAY, start_at=at(9), end_at=at(12))

    with pytest.raises(ConflictError) as exc:
        service.create_entry(user_id=1, work_date=DAY, start_at=at(11), end_at=at(13))
    assert exc.value.conflicting_id == first.entry_id


def test_touching_endpoints_count_as_overlap(env):
    service, _, _ = env
    service.create_entry(user_id=1, work_date=DAY, start_at=at(9), end_at=at(12))

    with pytest.raises(ConflictError):
        service.create_entry(user_id=1, work_date=DAY, start_at=at(12), end_at=at(14))


def test_overlap_is_per_user_and_per_day(env):
    service, _, _ = env
    service.create_entry(user_id=1, work_date=DAY, start_at=at(9), end_at=at(12))

    service.create_entry(user_id=2, work_date=DAY, start_at=at(9), end_at=at(12))
    service.create_entry(user_id=1, work_date=date(2025, 3, 4), start_at=at(9), end_at=at(12))


def test_missing_references_are_not_found(env):
    service, _, _ = env
    with pytest.raises(NotFoundError):
        service.create_entry(user_id=99, work_date=DAY, duration_minutes=10)
    with pytest.raises(NotFoundError, match="Company not found"):
        service.create_entry(user_id=1, work_date=DAY, duration_minutes=10, company_id=77)


def test_negative_break_is_rejected(env):
    service, _, _ = env
    with pytest.raises(ValidationError):
        service.create_entry(user_id=1, work_date=DAY, start_at=at(9), end_at=at(10), break_minutes=-1)


def test_schedule_check_only_warns(env, caplog):
    service, _, schedules = env
    schedules.create_schedule(
        user_id=1,
        name="Office",
        is_default=True,
        days=[ScheduleDay(weekday=1, work_start=time(9), work_end=time(17))],
    )

    with caplog.at_level(logging.WARNING):
        entry = service.create_entry(user_id=1, work_date=DAY, start_at=at(7), end_at=at(8))

    assert entry.entry_id
    assert "outside working hours" in caplog.text


def test_schedule_lookup_failure_does_not_block_write(caplog):
    users = FakeUserRepo()
    users.add(1)
    service = TimeEntryService(FakeTimeEntryRepo(), users, FakeCompanyRepo(), ExplodingLookup())

    with caplog.at_level(logging.WARNING):
        entry = service.create_entry(user_id=1, work_date=DAY, start_at=at(9), end_at=at(10))

    assert entry.duration_minutes == 60
    assert "Could not validate against schedule" in caplog.text


def test_update_rederives_duration_and_excludes_itself_from_overlap(env):
    service, _, _ = env
    entry = service.create_entry(user_id=1, work_date=DAY, start_at=at(9), end_at=at(12))

    updated = service.update_entry(entry.entry_id, end_at=at(13), break_minutes=30)

    assert updated.duration_minutes == 210


def test_update_with_explicit_duration_keeps_it(env):
    service, _, _ = env
    entry = service.create_entry(user_id=1, work_date=DAY, start_at=at(9), end_at=at(12))

    updated = service.update_entry(entry.entry_id, duration_minutes=15)

    assert updated.duration_minutes == 15


def test_update_notes_keeps_manual_duration(env):
    service, _, _ = env
    entry = service.create_entry(user_id=1, work_date=DAY, duration_minutes=90)

    updated = service.update_entry(entry.entry_id, notes="  planning  ")

    assert updated.duration_minutes == 90
    assert updated.notes == "planning"


def test_update_notes_keeps_manual_duration_next_to_context_times(env):
    service, _, _ = env
    entry = service.create_entry(user_id=1, work_date=DAY, start_at=at(9), end_at=at(10), duration_minutes=300)

    updated = service.update_entry(entry.entry_id, notes="on call", company_id=10)

    assert updated.duration_minutes == 300
    assert updated.company_id == 10


def test_manual_entry_with_inverted_context_times_stays_editable(env):
    service, _, _ = env
    entry = service.create_entry(user_id=1, work_date=DAY, start_at=at(10), end_at=at(9), duration_minutes=30)

    updated = service.update_entry(entry.entry_id, notes="typo in times")

    assert updated.duration_minutes == 30
    assert updated.notes == "typo in times"


def test_break_change_rederives_from_interval(env):
    service, _, _ = env
    entry = service.create_entry(user_id=1, work_date=DAY, start_at=at(9), end_at=at(12))

    updated = service.update_entry(entry.entry_id, break_minutes=45)

    assert updated.duration_minutes == 135


def test_update_into_another_entry_is_a_conflict(env):
    service, _, _ = env
    service.create_entry(user_id=1, work_date=DAY, start_at=at(9), end_at=at(10))
    second = service.create_entry(user_id=1, work_date=DAY, start_at=at(11), end_at=at(12))

    with pytest.raises(ConflictError):
        service.update_entry(second.entry_id, start_at=at(9, 30))


def test_update_rejects_unknown_fields(env):
    service, _, _ = env
    entry = service.create_entry(user_id=1, work_date=DAY, duration_minutes=10)
    with pytest.raises(ValidationError):
        service.update_entry(entry.entry_id, status=EntryStatus.APPROVED)


def test_workflow_and_approved_entries_are_frozen(env):
    service, _, _ = env
    entry = service.create_entry(user_id=1, work_date=DAY, duration_minutes=60)

    with pytest.raises(InvalidStateError):
        service.approve_entry(entry.entry_id)

    assert service.submit_entry(entry.entry_id).status == EntryStatus.SUBMITTED
    assert service.approve_entry(entry.entry_id).status == EntryStatus.APPROVED

    with pytest.raises(InvalidStateError):
        service.update_entry(entry.entry_id, notes="late edit")
    with pytest.raises(InvalidStateError):
        service.delete_entry(entry.entry_id)
    with pytest.raises(InvalidStateError):
        service.reject_entry(entry.entry_id)


def test_rejected_entries_stay_editable_and_can_be_resubmitted(env):
    service, _, _ = env
    entry = service.create_entry(user_id=1, work_date=DAY, duration_minutes=60)
    service.submit_entry(entry.entry_id)
    service.reject_entry(entry.entry_id)

    edited = service.update_entry(entry.entry_id, duration_minutes=75)
    assert edited.status == EntryStatus.REJECTED
    assert service.submit_entry(entry.entry_id).status == EntryStatus.SUBMITTED


def test_delete_removes_entry(env):
    service, _, _ = env
    entry = service.create_entry(user_id=1, work_date=DAY, duration_minutes=60)
    service.delete_entry(entry.entry_id)

    with pytest.raises(NotFoundError):
        service.get_entry(entry.entry_id)


def test_list_entries_intersects_requested_user_with_allowed_users(env):
    service, _, _ = env
    service.create_entry(user_id=1, work_date=DAY, duration_minutes=60)
    service.create_entry(user_id=2, work_date=DAY, duration_minutes=30)

    assert [e.user_id for e in service.list_entries(user_ids={2})] == [2]
    assert service.list_entries(user_id=1, user_ids={2}) == []
    assert len(service.list_entries()) == 2
