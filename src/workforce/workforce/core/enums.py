from __future__ import annotations

from enum import Enum


class PermissionLevel(str, Enum):
    """Graded access level attached to a (role, permission) pair."""

    FORBIDDEN = "FORBIDDEN"
    LIMITED = "LIMITED"
    AUTHORIZED = "AUTHORIZED"

    @property
    def rank(self) -> int:
        return _LEVEL_RANK[self]


_LEVEL_RANK = {
    PermissionLevel.FORBIDDEN: 0,
    PermissionLevel.LIMITED: 1,
    PermissionLevel.AUTHORIZED: 2,
}


class EntryStatus(str, Enum):
    """Approval workflow status shared by time entries and timesheets."""

    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


TimesheetStatus = EntryStatus


class EntrySource(str, Enum):
    MANUAL = "MANUAL"
    TIMER = "TIMER"
