from __future__ import annotations

import pytest

from fakes import FakeRbacRepo, FakeUserRepo
from src.workforce.workforce.core.enums import PermissionLevel
from src.workforce.workforce.core.exceptions import ConflictError, InvalidStateError, NotFoundError, ValidationError
from src.workforce.workforce.rbac.model import PermissionKey
from src.workforce.workforce.rbac.service import RbacService


@pytest.fixture()
def env():
    users = FakeUserRepo()
    users.add(1)
    rbac = FakeRbacRepo(users)
    return RbacService(rbac, users), rbac


def test_create_role_rejects_duplicate_name(env):
    service, _ = env
    service.create_role(name="Auditor")
    with pytest.raises(ConflictError):
        service.create_role(name="Auditor")


def test_system_roles_cannot_be_modified_or_deleted(env):
    service, rbac = env
    admin = rbac.add_role("Admin", is_system=True)

    with pytest.raises(InvalidStateError):
        service.update_role(admin.role_id, name="Root")
    with pytest.raises(InvalidStateError):
        service.delete_role(admin.role_id)


def test_update_role_name_clash_reports_other_role(env):
    service, _ = env
    first = service.create_role(name="Auditor")
    second = service.create_role(name="Reviewer")

    with pytest.raises(ConflictError) as exc:
        service.update_role(second.role_id, name="Auditor")
    assert exc.value.conflicting_id == first.role_id


def test_role_in_use_cannot_be_deleted(env):
    service, rbac = env
    role = service.create_role(name="Auditor")
    service.assign_roles(1, [role.role_id])

    with pytest.raises(InvalidStateError):
        service.delete_role(role.role_id)


def test_create_permission_parses_key_and_rejects_duplicates(env):
    service, _ = env
    permission = service.create_permission(key="Reports:Export", description="Export reports")
    assert permission.key == PermissionKey("reports", "export")

    with pytest.raises(ConflictError):
        service.create_permission(key="reports:export")
    with pytest.raises(ValidationError):
        service.create_permission(key="no-colon")


def test_role_permissions_list_whole_catalogue_with_forbidden_default(env):
    service, rbac = env
    service.create_permission(key="time:list")
    service.create_permission(key="time:approve")
    role = service.create_role(name="Auditor")

    views = service.update_role_permissions(role.role_id, {"time:list": "LIMITED"})

    levels = {str(v.key): v.level for v in views}
    assert levels == {"time:approve": PermissionLevel.FORBIDDEN, "time:list": PermissionLevel.LIMITED}


def test_update_role_permissions_rejects_unknown_key_and_level(env):
    service, _ = env
    service.create_permission(key="time:list")
    role = service.create_role(name="Auditor")

    with pytest.raises(NotFoundError):
        service.update_role_permissions(role.role_id, {"time:nope": "LIMITED"})
    with pytest.raises(ValidationError):
        service.update_role_permissions(role.role_id, {"time:list": "SUPER"})


def test_assign_roles_validates_ids_and_replaces_assignment(env):
    service, _ = env
    a = service.create_role(name="A")
    b = service.create_role(name="B")

    with pytest.raises(ValidationError):
        service.assign_roles(1, [a.role_id, 999])
    with pytest.raises(NotFoundError):
        service.assign_roles(42, [a.role_id])

    service.assign_roles(1, [a.role_id, b.role_id, a.role_id])
    assert [r.name for r in service.get_user_roles(1)] == ["A", "B"]

    service.assign_roles(1, [b.role_id])
    assert [r.name for r in service.get_user_roles(1)] == ["B"]


def test_user_permissions_are_merged_and_omit_forbidden(env):
    service, rbac = env
    rbac.grant(
        1,
        rbac.add_role("Employee", {"time:list": "LIMITED", "time:approve": "FORBIDDEN"}),
        rbac.add_role("Manager", {"time:list": "AUTHORIZED"}),
    )

    perms = {str(v.key): v.level for v in service.get_user_permissions(1)}

    assert perms == {"time:list": PermissionLevel.AUTHORIZED}
