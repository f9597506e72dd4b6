from __future__ import annotations

import logging
from typing import Mapping, Optional, Sequence, Union

from ..common.validators import require_non_empty
from ..core.enums import PermissionLevel
from ..core.exceptions import ConflictError, InvalidStateError, NotFoundError, ValidationError
from ..users.repository import UserRepository
from .model import Permission, PermissionKey, Role, RolePermissionView
from .repository import RbacRepository
from .resolver import merge_levels

logger = logging.getLogger(__name__)


class RbacService:
    """Use case: administer roles, permissions and role assignments."""

    def __init__(self, rbac: RbacRepository, users: UserRepository):
        self._rbac = rbac
        self._users = users

    # -------- Roles --------
    def create_role(self, *, name: str, description: Optional[str] = None) -> Role:
        name = require_non_empty(name, "Role name")
        if self._rbac.get_role_by_name(name=name):
            raise ConflictError(f"Role with name '{name}' already exists")

        role_id = self._rbac.create_role(name=name, description=(description or "").strip() or None)
        logger.info("Role created: id=%s name=%s", role_id, name)
        return self.get_role(role_id)

    def get_role(self, role_id: int) -> Role:
        role = self._rbac.get_role(role_id=int(role_id))
        if not role:
            raise NotFoundError(f"Role with ID '{role_id}' not found")
        return role

    def list_roles(self) -> Sequence[Role]:
        return self._rbac.list_roles()

    def update_role(self, role_id: int, *, name: Optional[str] = None, description: Optional[str] = None) -> Role:
        role = self.get_role(role_id)
        if role.is_system:
            raise InvalidStateError("Cannot modify system roles")

        new_name = role.name
        if name is not None:
            new_name = require_non_empty(name, "Role name")
            other = self._rbac.get_role_by_name(name=new_name)
            if other and other.role_id != role.role_id:
                raise ConflictError(f"Role with name '{new_name}' already exists", conflicting_id=other.role_id)

        new_description = role.description if description is None else (description.strip() or None)
        self._rbac.update_role(role_id=role.role_id, name=new_name, description=new_description)
        return self.get_role(role.role_id)

    def delete_role(self, role_id: int) -> None:
        role = self.get_role(role_id)
        if role.is_system:
            raise InvalidStateError("Cannot delete system roles")
        if self._rbac.count_role_users(role_id=role.role_id) > 0:
            raise InvalidStateError("Cannot delete role that is assigned to users")

        if not self._rbac.delete_role(role_id=role.role_id):
            raise NotFoundError(f"Role with ID '{role_id}' not found")
        logger.info("Role deleted: id=%s name=%s", role.role_id, role.name)

    # -------- Permissions --------
    def create_permission(self, *, key: str, description: Optional[str] = None) -> Permission:
        perm_key = PermissionKey.parse(key)
        if self._rbac.get_permission_by_key(key=perm_key):
            raise ConflictError(f"Permission with key '{perm_key}' already exists")

        self._rbac.create_permission(key=perm_key, description=(description or "").strip() or None)
        created = self._rbac.get_permission_by_key(key=perm_key)
        if not created:
            raise NotFoundError(f"Permission with key '{perm_key}' not found")
        return created

    def list_permissions(self) -> Sequence[Permission]:
        return sorted(self._rbac.list_permissions(), key=lambda p: str(p.key))

    def get_role_permissions(self, role_id: int) -> list[RolePermissionView]:
        role = self.get_role(role_id)
        levels = self._rbac.get_role_levels(role_id=role.role_id)
        return [
            RolePermissionView(
                key=p.key,
                description=p.description,
                level=levels.get(p.key, PermissionLevel.FORBIDDEN),
            )
            for p in self.list_permissions()
        ]

    def update_role_permissions(
        self,
        role_id: int,
        updates: Mapping[str, Union[str, PermissionLevel]],
    ) -> list[RolePermissionView]:
        role = self.get_role(role_id)
        if role.is_system:
            raise InvalidStateError("Cannot modify system role permissions")

        by_permission_id: dict[int, PermissionLevel] = {}
        for raw_key, raw_level in updates.items():
            key = PermissionKey.parse(raw_key)
            try:
                level = PermissionLevel(raw_level)
            except ValueError:
                raise ValidationError(f"Invalid permission level {raw_level!r}")

            permission = self._rbac.get_permission_by_key(key=key)
            if not permission:
                raise NotFoundError(f"Permission with key '{key}' not found")
            by_permission_id[permission.permission_id] = level

        self._rbac.upsert_role_levels(role_id=role.role_id, levels=by_permission_id)
        logger.info("Role permissions updated: role=%s changes=%s", role.role_id, len(by_permission_id))
        return self.get_role_permissions(role.role_id)

    # -------- User assignments --------
    def _require_user(self, user_id: int) -> None:
        if not self._users.exists(int(user_id)):
            raise NotFoundError(f"User with ID '{user_id}' not found")

    def assign_roles(self, user_id: int, role_ids: Sequence[int]) -> Sequence[Role]:
        self._require_user(user_id)

        wanted = list(dict.fromkeys(int(r) for r in role_ids))
        missing = [r for r in wanted if self._rbac.get_role(role_id=r) is None]
        if missing:
            raise ValidationError(f"One or more roles not found: {missing}")

        self._rbac.replace_user_roles(user_id=int(user_id), role_ids=wanted)
        logger.info("Roles assigned: user=%s roles=%s", user_id, wanted)
        return self.get_user_roles(user_id)

    def get_user_roles(self, user_id: int) -> Sequence[Role]:
        self._require_user(user_id)
        return self._rbac.list_user_roles(user_id=int(user_id))

    def get_user_permissions(self, user_id: int) -> list[RolePermissionView]:
        ctx = self._rbac.load_user_auth_context(user_id=int(user_id))
        if ctx is None:
            raise NotFoundError(f"User with ID '{user_id}' not found")

        levels = merge_levels(grants.levels for grants in ctx.roles)
        descriptions = {p.key: p.description for p in self._rbac.list_permissions()}
        return [
            RolePermissionView(key=key, description=descriptions.get(key), level=level)
            for key, level in sorted(levels.items())
            if level != PermissionLevel.FORBIDDEN
        ]
