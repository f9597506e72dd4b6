from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional

from ..core.enums import PermissionLevel
from ..core.exceptions import ValidationError


@dataclass(frozen=True, order=True)
class PermissionKey:
    """Structured permission key, rendered as ``resource:action``."""

    resource: str
    action: str

    @classmethod
    def parse(cls, raw: str) -> "PermissionKey":
        if isinstance(raw, PermissionKey):
            return raw
        resource, sep, action = (raw or "").strip().partition(":")
        if not sep or not resource or not action or ":" in action:
            raise ValidationError(f"Invalid permission key {raw!r} (expected 'resource:action')")
        return cls(resource=resource.lower(), action=action.lower())

    def __str__(self) -> str:
        return f"{self.resource}:{self.action}"


@dataclass(frozen=True)
class Role:
    role_id: int
    name: str
    description: Optional[str] = None
    is_system: bool = False


@dataclass(frozen=True)
class Permission:
    permission_id: int
    key: PermissionKey
    description: Optional[str] = None


@dataclass(frozen=True)
class RoleGrants:
    """A role together with its flattened ``key -> level`` links."""

    role: Role
    levels: Mapping[PermissionKey, PermissionLevel] = field(default_factory=dict)


@dataclass(frozen=True)
class UserAuthContext:
    """Everything the guard needs for one user, loaded in a single pass."""

    user_id: int
    roles: tuple[RoleGrants, ...] = ()


@dataclass(frozen=True)
class RolePermissionView:
    key: PermissionKey
    description: Optional[str]
    level: PermissionLevel
