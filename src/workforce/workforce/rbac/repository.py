from __future__ import annotations

from typing import Mapping, Optional, Protocol, Sequence

from ..core.enums import PermissionLevel
from .model import Permission, PermissionKey, Role, UserAuthContext


class RbacRepository(Protocol):
    """Persistence port for roles, permissions and their links.

    Note (DIP): services and the guard depend on this interface, not on MySQL.
    """

    # Authorization graph
    def load_user_auth_context(self, *, user_id: int) -> Optional[UserAuthContext]:
        """Load the user's roles with flattened permission levels in one pass.

        Returns None when the user does not exist.
        """

        raise NotImplementedError

    # Roles
    def get_role(self, *, role_id: int) -> Optional[Role]:
        raise NotImplementedError

    def get_role_by_name(self, *, name: str) -> Optional[Role]:
        raise NotImplementedError

    def list_roles(self) -> Sequence[Role]:
        raise NotImplementedError

    def create_role(self, *, name: str, description: Optional[str], is_system: bool = False) -> int:
        raise NotImplementedError

    def update_role(self, *, role_id: int, name: str, description: Optional[str]) -> bool:
        raise NotImplementedError

    def delete_role(self, *, role_id: int) -> bool:
        raise NotImplementedError

    def count_role_users(self, *, role_id: int) -> int:
        raise NotImplementedError

    # Permissions
    def get_permission_by_key(self, *, key: PermissionKey) -> Optional[Permission]:
        raise NotImplementedError

    def list_permissions(self) -> Sequence[Permission]:
        raise NotImplementedError

    def create_permission(self, *, key: PermissionKey, description: Optional[str]) -> int:
        raise NotImplementedError

    # Role <-> permission links
    def get_role_levels(self, *, role_id: int) -> Mapping[PermissionKey, PermissionLevel]:
        raise NotImplementedError

    def upsert_role_levels(self, *, role_id: int, levels: Mapping[int, PermissionLevel]) -> None:
        """Bulk upsert ``permission_id -> level`` for a role in one transaction."""

        raise NotImplementedError

    # User <-> role links
    def list_user_roles(self, *, user_id: int) -> Sequence[Role]:
        raise NotImplementedError

    def replace_user_roles(self, *, user_id: int, role_ids: Sequence[int]) -> None:
        """Delete-then-insert the user's roles in one transaction."""

        raise NotImplementedError
