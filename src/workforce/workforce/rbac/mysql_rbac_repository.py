from __future__ import annotations

from typing import Mapping, Optional, Sequence

from ..core.enums import PermissionLevel
from ..database.connection import DatabaseConnection
from ..database.mysql_base import conflict_on_duplicate, db_cursor, fetchall, fetchone
from .model import Permission, PermissionKey, Role, RoleGrants, UserAuthContext
from .repository import RbacRepository


def _role(r: dict) -> Role:
    return Role(
        role_id=int(r["role_id"]),
        name=r["name"],
        description=r.get("description"),
        is_system=bool(r.get("is_system", False)),
    )


def _permission(r: dict) -> Permission:
    return Permission(
        permission_id=int(r["permission_id"]),
        key=PermissionKey.parse(r["perm_key"]),
        description=r.get("description"),
    )


class MySQLRbacRepository(RbacRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def load_user_auth_context(self, *, user_id: int) -> Optional[UserAuthContext]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT user_id FROM users WHERE user_id=%s", (int(user_id),))
            if not fetchone(cur):
                return None

            cur.execute(
                """
                SELECT r.role_id, r.name, r.description, r.is_system,
                       p.perm_key, rp.level
                FROM user_roles ur
                JOIN roles r ON r.role_id = ur.role_id
                LEFT JOIN role_permissions rp ON rp.role_id = r.role_id
                LEFT JOIN permissions p ON p.permission_id = rp.permission_id
                WHERE ur.user_id=%s
                ORDER BY r.role_id
                """,
                (int(user_id),),
            )
            rows = fetchall(cur)

        roles: dict[int, Role] = {}
        levels: dict[int, dict[PermissionKey, PermissionLevel]] = {}
        for r in rows:
            role_id = int(r["role_id"])
            if role_id not in roles:
                roles[role_id] = _role(r)
                levels[role_id] = {}
            if r.get("perm_key") and r.get("level"):
                levels[role_id][PermissionKey.parse(r["perm_key"])] = PermissionLevel(r["level"])

        return UserAuthContext(
            user_id=int(user_id),
            roles=tuple(RoleGrants(role=roles[rid], levels=levels[rid]) for rid in roles),
        )

    # -------- Roles --------
    def get_role(self, *, role_id: int) -> Optional[Role]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT role_id, name, description, is_system FROM roles WHERE role_id=%s",
                (int(role_id),),
            )
            r = fetchone(cur)
            return _role(r) if r else None

    def get_role_by_name(self, *, name: str) -> Optional[Role]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT role_id, name, description, is_system FROM roles WHERE name=%s",
                (name,),
            )
            r = fetchone(cur)
            return _role(r) if r else None

    def list_roles(self) -> Sequence[Role]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT role_id, name, description, is_system FROM roles ORDER BY name")
            return [_role(r) for r in fetchall(cur)]

    def create_role(self, *, name: str, description: Optional[str], is_system: bool = False) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            with conflict_on_duplicate(f"Role with name '{name}' already exists"):
                cur.execute(
                    "INSERT INTO roles(name, description, is_system) VALUES(%s,%s,%s)",
                    (name, description, 1 if is_system else 0),
                )
            return int(cur.lastrowid)

    def update_role(self, *, role_id: int, name: str, description: Optional[str]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            with conflict_on_duplicate(f"Role with name '{name}' already exists"):
                cur.execute(
                    "UPDATE roles SET name=%s, description=%s WHERE role_id=%s AND is_system=0",
                    (name, description, int(role_id)),
                )
            return cur.rowcount > 0

    def delete_role(self, *, role_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM role_permissions WHERE role_id=%s", (int(role_id),))
            cur.execute("DELETE FROM roles WHERE role_id=%s AND is_system=0", (int(role_id),))
            return cur.rowcount > 0

    def count_role_users(self, *, role_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM user_roles WHERE role_id=%s", (int(role_id),))
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    # -------- Permissions --------
    def get_permission_by_key(self, *, key: PermissionKey) -> Optional[Permission]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT permission_id, perm_key, description FROM permissions WHERE perm_key=%s",
                (str(key),),
            )
            r = fetchone(cur)
            return _permission(r) if r else None

    def list_permissions(self) -> Sequence[Permission]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT permission_id, perm_key, description FROM permissions ORDER BY perm_key")
            return [_permission(r) for r in fetchall(cur)]

    def create_permission(self, *, key: PermissionKey, description: Optional[str]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            with conflict_on_duplicate(f"Permission with key '{key}' already exists"):
                cur.execute(
                    "INSERT INTO permissions(perm_key, description) VALUES(%s,%s)",
                    (str(key), description),
                )
            return int(cur.lastrowid)

    # -------- Role <-> permission --------
    def get_role_levels(self, *, role_id: int) -> Mapping[PermissionKey, PermissionLevel]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT p.perm_key, rp.level
                FROM role_permissions rp
                JOIN permissions p ON p.permission_id = rp.permission_id
                WHERE rp.role_id=%s
                """,
                (int(role_id),),
            )
            return {PermissionKey.parse(r["perm_key"]): PermissionLevel(r["level"]) for r in fetchall(cur)}

    def upsert_role_levels(self, *, role_id: int, levels: Mapping[int, PermissionLevel]) -> None:
        if not levels:
            return
        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(
                """
                INSERT INTO role_permissions(role_id, permission_id, level)
                VALUES(%s,%s,%s)
                ON DUPLICATE KEY UPDATE level=VALUES(level)
                """,
                [(int(role_id), int(pid), level.value) for pid, level in levels.items()],
            )

    # -------- User <-> role --------
    def list_user_roles(self, *, user_id: int) -> Sequence[Role]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT r.role_id, r.name, r.description, r.is_system
                FROM user_roles ur
                JOIN roles r ON r.role_id = ur.role_id
                WHERE ur.user_id=%s
                ORDER BY r.name
                """,
                (int(user_id),),
            )
            return [_role(r) for r in fetchall(cur)]

    def replace_user_roles(self, *, user_id: int, role_ids: Sequence[int]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM user_roles WHERE user_id=%s", (int(user_id),))
            if role_ids:
                cur.executemany(
                    "INSERT INTO user_roles(user_id, role_id) VALUES(%s,%s)",
                    [(int(user_id), int(rid)) for rid in role_ids],
                )
