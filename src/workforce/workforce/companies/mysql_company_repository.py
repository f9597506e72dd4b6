from __future__ import annotations

from typing import Iterable, Mapping, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import Company
from .repository import CompanyRepository


class MySQLCompanyRepository(CompanyRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, company_id: int) -> Optional[Company]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT company_id, name, company_type FROM companies WHERE company_id=%s",
                (int(company_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Company(company_id=int(r["company_id"]), name=r["name"], company_type=r.get("company_type"))

    def exists(self, company_id: int) -> bool:
        return self.get_by_id(company_id) is not None

    def get_names(self, company_ids: Iterable[int]) -> Mapping[int, str]:
        ids = sorted({int(c) for c in company_ids})
        if not ids:
            return {}
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT company_id, name FROM companies WHERE company_id IN ({in_clause(ids)})",
                tuple(ids),
            )
            return {int(r["company_id"]): r["name"] for r in fetchall(cur)}

    def list_company_ids_for_user(self, *, user_id: int) -> Sequence[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT company_id FROM user_company_memberships WHERE user_id=%s ORDER BY company_id",
                (int(user_id),),
            )
            return [int(r["company_id"]) for r in fetchall(cur)]
