from __future__ import annotations

from ...companies.repository import CompanyRepository
from ..model import PermissionKey
from .base import AccessScope, ScopingPolicy


class CompanyScopingPolicy(ScopingPolicy):
    """LIMITED access: only records of companies the user is a member of."""

    def __init__(self, companies: CompanyRepository):
        self._companies = companies

    def scope_for(self, *, user_id: int, key: PermissionKey) -> AccessScope:
        company_ids = self._companies.list_company_ids_for_user(user_id=int(user_id))
        return AccessScope(company_ids=frozenset(int(c) for c in company_ids))
