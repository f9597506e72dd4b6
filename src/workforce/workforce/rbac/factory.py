from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from ..companies.repository import CompanyRepository
from .model import PermissionKey
from .scoping.base import ScopingPolicy
from .scoping.company_scope import CompanyScopingPolicy
from .scoping.self_scope import SelfScopingPolicy


@dataclass
class ScopingPolicyFactory:
    """Factory Pattern: pick the scoping policy by permission resource.

    Resources without a registered policy fall back to ``fallback`` (own records only), so a
    LIMITED grant never widens into unrestricted access.
    """

    policies: Mapping[str, ScopingPolicy] = field(default_factory=dict)
    fallback: ScopingPolicy = field(default_factory=SelfScopingPolicy)

    @classmethod
    def default(cls, companies: CompanyRepository) -> "ScopingPolicyFactory":
        company_scope = CompanyScopingPolicy(companies)
        self_scope = SelfScopingPolicy()
        return cls(
            policies={
                "users": company_scope,
                "companies": company_scope,
                "time": self_scope,
                "schedules": self_scope,
            },
            fallback=self_scope,
        )

    def for_key(self, key: PermissionKey) -> ScopingPolicy:
        return self.policies.get(key.resource, self.fallback)
