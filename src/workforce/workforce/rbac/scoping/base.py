from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ..model import PermissionKey


def _intersect(a: Optional[frozenset[int]], b: Optional[frozenset[int]]) -> Optional[frozenset[int]]:
    if a is None:
        return b
    if b is None:
        return a
    return a & b


@dataclass(frozen=True)
class AccessScope:
    """Row-level narrowing attached to a successful authorization.

    ``None`` means "no restriction on this dimension".
    """

    company_ids: Optional[frozenset[int]] = None
    user_ids: Optional[frozenset[int]] = None

    @property
    def restricted(self) -> bool:
        return self.company_ids is not None or self.user_ids is not None

    def narrow(self, other: "AccessScope") -> "AccessScope":
        return AccessScope(
            company_ids=_intersect(self.company_ids, other.company_ids),
            user_ids=_intersect(self.user_ids, other.user_ids),
        )

    def allows_user(self, user_id: int) -> bool:
        return self.user_ids is None or int(user_id) in self.user_ids

    def allows_company(self, company_id: Optional[int]) -> bool:
        if self.company_ids is None:
            return True
        return company_id is not None and int(company_id) in self.company_ids


UNRESTRICTED = AccessScope()


class ScopingPolicy(ABC):
    """Strategy Pattern: decide how a LIMITED grant narrows visible data."""

    @abstractmethod
    def scope_for(self, *, user_id: int, key: PermissionKey) -> AccessScope:
        raise NotImplementedError
