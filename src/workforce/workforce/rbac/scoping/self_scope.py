from __future__ import annotations

from ..model import PermissionKey
from .base import AccessScope, ScopingPolicy


class SelfScopingPolicy(ScopingPolicy):
    """LIMITED access: only the user's own records."""

    def scope_for(self, *, user_id: int, key: PermissionKey) -> AccessScope:
        return AccessScope(user_ids=frozenset({int(user_id)}))
