from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Union

from ..core.enums import PermissionLevel
from ..core.exceptions import AuthenticationError, ForbiddenError
from .factory import ScopingPolicyFactory
from .model import PermissionKey, UserAuthContext
from .repository import RbacRepository
from .resolver import merge_levels, satisfies
from .scoping.base import UNRESTRICTED, AccessScope

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PermissionRequirement:
    key: PermissionKey
    level: PermissionLevel = PermissionLevel.AUTHORIZED

    @classmethod
    def of(
        cls,
        spec: Union[str, PermissionKey, "PermissionRequirement"],
        level: Optional[Union[str, PermissionLevel]] = None,
    ) -> "PermissionRequirement":
        if isinstance(spec, PermissionRequirement):
            return spec
        return cls(
            key=PermissionKey.parse(spec),
            level=PermissionLevel(level) if level is not None else PermissionLevel.AUTHORIZED,
        )


RequirementSpec = Union[str, PermissionKey, PermissionRequirement]


@dataclass(frozen=True)
class AuthDecision:
    """Successful authorization, possibly narrowed by a scope."""

    user_id: int
    levels: Mapping[PermissionKey, PermissionLevel] = field(default_factory=dict)
    scope: AccessScope = UNRESTRICTED

    def level_for(self, key: Union[str, PermissionKey]) -> PermissionLevel:
        return self.levels.get(PermissionKey.parse(key), PermissionLevel.FORBIDDEN)


class AuthorizationGuard:
    """Checks permission requirements for a user and derives the access scope.

    Stateless: the role/permission graph is reloaded on every call so role changes apply immediately.
    """

    def __init__(self, rbac: RbacRepository, scoping: ScopingPolicyFactory):
        self._rbac = rbac
        self._scoping = scoping

    def load_user_auth_context(self, user_id: int) -> UserAuthContext:
        ctx = self._rbac.load_user_auth_context(user_id=int(user_id))
        if ctx is None:
            raise AuthenticationError("User not found")
        return ctx

    def authorize(self, user_id: int, requirements: Iterable[RequirementSpec]) -> AuthDecision:
        ctx = self.load_user_auth_context(user_id)
        levels = merge_levels(grants.levels for grants in ctx.roles)

        scope = UNRESTRICTED
        for req in (PermissionRequirement.of(r) for r in requirements):
            actual = levels.get(req.key)
            effective = actual or PermissionLevel.FORBIDDEN
            if not satisfies(effective, req.level):
                logger.warning(
                    "Forbidden: user=%s key=%s required=%s has=%s",
                    ctx.user_id,
                    req.key,
                    req.level.value,
                    actual.value if actual else "none",
                )
                raise ForbiddenError(str(req.key), req.level, actual)

            if effective == PermissionLevel.LIMITED:
                policy = self._scoping.for_key(req.key)
                scope = scope.narrow(policy.scope_for(user_id=ctx.user_id, key=req.key))

        return AuthDecision(user_id=ctx.user_id, levels=levels, scope=scope)
