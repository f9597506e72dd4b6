from __future__ import annotations

from functools import wraps
from typing import Optional

from flask import g, session

from ..common.http_errors import error_response
from ..companies.repository import CompanyRepository
from ..core.enums import PermissionLevel
from ..core.exceptions import ForbiddenError
from .guard import AuthDecision, AuthorizationGuard, PermissionRequirement, RequirementSpec


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return error_response(401, "authentication_error", "Authentication required")
        return view(*args, **kwargs)

    return wrapper


def make_permissions_required(guard: AuthorizationGuard):
    """Build the ``@permissions_required(...)`` decorator bound to one guard.

    On success the decision is stored in ``flask.g.auth``; a Forbidden result propagates to the
    registered error handler.
    """

    def permissions_required(*requirements: RequirementSpec, level: Optional[PermissionLevel] = None):
        reqs = tuple(PermissionRequirement.of(r, level) for r in requirements)

        def decorator(view):
            @wraps(view)
            def wrapper(*args, **kwargs):
                user_id = session.get("user_id")
                if user_id is None:
                    return error_response(401, "authentication_error", "Authentication required")
                g.auth = guard.authorize(int(user_id), reqs)
                return view(*args, **kwargs)

            return wrapper

        return decorator

    return permissions_required


def current_decision() -> AuthDecision:
    return g.auth


def ensure_user_in_scope(decision: AuthDecision, user_id: int, key: str) -> None:
    """Single-record access outside a LIMITED scope is treated as missing AUTHORIZED access."""
    if not decision.scope.allows_user(user_id):
        raise ForbiddenError(key, PermissionLevel.AUTHORIZED, decision.level_for(key))


def ensure_user_in_company_scope(
    decision: AuthDecision, companies: CompanyRepository, user_id: int, key: str
) -> None:
    """Company-scoped reads see the caller and members of the caller's companies."""
    ensure_user_in_scope(decision, user_id, key)
    if decision.scope.company_ids is None or int(user_id) == decision.user_id:
        return
    member_of = companies.list_company_ids_for_user(user_id=int(user_id))
    if not any(decision.scope.allows_company(c) for c in member_of):
        raise ForbiddenError(key, PermissionLevel.AUTHORIZED, decision.level_for(key))
