from __future__ import annotations

from typing import Iterable, Mapping, Optional, Protocol, Sequence

from .model import Company


class CompanyRepository(Protocol):
    """Read-only view of companies needed by time tracking and scoping."""

    def get_by_id(self, company_id: int) -> Optional[Company]:
        raise NotImplementedError

    def exists(self, company_id: int) -> bool:
        raise NotImplementedError

    def get_names(self, company_ids: Iterable[int]) -> Mapping[int, str]:
        raise NotImplementedError

    def list_company_ids_for_user(self, *, user_id: int) -> Sequence[int]:
        """Companies the user is a member of (drives LIMITED scoping)."""

        raise NotImplementedError
