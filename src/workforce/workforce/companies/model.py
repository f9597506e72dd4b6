from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Company:
    company_id: int
    name: str
    company_type: Optional[str] = None
