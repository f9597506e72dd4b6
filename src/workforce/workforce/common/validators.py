from __future__ import annotations

from typing import Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} must not be empty")
    return value.strip()


def require_non_negative(value: Optional[int], field_name: str) -> Optional[int]:
    if value is None:
        return None
    if int(value) < 0:
        raise ValidationError(f"{field_name} must be >= 0")
    return int(value)
