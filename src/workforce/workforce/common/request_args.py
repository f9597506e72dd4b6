from __future__ import annotations

from datetime import date, datetime
from typing import Any, Mapping, Optional

from flask import request

from ..core.exceptions import ValidationError
from .datetime_utils import parse_iso_date, parse_iso_datetime


def json_body() -> Mapping[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def optional_int(value: Any, field_name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")


def optional_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    return parse_iso_date(str(value))


def required_date(value: Any, field_name: str) -> date:
    if value is None or value == "":
        raise ValidationError(f"{field_name} is required")
    return parse_iso_date(str(value))


def optional_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    return parse_iso_datetime(str(value))
