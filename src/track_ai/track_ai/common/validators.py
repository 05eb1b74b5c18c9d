from __future__ import annotations

from typing import Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_coordinate(value, field_name: str, *, limit: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if not -limit <= number <= limit:
        raise ValidationError(f"{field_name} must be between {-limit:g} and {limit:g}")
    return number


def require_latitude(value) -> float:
    return require_coordinate(value, "latitude", limit=90)


def require_longitude(value) -> float:
    return require_coordinate(value, "longitude", limit=180)


def optional_text(value: Optional[str]) -> Optional[str]:
    text = (value or "").strip()
    return text or None
