from __future__ import annotations

from typing import Any, Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: Any, field_name: str) -> str:
    if value is None or not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_int(value: Any, field_name: str, *, min_value: int, max_value: Optional[int] = None) -> int:
    # bool is an int subclass; reject it explicitly.
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer") from None
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError(f"{field_name} must be an integer")
    if number < min_value:
        raise ValidationError(f"{field_name} must be at least {min_value}")
    if max_value is not None and number > max_value:
        raise ValidationError(f"{field_name} must be at most {max_value}")
    return number
