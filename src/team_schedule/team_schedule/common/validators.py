from __future__ import annotations

from typing import Any, Iterable, Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_positive_int(value: Any, field_name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
    if number <= 0:
        raise ValidationError(f"{field_name} must be >= 1")
    return number


def require_non_negative_int(value: Any, field_name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
    if number < 0:
        raise ValidationError(f"{field_name} must not be negative")
    return number


def require_month(value: Any, field_name: str = "month") -> int:
    month = require_positive_int(value, field_name)
    if month > 12:
        raise ValidationError(f"{field_name} must be between 1 and 12")
    return month


def require_permutation(candidate: Iterable[int], expected: Iterable[int], field_name: str) -> list[int]:
    """Check ``candidate`` lists every id of ``expected`` exactly once."""
    try:
        items = [int(x) for x in candidate]
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must contain integer ids")
    if len(items) != len(set(items)) or set(items) != set(int(x) for x in expected):
        raise ValidationError(f"{field_name} must be a permutation of the existing ids")
    return items
