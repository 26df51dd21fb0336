from __future__ import annotations

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_unique(values, field_name: str) -> None:
    seen = set()
    for value in values:
        if value in seen:
            raise ValidationError(f"Duplicate {field_name}: {value}")
        seen.add(value)
