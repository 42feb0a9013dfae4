from __future__ import annotations

import math
from typing import Any


# Largest meter reading / amount accepted from clients.
# Prevents float overflow in step-wise rounding and nonsensical inputs.
MAX_NUMERIC_VALUE = 999_999_999.99


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate shift)."""


def coerce_number(value: Any, field: str, *, allow_none: bool = False) -> float | None:
    """
    Coerce client input to float.

    - bool is rejected (True is not 1.0 on a meter)
    - numeric strings are accepted ("1050.5", " 12 ")
    - NaN / infinity are rejected
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if allow_none:
            return None
        raise ValidationError(f"{field} is required")

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if math.isnan(number) or math.isinf(number):
        raise ValidationError(f"{field} must be a finite number")
    if abs(number) > MAX_NUMERIC_VALUE:
        raise ValidationError(f"{field} exceeds maximum allowed value")
    return number


def coerce_int(value: Any, field: str, *, allow_none: bool = False) -> int | None:
    if value is None or value == "":
        if allow_none:
            return None
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped.lstrip("-").isdigit():
            raise ValidationError(f"{field} must be an integer")
        return int(stripped)
    # Reject floats explicitly
    raise ValidationError(f"{field} must be an integer")


def coerce_text(value: Any, field: str, *, allow_none: bool = False) -> str | None:
    if value is None:
        if allow_none:
            return None
        raise ValidationError(f"{field} is required")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    text = value.strip()
    if not text:
        if allow_none:
            return None
        raise ValidationError(f"{field} is required")
    return text


def coerce_list(value: Any, field: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError(f"{field} must be a list")
    return value


def require_mapping(value: Any, field: str) -> dict:
    if not isinstance(value, dict):
        raise ValidationError(f"{field} must be an object")
    return value
