from __future__ import annotations

from typing import Any

from .errors import InvalidRequestError


# Upper bound on cups in one request; guards against nonsensical input
MAX_UNITS_PER_REQUEST = 10_000


def parse_positive_int(value: Any, field: str, *, maximum: int | None = MAX_UNITS_PER_REQUEST) -> int:
    """
    Strict positive integer coercion for request input.

    - bool is rejected even though it subclasses int
    - floats, decimals and scientific notation are rejected
    - digit strings ("3") are accepted
    """
    if value is None:
        raise InvalidRequestError(f"{field} is required")

    if isinstance(value, bool):
        raise InvalidRequestError(f"{field} must be an integer")

    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise InvalidRequestError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e3")
        if 'e' in stripped.lower():
            raise InvalidRequestError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "2.5")
        if '.' in stripped:
            raise InvalidRequestError(f"{field} must be an integer (no decimals)")
        # ASCII digits only; int() would also take "1_000" and non-Latin digits
        digits = stripped[1:] if stripped[0] in "+-" else stripped
        if not (digits.isascii() and digits.isdigit()):
            raise InvalidRequestError(f"{field} must be an integer")
        parsed = int(stripped)
    elif isinstance(value, float):
        raise InvalidRequestError(f"{field} must be an integer, not a decimal")
    else:
        raise InvalidRequestError(f"{field} must be an integer")

    if parsed <= 0:
        raise InvalidRequestError(f"{field} must be positive")
    if maximum is not None and parsed > maximum:
        raise InvalidRequestError(f"{field} must be at most {maximum}")
    return parsed


def parse_optional_text(value: Any, field: str, *, max_length: int) -> str | None:
    """None / blank -> None; otherwise a stripped string no longer than max_length."""
    if value is None:
        return None
    if not isinstance(value, (str, int)) or isinstance(value, bool):
        raise InvalidRequestError(f"{field} must be a string")
    text = str(value).strip()
    if not text:
        return None
    if len(text) > max_length:
        raise InvalidRequestError(f"{field} must be at most {max_length} characters")
    return text
