"""Raw string to typed value conversion.

Every function here is pure. Optional values fall back to ``None`` or to
a default the caller declares; nothing is inferred from the field name.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from core.constants import TRUE_TOKENS


def normalize_string(value: str | None) -> str | None:
    """Trim whitespace; empty becomes ``None``."""
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def normalize_date(value: str | None) -> str | None:
    """Pass a date string through unchanged apart from trimming.

    No calendar validation is performed.
    """
    return normalize_string(value)


def normalize_boolean(value: str | None) -> bool:
    """Return True only for ``true`` or ``1``, case-insensitively."""
    if value is None:
        return False
    return value.strip().lower() in TRUE_TOKENS


def normalize_numeric(value: str | None, default: Decimal | None = None) -> Decimal | None:
    """Parse a decimal number.

    Args:
        value: Raw field text.
        default: Value returned when the field is empty or unparseable.

    Returns:
        Parsed finite decimal, or ``default``.
    """
    text = normalize_string(value)
    if text is None:
        return default
    try:
        number = Decimal(text)
    except InvalidOperation:
        return default
    if not number.is_finite():
        return default
    return number


def normalize_integer(value: str | None, default: int | None = None) -> int | None:
    """Parse an integral number, accepting forms such as ``"2.0"``."""
    number = normalize_numeric(value)
    if number is None or number != number.to_integral_value():
        return default
    return int(number)
