"""Input checks shared by the registry components.

Components run these before their first write. Everything they accept is
something the audit log can hash and the log renderers can print.
"""

from __future__ import annotations

from chainedin.errors import InvalidInputError


def is_record_id(value: object) -> bool:
    """True if value can name a stored record (a positive int, never a bool)."""
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def require_text(value: object, label: str, *, allow_blank: bool = True) -> str:
    """Return value unchanged if it is encodable text.

    Raises:
        InvalidInputError: value is not a str, cannot be encoded as UTF-8
            (e.g. a lone surrogate), or is blank when allow_blank is False.
    """
    if not isinstance(value, str):
        raise InvalidInputError(f"{label} must be a string")
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        raise InvalidInputError(f"{label} is not valid UTF-8 text") from None
    if not allow_blank and not value.strip():
        raise InvalidInputError(f"{label} cannot be empty")
    return value
