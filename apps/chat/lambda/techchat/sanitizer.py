"""Free-form text cleanup helpers."""

from typing import Any

from .constants import CONTROL_CHARACTER_PATTERN


def sanitize_text(value: Any) -> str:
    """Replace ASCII control characters with spaces and trim the result.

    ``None`` becomes an empty string; any other value is converted with ``str``.
    """
    if value is None:
        return ""
    return CONTROL_CHARACTER_PATTERN.sub(" ", str(value)).strip()
