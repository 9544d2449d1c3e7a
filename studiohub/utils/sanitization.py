import html
import re
from typing import Optional

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def sanitize_string(value: Optional[str]) -> Optional[str]:
    """
    Escape HTML special characters and strip control characters from free text
    (event names, notes, log descriptions) before it is stored.
    Returns None if input is None.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        return value
    return _CONTROL_CHARS.sub("", html.escape(value.strip(), quote=True))
