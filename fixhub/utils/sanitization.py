import html
import re
from typing import Optional

CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def sanitize_string(value: Optional[str]) -> Optional[str]:
    """
    Escape HTML special characters in free text before it is stored or
    interpolated into notification emails. Returns None if input is None.
    """
    if value is None:
        return None
    return html.escape(str(value).strip(), quote=True)


def sanitize_text(value: Optional[str], max_length: int = 2000) -> Optional[str]:
    """
    Sanitize a free-text field (descriptions, names, messages).

    Raises:
        ValueError: If the text exceeds max_length
    """
    if value is None:
        return None

    value = str(value).strip()

    if len(value) > max_length:
        raise ValueError(f"Input exceeds maximum length of {max_length} characters")

    return CONTROL_CHARS.sub("", html.escape(value, quote=True))
