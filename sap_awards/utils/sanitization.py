import html
import re
from typing import Optional

import bleach

CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def sanitize_string(value: Optional[str]) -> Optional[str]:
    """
    Escape HTML special characters for interpolation into email markup.
    Returns None if input is None.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        return value
    return html.escape(str(value), quote=True)


def strip_html(value: Optional[str]) -> Optional[str]:
    """
    Remove all HTML tags and control characters from free text, keeping the
    readable content. The result is plain text, not escaped markup.
    """
    if value is None:
        return None
    cleaned = CONTROL_CHARS.sub("", str(value))
    cleaned = bleach.clean(cleaned, tags=[], attributes={}, strip=True, strip_comments=True)
    return html.unescape(cleaned).strip()


def clean_text(value: Optional[str], max_length: Optional[int] = None) -> Optional[str]:
    """
    Strip tags and whitespace; blank input becomes None.

    Raises:
        ValueError: If the cleaned value exceeds max_length
    """
    value = strip_html(value)
    if not value:
        return None
    if max_length is not None and len(value) > max_length:
        raise ValueError(f"cannot exceed {max_length} characters")
    return value
