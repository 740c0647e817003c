import html
import re
from typing import Optional


def sanitize_search_term(value: Optional[str], max_length: int = 100) -> Optional[str]:
    """
    Clean a free-text search term before it is used in a LIKE filter.

    Strips SQL wildcard and filter syntax characters so a term cannot widen
    the match beyond what the user typed. Returns None for blank input.
    """
    if not value:
        return None
    cleaned = re.sub(r"[%_,()\\]", "", value.strip())[:max_length].strip()
    return cleaned or None


def validate_and_sanitize_input(value: Optional[str], max_length: int = 500) -> Optional[str]:
    """
    Validate and sanitize free-text input such as notes and requirements.

    Raises:
        ValueError: If input exceeds max_length
    """
    if value is None:
        return None

    value = str(value).strip()
    if not value:
        return None

    if len(value) > max_length:
        raise ValueError(f"Input exceeds maximum length of {max_length} characters")

    value = html.escape(value, quote=True)

    value = re.sub(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]", "", value)

    return value
