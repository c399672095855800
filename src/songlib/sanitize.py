"""Cleans text fields before they enter the catalog."""

import re

_TAG_RE = re.compile(r"<[^>]+>")
_CONTROL_WHITESPACE_RE = re.compile(r"[\r\n\t]+")


def sanitize(value: str | None) -> str:
    """
    Strips tag-like markup and line breaks from a metadata value.

    ``<...>`` fragments are removed, runs of CR/LF/TAB become a single space and
    the result is trimmed. Empty or whitespace-only input yields an empty string.

    Args:
        value: Raw text from a parser.

    Returns:
        str: The cleaned text.
    """
    if value is None or not value.strip():
        return ""
    cleaned = _TAG_RE.sub("", value.strip())
    cleaned = _CONTROL_WHITESPACE_RE.sub(" ", cleaned)
    return cleaned.strip()


def sanitize_optional(value: str | None) -> str | None:
    """Like ``sanitize`` but keeps None (and values that clean up to nothing) as None."""
    if value is None:
        return None
    return sanitize(value) or None
