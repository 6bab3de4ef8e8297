"""
Security Utilities
==================

Filename slugs and redaction of secrets before they reach logs or output.
"""

import re
import logging
from urllib.parse import urlsplit, urlunsplit

logger = logging.getLogger(__name__)

DEFAULT_SLUG = "image"
MAX_SLUG_LENGTH = 60


def slugify(text: str, max_length: int = MAX_SLUG_LENGTH) -> str:
    """
    Turn free text into a filesystem-safe base name.

    Lowercases, drops quote characters, collapses every run of
    non-alphanumerics into one hyphen and trims hyphens at both ends.
    The result is capped at ``max_length`` characters.

    Args:
        text: Prompt or explicit name
        max_length: Maximum slug length

    Returns:
        Slug, or ``"image"`` if nothing usable is left
    """
    slug = (text or "").strip().lower()
    slug = re.sub(r"['\"`]", "", slug)
    slug = re.sub(r"[^a-z0-9]+", "-", slug)
    slug = slug.strip("-")

    if not slug:
        return DEFAULT_SLUG

    if len(slug) > max_length:
        slug = slug[:max_length].rstrip("-")

    return slug


def redact_url(url: str) -> str:
    """
    Strip the query string and fragment from a URL.

    Signed download URLs carry tokens in the query, so they are removed
    before a URL is printed or logged.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if not parts.scheme or not parts.netloc:
        return url
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def redact_api_key(text: str) -> str:
    """
    Redact API keys and sensitive tokens from text.

    Args:
        text: Text that might contain API keys

    Returns:
        Text with API keys redacted
    """
    if not text:
        return text

    patterns = [
        (r"Bearer\s+[A-Za-z0-9_\-\.]+", "Bearer ***REDACTED***"),
        (r"Key\s+[A-Za-z0-9_\-:]{16,}", "Key ***REDACTED***"),
        # Google API keys
        (r"AIza[A-Za-z0-9_\-]{35}", "AIza***REDACTED***"),
        # OpenAI / xAI style secret keys
        (r"\b(sk|xai)-[A-Za-z0-9_\-]{8,}", r"\1-***REDACTED***"),
        (r"([?&]key=)[^&\s]+", r"\1***REDACTED***"),
    ]

    result = text
    for pattern, replacement in patterns:
        result = re.sub(pattern, replacement, result)

    return result


def summarize_data_uri(value: str) -> str:
    """Shorten a data URI to something safe to log."""
    if isinstance(value, str) and value.startswith("data:"):
        return f"data:...{len(value)} chars"
    return value
