"""
Input Validators and Sanitizers

Validation for values that arrive from routing or from the backend:
- Short codes come from the URL path and may be leftovers of a broken route
- Original URLs must be absolute http(s) URLs before any redirect happens
"""

import re
from typing import Optional
from urllib.parse import urlparse

MAX_SHORT_CODE_LENGTH = 64
MAX_URL_LENGTH = 2048

# Values a client router produces when a route parameter was never filled in
UNRESOLVED_ROUTE_VALUES = frozenset({"undefined", "null"})

SHORT_CODE_PATTERN = re.compile(r'^[0-9a-zA-Z_-]+$')


def sanitize_short_code(short_code: Optional[str]) -> Optional[str]:
    """
    Sanitize and validate short code format.

    Short codes and custom aliases only contain [0-9a-zA-Z_-].

    Args:
        short_code: The short code to sanitize

    Returns:
        Sanitized short code if valid, None otherwise
    """
    if not short_code or not isinstance(short_code, str):
        return None

    short_code = short_code.strip()

    if not short_code or short_code.lower() in UNRESOLVED_ROUTE_VALUES:
        return None

    if len(short_code) > MAX_SHORT_CODE_LENGTH:
        return None

    if not SHORT_CODE_PATTERN.match(short_code):
        return None

    return short_code


def is_valid_url(url: Optional[str]) -> bool:
    """
    Validate that a URL is an absolute http(s) URL we may navigate to.

    Args:
        url: The URL string to validate

    Returns:
        True if valid, False otherwise
    """
    if not url or not isinstance(url, str):
        return False

    if len(url) > MAX_URL_LENGTH:
        return False

    try:
        result = urlparse(url)
        hostname = result.hostname
    except ValueError:
        return False

    if result.scheme.lower() not in {"http", "https"}:
        return False

    if not hostname:
        return False

    return hostname == "localhost" or "." in hostname
