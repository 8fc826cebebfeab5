"""
Helper Utility Module

This module provides various helper functions used by both batch workers.
"""

import ipaddress
import time
from typing import Any, Callable, Dict, Optional, Tuple
from urllib.parse import urlparse

LOOPBACK_HOSTNAMES = ("localhost", "127.0.0.1", "::1")
PUBLIC_PATH_SEGMENT = "public"


def is_valid_url(url: str) -> bool:
    """
    Check if a URL is valid.

    Args:
        url: The URL to validate

    Returns:
        bool: True if the URL is valid, False otherwise
    """
    try:
        result = urlparse(url)
        return all([result.scheme, result.netloc])
    except (TypeError, ValueError, AttributeError):
        return False


def _is_loopback_host(hostname: str) -> bool:
    hostname = hostname.lower()
    if hostname in LOOPBACK_HOSTNAMES or hostname.endswith(".localhost"):
        return True
    try:
        return ipaddress.ip_address(hostname).is_loopback
    except ValueError:
        return False


def is_publicly_accessible(image_url: Optional[str]) -> bool:
    """
    Decide whether an image URL can be fetched by a third-party platform.

    This is an allow-list check on the URL alone, no request is made. The URL
    must parse, use https, not point at a loopback host and contain a
    ``public`` path segment (public storage buckets are served that way).

    Args:
        image_url: The image URL to check

    Returns:
        bool: True if the URL passes every rule
    """
    if not image_url or not is_valid_url(image_url):
        return False

    try:
        parsed = urlparse(image_url)
        hostname = parsed.hostname
    except ValueError:
        return False

    if parsed.scheme != "https" or not hostname:
        return False
    if _is_loopback_host(hostname):
        return False

    segments = [segment for segment in parsed.path.split("/") if segment]
    return PUBLIC_PATH_SEGMENT in segments


def retry_with_fixed_delay(func: Callable[[], Tuple[bool, Any, Optional[str]]],
                           max_attempts: int, delay_seconds: float,
                           on_attempt_failed: Optional[Callable[[int, str], None]] = None,
                           sleep: Callable[[float], None] = time.sleep) -> Tuple[bool, Any, Optional[str], int]:
    """
    Call a function until it reports success or the attempts run out.

    The function returns a ``(success, value, error)`` tuple. Raised exceptions
    count as a failed attempt with the exception text as the error. The same
    delay is used between every pair of attempts and there is no delay after
    the last one.

    Args:
        func: The function to call
        max_attempts: Maximum number of attempts, at least 1
        delay_seconds: Seconds to wait between attempts
        on_attempt_failed: Optional callback receiving (attempt, error)
        sleep: Sleep function, replaceable in tests

    Returns:
        Tuple: (success, value, last_error, attempts_made)
    """
    last_error = None
    attempts = max(1, max_attempts)

    for attempt in range(1, attempts + 1):
        try:
            success, value, error = func()
        except Exception as e:
            success, value, error = False, None, str(e) or e.__class__.__name__

        if success:
            return True, value, None, attempt

        last_error = error or "Unknown error"
        if on_attempt_failed:
            on_attempt_failed(attempt, last_error)

        if attempt < attempts:
            sleep(delay_seconds)

    return False, None, last_error or "All retry attempts failed", attempts


def truncate_text(text: str, max_length: int = 100, add_ellipsis: bool = True) -> str:
    """
    Truncate text to a maximum length.

    Args:
        text: The text to truncate
        max_length: Maximum length
        add_ellipsis: Whether to add an ellipsis if text is truncated

    Returns:
        str: Truncated text
    """
    if not text or len(text) <= max_length:
        return text

    truncated = text[:max_length].rstrip()
    if add_ellipsis:
        truncated += "..."

    return truncated


def safe_get(data: Dict[str, Any], *keys, default: Any = None) -> Any:
    """
    Safely get a value from a nested dictionary.

    Args:
        data: The dictionary to search
        *keys: The keys to follow
        default: Default value if key doesn't exist

    Returns:
        The value at the specified keys or the default value
    """
    for key in keys:
        try:
            data = data[key]
        except (KeyError, TypeError, IndexError):
            return default
    return data if data is not None else default


def display_name_or_default(name: Optional[str], default: str) -> str:
    """
    Return a display name that is safe to show in an email.

    Empty names and names that look like an email address fall back to the default.
    """
    if name and name.strip() and "@" not in name:
        return name.strip()
    return default
