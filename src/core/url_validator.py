# src/core/url_validator.py
"""
Syntactic URL validation for remote filter lists.

Behavior:
- Allows only http/https schemes.
- Requires a hostname.
- Rejects out-of-range ports.
- Returns (ok: bool, reason: str) with stable messages used by tests.

No DNS lookups or domain whitelisting: filter lists are hosted on
arbitrary mirrors, including localhost during development.
"""

from urllib.parse import urlparse
from typing import Tuple
import logging

logger = logging.getLogger(__name__)


class URLValidator:
    def __init__(self):
        self.allowed_schemes = {"http", "https"}

    def validate_url(self, url: str) -> Tuple[bool, str]:
        if not isinstance(url, str) or not url.strip():
            return False, "Empty URL"
        try:
            parsed = urlparse(url)
            scheme = (parsed.scheme or "").lower()
            if scheme not in self.allowed_schemes:
                return False, f"Scheme '{scheme}' not allowed"

            if not parsed.hostname:
                return False, "No hostname provided"

            # .port raises ValueError for non-numeric or out-of-range ports
            parsed.port
            return True, ""
        except ValueError as e:
            logger.debug(f"URL validation error: {e}")
            return False, f"URL validation failed: {e}"


# Global validator instance (optional convenience)
url_validator = URLValidator()
