"""
Helpers shared by the definition parsers.
"""

import re
from typing import Optional
from urllib.parse import urlparse


_HOST_FALLBACK = re.compile(r'^(?:https?://)?([^/\s:?#]+)', re.IGNORECASE)


def extract_domain(url: str) -> str:
    """Extract the lower-cased host from a URL.

    Falls back to a manual match for scheme-less values and returns
    "unknown" when nothing host-like is present (e.g. a bare path).
    """
    if not url:
        return "unknown"

    try:
        host = urlparse(url).hostname
    except ValueError:
        host = None

    if host:
        return host.lower()

    match = _HOST_FALLBACK.match(url.strip())
    return match.group(1).lower() if match else "unknown"


def protocol_of(url: Optional[str]) -> str:
    """Return "https" for https:// URLs and "http" for everything else."""
    if url and url.lower().startswith("https://"):
        return "https"
    return "http"
