"""HTTP client utilities with consistent user agent."""

from typing import Optional

import requests

from . import __version__

USER_AGENT = f"cdx-enrich/{__version__}"


def get_default_headers(content_type: Optional[str] = None) -> dict:
    """
    Get default HTTP headers with user agent.

    Args:
        content_type: Optional Accept/Content-Type value (e.g., "application/json")

    Returns:
        Dictionary of HTTP headers
    """
    headers = {"User-Agent": USER_AGENT}
    if content_type:
        headers["Accept"] = content_type
    return headers


def create_session() -> requests.Session:
    """Create a requests.Session preloaded with the default headers."""
    session = requests.Session()
    session.headers.update(get_default_headers(content_type="application/json"))
    return session
