"""HTTP client utilities with consistent user agent."""

import requests

from . import __version__

USER_AGENT = f"sbom-generator/{__version__}"

DEFAULT_TIMEOUT = 10  # seconds


def get_default_headers() -> dict:
    """
    Get default HTTP headers with user agent.

    Returns:
        Dictionary of HTTP headers
    """
    return {"User-Agent": USER_AGENT}


def create_session() -> requests.Session:
    """Create a requests session carrying the default headers.

    Sessions are not shared between threads; every concurrently running
    resolver gets its own.
    """
    session = requests.Session()
    session.headers.update(get_default_headers())
    return session
