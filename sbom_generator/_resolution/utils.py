"""Shared HTTP helpers for registry resolvers."""

import json
from typing import Any, Optional
from urllib.parse import quote

import requests

from ..http_client import DEFAULT_TIMEOUT
from ..logging_config import logger


def get_json(
    session: requests.Session,
    url: str,
    source: str,
    label: str,
    timeout: float = DEFAULT_TIMEOUT,
) -> Optional[Any]:
    """
    GET a registry URL and decode its JSON body.

    Every failure (timeout, connection error, 404, other status, invalid
    JSON) is logged and reported as None so the caller can fall back to
    "metadata absent".

    Args:
        session: requests.Session with configured headers
        url: Registry URL to fetch
        source: Registry name used in log messages (e.g. "npm")
        label: Package label used in log messages (e.g. "lodash@4.17.21")
        timeout: Per-request timeout in seconds

    Returns:
        Decoded JSON document, or None
    """
    response = _get(session, url, source, label, timeout)
    if response is None:
        return None
    try:
        return response.json()
    except (json.JSONDecodeError, ValueError) as e:
        logger.warning(f"JSON decode error for {source} {label}: {e}")
        return None


def get_text(
    session: requests.Session,
    url: str,
    source: str,
    label: str,
    timeout: float = DEFAULT_TIMEOUT,
) -> Optional[str]:
    """GET a registry URL and return its body as text, or None on any failure."""
    response = _get(session, url, source, label, timeout)
    if response is None:
        return None
    return response.text


def _get(
    session: requests.Session,
    url: str,
    source: str,
    label: str,
    timeout: float,
) -> Optional[requests.Response]:
    try:
        logger.debug(f"Fetching {source} metadata for {label}: {url}")
        response = session.get(url, timeout=timeout)
    except requests.exceptions.Timeout:
        logger.warning(f"Timeout fetching {source} metadata for {label}")
        return None
    except requests.exceptions.RequestException as e:
        logger.warning(f"Error fetching {source} metadata for {label}: {e}")
        return None

    if response.status_code == 200:
        return response
    if response.status_code == 404:
        logger.debug(f"Package not found on {source}: {label}")
    else:
        logger.warning(f"Failed to fetch {source} metadata for {label}: HTTP {response.status_code}")
    return None


def url_quote(value: str) -> str:
    """Percent-encode a path segment, including slashes."""
    return quote(value, safe="")


def parse_author(value: Any) -> Optional[str]:
    """
    Extract a display name from the author shapes registries use.

    Handles plain strings (``"Jane Doe <jane@example.com>"``), dicts with a
    ``name`` key and lists of either.
    """
    if not value:
        return None
    if isinstance(value, list):
        names = [name for name in (parse_author(item) for item in value) if name]
        return ", ".join(names) if names else None
    if isinstance(value, dict):
        name = value.get("name")
        return name.strip() if isinstance(name, str) and name.strip() else None
    if isinstance(value, str):
        name = value.split("<")[0].split("(")[0].strip()
        return name or None
    return None
