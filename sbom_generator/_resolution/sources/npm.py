"""npm registry resolver."""

import base64
import binascii
from typing import Any, Dict, Optional

import requests

from sbom_generator.logging_config import logger

from ...http_client import DEFAULT_TIMEOUT
from ...license_utils import clean_license
from ...models import Ecosystem
from ..metadata import PackageMetadata, RegistryDependency
from ..utils import get_json, parse_author
from ..versions import select_npm_version

NPM_REGISTRY_BASE = "https://registry.npmjs.org"

# Simple in-memory cache
_cache: Dict[str, Optional[PackageMetadata]] = {}


def clear_cache() -> None:
    """Clear the npm metadata cache."""
    _cache.clear()


def encode_package_name(name: str) -> str:
    """Encode a package name for a registry path (``@scope/pkg`` -> ``@scope%2Fpkg``)."""
    return name.replace("/", "%2F")


def integrity_to_hashes(integrity: Optional[str]) -> Dict[str, str]:
    """Convert a Subresource Integrity string (``sha512-<base64>``) to hex digests."""
    hashes: Dict[str, str] = {}
    if not integrity:
        return hashes
    for entry in integrity.split():
        algorithm, _, encoded = entry.partition("-")
        key = {"sha256": "SHA-256", "sha512": "SHA-512", "sha1": "SHA-1"}.get(algorithm.lower())
        if not key or not encoded:
            continue
        try:
            hashes[key] = base64.b64decode(encoded).hex()
        except (binascii.Error, ValueError):
            logger.debug(f"Ignoring malformed integrity entry: {entry}")
    return hashes


class NpmResolver:
    """
    Resolver for the public npm registry.

    Uses the version document (``/{name}/{version}``), which carries the
    license, dist information and the runtime ``dependencies`` map.
    Dev, peer and optional dependencies are not followed.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "npm"

    @property
    def ecosystem(self) -> Ecosystem:
        return Ecosystem.NPM

    def select_version(self, version_range: str) -> Optional[str]:
        return select_npm_version(version_range)

    def fetch(self, name: str, version: str, session: requests.Session) -> Optional[PackageMetadata]:
        cache_key = f"npm:{name}:{version}"
        if cache_key in _cache:
            logger.debug(f"Cache hit (npm): {name}@{version}")
            return _cache[cache_key]

        url = f"{NPM_REGISTRY_BASE}/{encode_package_name(name)}/{version}"
        data = get_json(session, url, self.name, f"{name}@{version}", self.timeout)

        metadata = None
        if isinstance(data, dict):
            metadata = self._normalize_response(name, data)
        elif data is not None:
            logger.warning(f"Unexpected npm response for {name}@{version}")

        _cache[cache_key] = metadata
        return metadata

    def _normalize_response(self, name: str, data: Dict[str, Any]) -> PackageMetadata:
        dist = data.get("dist") or {}

        hashes = integrity_to_hashes(dist.get("integrity"))
        shasum = dist.get("shasum")
        if shasum:
            hashes.setdefault("SHA-1", shasum)

        dependencies = [
            RegistryDependency(dep_name, str(dep_range))
            for dep_name, dep_range in (data.get("dependencies") or {}).items()
        ]

        logger.debug(f"Successfully fetched npm metadata for: {name}")

        return PackageMetadata(
            license=clean_license(_extract_license(data)),
            description=data.get("description") or None,
            homepage=data.get("homepage") or None,
            author=parse_author(data.get("author")),
            download_url=dist.get("tarball"),
            hashes=hashes,
            dependencies=dependencies,
            display_name=data.get("name"),
            source=self.name,
        )


def _extract_license(data: Dict[str, Any]) -> Optional[str]:
    """npm licenses come as a string, a ``{"type": ...}`` object or a legacy list."""
    value = data.get("license")
    if isinstance(value, dict):
        value = value.get("type")
    if not value and isinstance(data.get("licenses"), list):
        types = [entry.get("type") for entry in data["licenses"] if isinstance(entry, dict) and entry.get("type")]
        value = " OR ".join(types) if types else None
    return value if isinstance(value, str) else None
