"""RubyGems.org resolver."""

from typing import Any, Dict, List, Optional

import requests

from sbom_generator.logging_config import logger

from ...http_client import DEFAULT_TIMEOUT
from ...license_utils import clean_license
from ...models import Ecosystem
from ..metadata import PackageMetadata, RegistryDependency
from ..utils import get_json, parse_author, url_quote
from ..versions import select_rubygems_version

RUBYGEMS_API_BASE = "https://rubygems.org/api/v2/rubygems"
RUBYGEMS_DOWNLOAD_BASE = "https://rubygems.org/downloads"

# Simple in-memory cache
_cache: Dict[str, Optional[PackageMetadata]] = {}


def clear_cache() -> None:
    """Clear the RubyGems metadata cache."""
    _cache.clear()


class RubyGemsResolver:
    """
    Resolver for rubygems.org.

    The v2 version endpoint returns a single gem version with licenses,
    authors, checksum and its runtime/development dependencies; only
    runtime dependencies are followed.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "rubygems.org"

    @property
    def ecosystem(self) -> Ecosystem:
        return Ecosystem.RUBYGEMS

    def select_version(self, version_range: str) -> Optional[str]:
        return select_rubygems_version(version_range)

    def fetch(self, name: str, version: str, session: requests.Session) -> Optional[PackageMetadata]:
        cache_key = f"rubygems:{name}:{version}"
        if cache_key in _cache:
            logger.debug(f"Cache hit (RubyGems): {name}@{version}")
            return _cache[cache_key]

        url = f"{RUBYGEMS_API_BASE}/{url_quote(name)}/versions/{url_quote(version)}.json"
        data = get_json(session, url, self.name, f"{name}@{version}", self.timeout)

        metadata = self._normalize_response(name, version, data) if isinstance(data, dict) else None
        _cache[cache_key] = metadata
        return metadata

    def _normalize_response(self, name: str, version: str, data: Dict[str, Any]) -> PackageMetadata:
        licenses = [lic for lic in data.get("licenses") or [] if lic]
        license_value = None
        if licenses:
            license_value = clean_license(" OR ".join(licenses)) if len(licenses) > 1 else clean_license(licenses[0])

        hashes = {}
        if data.get("sha"):
            hashes["SHA-256"] = data["sha"]

        authors = data.get("authors")
        if isinstance(authors, str):
            authors = [a.strip() for a in authors.split(",")]

        logger.debug(f"Successfully fetched RubyGems metadata for: {name}")

        return PackageMetadata(
            license=license_value,
            description=data.get("info") or data.get("summary") or None,
            homepage=data.get("homepage_uri") or data.get("project_uri") or None,
            author=parse_author(authors),
            download_url=f"{RUBYGEMS_DOWNLOAD_BASE}/{name}-{version}.gem",
            hashes=hashes,
            dependencies=_runtime_dependencies(data),
            display_name=data.get("name"),
            source=self.name,
        )


def _runtime_dependencies(data: Dict[str, Any]) -> List[RegistryDependency]:
    runtime = (data.get("dependencies") or {}).get("runtime") or []
    return [RegistryDependency(dep["name"], dep.get("requirements") or "") for dep in runtime if dep.get("name")]
