"""crates.io resolver for Rust/Cargo packages."""

from typing import Any, Dict, List, Optional

import requests

from sbom_generator.logging_config import logger

from ...http_client import DEFAULT_TIMEOUT
from ...license_utils import clean_license
from ...models import Ecosystem
from ..metadata import PackageMetadata, RegistryDependency
from ..utils import get_json, url_quote
from ..versions import select_cargo_version

CRATESIO_API_BASE = "https://crates.io/api/v1/crates"

# Simple in-memory cache
_cache: Dict[str, Optional[PackageMetadata]] = {}


def clear_cache() -> None:
    """Clear the crates.io metadata cache."""
    _cache.clear()


class CargoResolver:
    """
    Resolver for crates.io.

    The version endpoint provides license, description and checksum; the
    crate object in the same response provides homepage and repository.
    Dependencies come from the version's ``/dependencies`` endpoint, keeping
    only non-optional ``normal`` dependencies.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "crates.io"

    @property
    def ecosystem(self) -> Ecosystem:
        return Ecosystem.CARGO

    def select_version(self, version_range: str) -> Optional[str]:
        return select_cargo_version(version_range)

    def fetch(self, name: str, version: str, session: requests.Session) -> Optional[PackageMetadata]:
        cache_key = f"cratesio:{name}:{version}"
        if cache_key in _cache:
            logger.debug(f"Cache hit (crates.io): {name}@{version}")
            return _cache[cache_key]

        label = f"{name}@{version}"
        base = f"{CRATESIO_API_BASE}/{url_quote(name)}/{url_quote(version)}"
        data = get_json(session, base, self.name, label, self.timeout)

        metadata = None
        if isinstance(data, dict):
            deps_data = get_json(session, f"{base}/dependencies", self.name, label, self.timeout)
            metadata = self._normalize_response(name, version, data, deps_data)

        _cache[cache_key] = metadata
        return metadata

    def _normalize_response(
        self, name: str, version: str, data: Dict[str, Any], deps_data: Optional[Any]
    ) -> PackageMetadata:
        version_data = data.get("version") or {}
        crate_data = data.get("crate") or {}

        hashes = {}
        if version_data.get("checksum"):
            hashes["SHA-256"] = version_data["checksum"]

        published_by = version_data.get("published_by") or {}
        author = published_by.get("name") or published_by.get("login")

        logger.debug(f"Successfully fetched crates.io metadata for: {name}")

        return PackageMetadata(
            license=clean_license(version_data.get("license")),
            description=version_data.get("description") or crate_data.get("description"),
            homepage=crate_data.get("homepage") or crate_data.get("repository"),
            author=author,
            download_url=f"{CRATESIO_API_BASE}/{name}/{version}/download",
            hashes=hashes,
            dependencies=_normal_dependencies(deps_data),
            display_name=crate_data.get("name"),
            source=self.name,
        )


def _normal_dependencies(deps_data: Optional[Any]) -> List[RegistryDependency]:
    if not isinstance(deps_data, dict):
        return []
    dependencies = []
    for dep in deps_data.get("dependencies") or []:
        if dep.get("kind", "normal") != "normal" or dep.get("optional"):
            continue
        dependencies.append(RegistryDependency(dep["crate_id"], dep.get("req") or "*"))
    return dependencies
