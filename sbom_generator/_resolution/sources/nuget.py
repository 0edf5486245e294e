"""NuGet resolver using the nuget.org V3 registration and catalog APIs."""

import base64
import binascii
import re
from typing import Any, Dict, List, Optional, Tuple

import requests

from sbom_generator.logging_config import logger

from ...http_client import DEFAULT_TIMEOUT
from ...license_utils import clean_license
from ...models import Ecosystem
from ..metadata import PackageMetadata, RegistryDependency
from ..utils import get_json, parse_author, url_quote
from ..versions import select_interval_version

NUGET_REGISTRATION_BASE = "https://api.nuget.org/v3/registration5-semver1"
NUGET_FLATCONTAINER_BASE = "https://api.nuget.org/v3-flatcontainer"

# Simple in-memory cache
_cache: Dict[str, Optional[PackageMetadata]] = {}

_FRAMEWORK = re.compile(r"^\.?(?P<family>[a-z]+)(?P<version>[0-9.]*)", re.IGNORECASE)

# Later families supersede earlier ones when picking a dependency group
_FRAMEWORK_FAMILIES = {
    "netframework": 1,
    "netstandard": 2,
    "netcoreapp": 3,
    "net": 4,
}


def clear_cache() -> None:
    """Clear the NuGet metadata cache."""
    _cache.clear()


def framework_rank(target_framework: Optional[str]) -> Tuple[int, Tuple[int, ...]]:
    """
    Sort key for NuGet target framework monikers.

    ``net8.0`` > ``netcoreapp3.1`` > ``netstandard2.0`` > ``net472``;
    groups without a framework rank lowest.
    """
    if not target_framework:
        return (0, ())
    match = _FRAMEWORK.match(target_framework.strip())
    if not match:
        return (0, ())
    family = match.group("family").lower()
    version_text = match.group("version")
    if family == "net" and version_text and "." not in version_text:
        # net45, net472: .NET Framework short names
        family = "netframework"
        version = tuple(int(c) for c in version_text)
    else:
        version = tuple(int(part) for part in version_text.split(".") if part.isdigit())
    if family == "net" and version and version[0] < 5:
        family = "netframework"
    return (_FRAMEWORK_FAMILIES.get(family, 0), version)


class NuGetResolver:
    """
    Resolver for nuget.org.

    The registration leaf for ``{id}/{version}`` points at the catalog
    entry, which holds the descriptive metadata and the dependency groups.
    Only the group of the highest target framework is followed.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "nuget.org"

    @property
    def ecosystem(self) -> Ecosystem:
        return Ecosystem.NUGET

    def select_version(self, version_range: str) -> Optional[str]:
        return select_interval_version(version_range)

    def fetch(self, name: str, version: str, session: requests.Session) -> Optional[PackageMetadata]:
        package_id = name.lower()
        package_version = version.lower()
        cache_key = f"nuget:{package_id}:{package_version}"
        if cache_key in _cache:
            logger.debug(f"Cache hit (NuGet): {name}@{version}")
            return _cache[cache_key]

        label = f"{name}@{version}"
        leaf_url = f"{NUGET_REGISTRATION_BASE}/{url_quote(package_id)}/{url_quote(package_version)}.json"
        leaf = get_json(session, leaf_url, self.name, label, self.timeout)

        metadata = None
        if isinstance(leaf, dict):
            catalog_entry = leaf.get("catalogEntry")
            if isinstance(catalog_entry, str):
                catalog_entry = get_json(session, catalog_entry, self.name, label, self.timeout)
            if isinstance(catalog_entry, dict):
                metadata = self._normalize_response(package_id, package_version, catalog_entry)
            else:
                logger.debug(f"No catalog entry for NuGet package {label}")

        _cache[cache_key] = metadata
        return metadata

    def _normalize_response(self, package_id: str, version: str, entry: Dict[str, Any]) -> PackageMetadata:
        hashes = {}
        if entry.get("packageHash") and (entry.get("packageHashAlgorithm") or "").upper() == "SHA512":
            try:
                hashes["SHA-512"] = base64.b64decode(entry["packageHash"]).hex()
            except (binascii.Error, ValueError):
                logger.debug(f"Ignoring malformed package hash for {package_id}")

        logger.debug(f"Successfully fetched NuGet metadata for: {package_id}")

        return PackageMetadata(
            license=clean_license(entry.get("licenseExpression")),
            description=entry.get("description") or entry.get("summary") or None,
            homepage=entry.get("projectUrl") or None,
            author=parse_author(entry.get("authors")),
            download_url=(
                f"{NUGET_FLATCONTAINER_BASE}/{package_id}/{version}/{package_id}.{version}.nupkg"
            ),
            hashes=hashes,
            dependencies=_select_dependency_group(entry.get("dependencyGroups") or []),
            display_name=entry.get("id"),
            source=self.name,
        )


def _select_dependency_group(groups: List[Dict[str, Any]]) -> List[RegistryDependency]:
    if not groups:
        return []
    group = max(groups, key=lambda g: framework_rank(g.get("targetFramework")))
    return [
        RegistryDependency(dep["id"], dep.get("range") or "")
        for dep in group.get("dependencies") or []
        if dep.get("id")
    ]
