"""PyPI resolver for Python package metadata and dependencies."""

from typing import Any, Dict, List, Optional

import requests
from packaging.requirements import InvalidRequirement, Requirement

from sbom_generator.logging_config import logger

from ...http_client import DEFAULT_TIMEOUT
from ...license_utils import clean_license
from ...models import Ecosystem
from ..metadata import PackageMetadata, RegistryDependency
from ..utils import get_json, parse_author, url_quote
from ..versions import select_pypi_version

PYPI_API_BASE = "https://pypi.org/pypi"

# Simple in-memory cache
_cache: Dict[str, Optional[PackageMetadata]] = {}


def clear_cache() -> None:
    """Clear the PyPI metadata cache."""
    _cache.clear()


def parse_requires_dist(requires_dist: Optional[List[str]]) -> List[RegistryDependency]:
    """
    Turn ``info.requires_dist`` entries into dependencies.

    Entries guarded by an environment marker (extras, python_version, ...)
    are skipped, so the result does not depend on the interpreter running
    the resolution.
    """
    dependencies = []
    for entry in requires_dist or []:
        try:
            requirement = Requirement(entry)
        except InvalidRequirement:
            logger.debug(f"Skipping unparseable requirement: {entry}")
            continue
        if requirement.marker is not None:
            continue
        dependencies.append(RegistryDependency(requirement.name, str(requirement.specifier)))
    return dependencies


class PyPIResolver:
    """
    Resolver for the Python Package Index JSON API.

    Uses the version-specific endpoint (``/pypi/{name}/{version}/json``) so
    ``requires_dist`` describes the pinned release rather than the latest.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "pypi.org"

    @property
    def ecosystem(self) -> Ecosystem:
        return Ecosystem.PYPI

    def select_version(self, version_range: str) -> Optional[str]:
        return select_pypi_version(version_range)

    def fetch(self, name: str, version: str, session: requests.Session) -> Optional[PackageMetadata]:
        cache_key = f"pypi:{name}:{version}"
        if cache_key in _cache:
            logger.debug(f"Cache hit (PyPI): {name}@{version}")
            return _cache[cache_key]

        url = f"{PYPI_API_BASE}/{url_quote(name)}/{url_quote(version)}/json"
        data = get_json(session, url, self.name, f"{name}@{version}", self.timeout)

        metadata = self._normalize_response(name, data) if isinstance(data, dict) else None
        _cache[cache_key] = metadata
        return metadata

    def _normalize_response(self, package_name: str, data: Dict[str, Any]) -> PackageMetadata:
        info = data.get("info") or {}

        # Author, then maintainer, then the name part of the email fields
        author = parse_author(info.get("author")) or parse_author(info.get("maintainer"))
        if not author:
            email_field = info.get("author_email") or info.get("maintainer_email")
            if email_field and "<" in email_field:
                author = parse_author(email_field)

        homepage = info.get("home_page") or None
        if not homepage:
            for key, url_value in (info.get("project_urls") or {}).items():
                if key.lower() in ("homepage", "home", "home page"):
                    homepage = url_value
                    break

        download_url = None
        hashes: Dict[str, str] = {}
        release_files = data.get("urls") or []
        # Prefer a wheel, fall back to the first file (usually the sdist)
        chosen = next((f for f in release_files if f.get("packagetype") == "bdist_wheel"), None)
        if chosen is None and release_files:
            chosen = release_files[0]
        if chosen:
            download_url = chosen.get("url")
            sha256 = (chosen.get("digests") or {}).get("sha256")
            if sha256:
                hashes["SHA-256"] = sha256

        logger.debug(f"Successfully fetched PyPI metadata for: {package_name}")

        return PackageMetadata(
            license=clean_license(info.get("license_expression") or info.get("license")),
            description=info.get("summary") or None,
            homepage=homepage,
            author=author,
            download_url=download_url,
            hashes=hashes,
            dependencies=parse_requires_dist(info.get("requires_dist")),
            display_name=info.get("name"),
            source=self.name,
        )
