"""Maven Central resolver reading project POM files."""

import re
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional

import requests

from sbom_generator.logging_config import logger

from ...http_client import DEFAULT_TIMEOUT
from ...license_utils import clean_license
from ...models import Ecosystem
from ..metadata import PackageMetadata, RegistryDependency
from ..utils import get_text
from ..versions import select_interval_version

MAVEN_CENTRAL_BASE = "https://repo1.maven.org/maven2"

# Scopes that are not part of the runtime classpath
EXCLUDED_SCOPES = {"test", "provided", "system", "import"}

_PROPERTY = re.compile(r"\$\{([^}]+)\}")

# Simple in-memory cache
_cache: Dict[str, Optional[PackageMetadata]] = {}


def clear_cache() -> None:
    """Clear the Maven metadata cache."""
    _cache.clear()


def artifact_base_url(group_id: str, artifact_id: str, version: str) -> str:
    """Directory URL of an artifact version on Maven Central."""
    return f"{MAVEN_CENTRAL_BASE}/{group_id.replace('.', '/')}/{artifact_id}/{version}"


def _text(element: Optional[ET.Element]) -> Optional[str]:
    if element is None or element.text is None:
        return None
    value = element.text.strip()
    return value or None


def _pom_properties(root: ET.Element) -> Dict[str, str]:
    """Collect properties usable for ``${...}`` interpolation."""
    properties: Dict[str, str] = {}
    props = root.find("{*}properties")
    if props is not None:
        for child in props:
            key = child.tag.split("}", 1)[-1]
            if child.text:
                properties[key] = child.text.strip()

    parent_version = _text(root.find("{*}parent/{*}version"))
    parent_group = _text(root.find("{*}parent/{*}groupId"))
    version = _text(root.find("{*}version")) or parent_version
    group_id = _text(root.find("{*}groupId")) or parent_group

    for key, value in (
        ("project.version", version),
        ("pom.version", version),
        ("version", version),
        ("project.groupId", group_id),
        ("project.artifactId", _text(root.find("{*}artifactId"))),
        ("project.parent.version", parent_version),
        ("project.parent.groupId", parent_group),
    ):
        if value:
            properties.setdefault(key, value)
    return properties


def interpolate(value: str, properties: Dict[str, str]) -> str:
    """Replace ``${name}`` placeholders with POM properties; unknown ones are kept."""
    for _ in range(5):
        replaced = _PROPERTY.sub(lambda m: properties.get(m.group(1), m.group(0)), value)
        if replaced == value:
            break
        value = replaced
    return value


def parse_pom_dependencies(root: ET.Element, properties: Dict[str, str]) -> List[RegistryDependency]:
    """
    Extract runtime dependencies declared directly in a POM.

    Dependencies from ``dependencyManagement`` are ignored; missing versions
    (managed by a parent) stay empty and cannot be pinned.
    """
    dependencies = []
    for dep in root.findall("{*}dependencies/{*}dependency"):
        scope = (_text(dep.find("{*}scope")) or "compile").lower()
        optional = (_text(dep.find("{*}optional")) or "false").lower() == "true"
        if scope in EXCLUDED_SCOPES or optional:
            continue
        group_id = _text(dep.find("{*}groupId"))
        artifact_id = _text(dep.find("{*}artifactId"))
        if not group_id or not artifact_id:
            continue
        version = interpolate(_text(dep.find("{*}version")) or "", properties)
        dependencies.append(
            RegistryDependency(f"{interpolate(group_id, properties)}:{interpolate(artifact_id, properties)}", version)
        )
    return dependencies


class MavenResolver:
    """
    Resolver for Maven Central.

    Reads ``{artifact}-{version}.pom`` for license, description, URL,
    developers and the directly declared dependencies. Parent POM
    inheritance is not followed.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "maven-central"

    @property
    def ecosystem(self) -> Ecosystem:
        return Ecosystem.MAVEN

    def select_version(self, version_range: str) -> Optional[str]:
        return select_interval_version(version_range)

    def fetch(self, name: str, version: str, session: requests.Session) -> Optional[PackageMetadata]:
        if ":" not in name:
            logger.warning(f"Maven package name must be 'group:artifact', got: {name}")
            return None

        cache_key = f"maven:{name}:{version}"
        if cache_key in _cache:
            logger.debug(f"Cache hit (Maven): {name}@{version}")
            return _cache[cache_key]

        group_id, artifact_id = name.split(":", 1)
        base = artifact_base_url(group_id, artifact_id, version)
        pom = get_text(session, f"{base}/{artifact_id}-{version}.pom", self.name, f"{name}@{version}", self.timeout)

        metadata = None
        if pom is not None:
            try:
                root = ET.fromstring(pom)
            except ET.ParseError as e:
                logger.warning(f"Invalid POM for Maven package {name}@{version}: {e}")
            else:
                metadata = self._normalize_response(name, base, artifact_id, version, root)

        _cache[cache_key] = metadata
        return metadata

    def _normalize_response(
        self, name: str, base: str, artifact_id: str, version: str, root: ET.Element
    ) -> PackageMetadata:
        properties = _pom_properties(root)

        licenses = [_text(lic) for lic in root.findall("{*}licenses/{*}license/{*}name")]
        licenses = [lic for lic in licenses if lic]
        license_value = None
        if licenses:
            cleaned = [clean_license(lic) or lic for lic in licenses]
            license_value = cleaned[0] if len(cleaned) == 1 else " OR ".join(f"({lic})" for lic in cleaned)
            license_value = clean_license(license_value)

        author = _text(root.find("{*}developers/{*}developer/{*}name")) or _text(
            root.find("{*}organization/{*}name")
        )

        packaging = (_text(root.find("{*}packaging")) or "jar").lower()
        extension = "pom" if packaging == "pom" else "jar"

        logger.debug(f"Successfully fetched Maven metadata for: {name}")

        return PackageMetadata(
            license=license_value,
            description=_text(root.find("{*}description")) or _text(root.find("{*}name")),
            homepage=_text(root.find("{*}url")),
            author=author,
            download_url=f"{base}/{artifact_id}-{version}.{extension}",
            dependencies=parse_pom_dependencies(root, properties),
            source=self.name,
        )
