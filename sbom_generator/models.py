"""Core data models: ecosystems, package identities, nodes and edges."""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, NamedTuple, Optional

from .exceptions import UnsupportedEcosystemError


class Ecosystem(str, Enum):
    """Package ecosystems with transitive resolution support."""

    NPM = "npm"
    NUGET = "nuget"
    PYPI = "pypi"
    MAVEN = "maven"
    CARGO = "cargo"
    GO = "go"
    RUBYGEMS = "rubygems"

    @classmethod
    def parse(cls, value: "str | Ecosystem") -> "Ecosystem":
        """Parse an ecosystem name or alias (case-insensitive).

        Raises:
            UnsupportedEcosystemError: If the value names no known ecosystem.
        """
        if isinstance(value, Ecosystem):
            return value
        key = str(value).strip().lower()
        ecosystem = ECOSYSTEM_ALIASES.get(key)
        if ecosystem is None:
            raise UnsupportedEcosystemError(f"Unsupported ecosystem: {value!r}")
        return ecosystem


ECOSYSTEM_ALIASES: Dict[str, Ecosystem] = {
    "npm": Ecosystem.NPM,
    "node": Ecosystem.NPM,
    "nuget": Ecosystem.NUGET,
    "dotnet": Ecosystem.NUGET,
    "pypi": Ecosystem.PYPI,
    "pip": Ecosystem.PYPI,
    "python": Ecosystem.PYPI,
    "maven": Ecosystem.MAVEN,
    "cargo": Ecosystem.CARGO,
    "crates": Ecosystem.CARGO,
    "crates.io": Ecosystem.CARGO,
    "go": Ecosystem.GO,
    "golang": Ecosystem.GO,
    "gomodules": Ecosystem.GO,
    "rubygems": Ecosystem.RUBYGEMS,
    "gem": Ecosystem.RUBYGEMS,
    "gems": Ecosystem.RUBYGEMS,
}

_PYPI_SEPARATORS = re.compile(r"[-_.]+")


def normalize_name(ecosystem: Ecosystem, name: str) -> str:
    """Normalize a package name into its identity form for an ecosystem.

    Args:
        ecosystem: Ecosystem the name belongs to
        name: Raw package name as declared

    Returns:
        Normalized name used in PackageIdentity
    """
    name = name.strip()
    if ecosystem in (Ecosystem.NPM, Ecosystem.NUGET, Ecosystem.CARGO):
        return name.lower()
    if ecosystem == Ecosystem.PYPI:
        # PEP 503
        return _PYPI_SEPARATORS.sub("-", name).lower()
    if ecosystem == Ecosystem.MAVEN:
        parts = [part.strip() for part in name.split(":")]
        return ":".join(parts[:2])
    return name


def normalize_version(ecosystem: Ecosystem, version: str) -> str:
    """Normalize a concrete version string for use in PackageIdentity."""
    version = version.strip()
    if ecosystem == Ecosystem.GO:
        return version
    if ecosystem == Ecosystem.NUGET:
        version = version.lower()
    if len(version) > 1 and version[0] in "vV" and version[1].isdigit():
        version = version[1:]
    return version


class PackageIdentity(NamedTuple):
    """Deduplication key of a package: (ecosystem, name, version)."""

    ecosystem: Ecosystem
    name: str
    version: str

    @classmethod
    def create(cls, ecosystem: "Ecosystem | str", name: str, version: str) -> "PackageIdentity":
        """Build an identity from raw values, applying ecosystem normalization."""
        eco = Ecosystem.parse(ecosystem)
        return cls(eco, normalize_name(eco, name), normalize_version(eco, version))

    def __str__(self) -> str:
        return f"{self.ecosystem.value}:{self.name}@{self.version}"


@dataclass
class DeclaredDependency:
    """A dependency reference as declared in a manifest or lockfile.

    Attributes:
        ecosystem: Ecosystem the reference belongs to
        name: Package name as written in the manifest
        version_range: Declared version range (exact pin for lockfiles)
        direct: Whether the manifest declares this package directly
        locked: True when the version is an exact lockfile pin
        dependencies: Lockfile-provided dependencies of this entry
    """

    ecosystem: Ecosystem
    name: str
    version_range: str
    direct: bool = True
    locked: bool = False
    dependencies: List["DeclaredDependency"] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.ecosystem = Ecosystem.parse(self.ecosystem)


@dataclass
class DependencyEdge:
    """Edge from the owning node to a dependency.

    ``resolved_version`` is None when the declared range could not be pinned
    to a concrete version. Edges may point at packages absent from the graph.
    """

    name: str
    declared_range: str
    resolved_version: Optional[str] = None

    @property
    def target_version(self) -> str:
        """Version used to match the edge to a node."""
        return self.resolved_version if self.resolved_version is not None else self.declared_range


@dataclass(frozen=True)
class PackageFile:
    """A file contained in a package archive."""

    path: str
    sha256: Optional[str] = None
    size: Optional[int] = None


# Metadata fields merged first-non-empty-wins
METADATA_FIELDS = ("license", "description", "homepage", "author", "download_url", "purl")


@dataclass
class PackageNode:
    """A resolved package together with its metadata and outgoing edges."""

    identity: PackageIdentity
    display_name: Optional[str] = None
    license: Optional[str] = None
    description: Optional[str] = None
    homepage: Optional[str] = None
    author: Optional[str] = None
    download_url: Optional[str] = None
    purl: Optional[str] = None
    hashes: Dict[str, str] = field(default_factory=dict)
    files: List[PackageFile] = field(default_factory=list)
    direct: bool = False
    edges: List[DependencyEdge] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.display_name:
            self.display_name = self.identity.name

    @property
    def ecosystem(self) -> Ecosystem:
        return self.identity.ecosystem

    @property
    def name(self) -> str:
        return self.display_name or self.identity.name

    @property
    def version(self) -> str:
        return self.identity.version

    @property
    def sha256(self) -> Optional[str]:
        return self.hashes.get("SHA-256")

    def add_edge(self, edge: DependencyEdge) -> bool:
        """Add an edge unless one with the same (name, declared range) exists.

        A resolved version on the new edge fills in a missing one on the
        existing edge.

        Returns:
            True if a new edge was appended
        """
        for existing in self.edges:
            if existing.name == edge.name and existing.declared_range == edge.declared_range:
                if existing.resolved_version is None and edge.resolved_version is not None:
                    existing.resolved_version = edge.resolved_version
                return False
        self.edges.append(edge)
        return True

    def merge(self, other: "PackageNode") -> None:
        """Fold another node for the same identity into this one.

        First non-empty value wins per metadata field; ``direct`` is OR'ed.
        """
        if other.identity != self.identity:
            raise ValueError(f"Cannot merge {other.identity} into {self.identity}")

        for name in METADATA_FIELDS:
            if not getattr(self, name) and getattr(other, name):
                setattr(self, name, getattr(other, name))

        for algorithm, value in other.hashes.items():
            self.hashes.setdefault(algorithm, value)

        if not self.files and other.files:
            self.files = list(other.files)

        self.direct = self.direct or other.direct

        for edge in other.edges:
            self.add_edge(DependencyEdge(edge.name, edge.declared_range, edge.resolved_version))


@dataclass
class AnalysisError:
    """A recoverable problem recorded during analysis (not an exception).

    Attributes:
        manifest: Manifest path (or ecosystem label) the problem belongs to
        message: Human-readable description
        ecosystem: Ecosystem involved, when known
        error_type: Short category, e.g. "ParseError", "ResolutionCancelled"
    """

    manifest: str
    message: str
    ecosystem: Optional[Ecosystem] = None
    error_type: str = "ParseError"
