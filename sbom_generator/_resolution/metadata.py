"""Registry metadata fetched for a single package version."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..models import PackageNode


@dataclass
class RegistryDependency:
    """A dependency declared by a package version in its registry metadata."""

    name: str
    version_range: str


@dataclass
class PackageMetadata:
    """
    Metadata for one package version, as returned by an ecosystem registry.

    All fields are optional; resolvers populate what the registry provides.
    ``dependencies`` is the version's own declared dependency list, already
    filtered to the runtime dependencies of that ecosystem.
    """

    license: Optional[str] = None
    description: Optional[str] = None
    homepage: Optional[str] = None
    author: Optional[str] = None
    download_url: Optional[str] = None
    hashes: Dict[str, str] = field(default_factory=dict)  # algorithm ("SHA-256") -> hex digest
    dependencies: List[RegistryDependency] = field(default_factory=list)
    display_name: Optional[str] = None

    # Name of the resolver that produced the metadata
    source: str = ""

    def apply_to(self, node: PackageNode) -> None:
        """Fill empty node fields from this metadata. Existing values win."""
        for name in ("license", "description", "homepage", "author", "download_url"):
            value = getattr(self, name)
            if value and not getattr(node, name):
                setattr(node, name, value)
        for algorithm, digest in self.hashes.items():
            node.hashes.setdefault(algorithm, digest)
        if self.display_name and node.display_name == node.identity.name:
            node.display_name = self.display_name
