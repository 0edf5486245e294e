"""EcosystemResolver protocol for registry-backed dependency resolution."""

from typing import Optional, Protocol

import requests

from ..models import Ecosystem
from .metadata import PackageMetadata


class EcosystemResolver(Protocol):
    """
    Protocol for per-ecosystem resolvers.

    A resolver only knows how to talk to one registry: fetch the metadata
    of a single package version and pick a concrete version for a declared
    range. The breadth-first traversal that turns direct references into a
    complete node set is shared by every ecosystem (see traversal.py).

    Example:
        class CargoResolver:
            name = "crates.io"
            ecosystem = Ecosystem.CARGO

            def fetch(self, name, version, session):
                # GET https://crates.io/api/v1/crates/{name}/{version}
                ...

            def select_version(self, version_range):
                return select_cargo_version(version_range)
    """

    @property
    def name(self) -> str:
        """
        Human-readable registry name used in logs.

        Examples: "npm", "pypi.org", "crates.io"
        """
        ...

    @property
    def ecosystem(self) -> Ecosystem:
        """Ecosystem this resolver handles."""
        ...

    def fetch(self, name: str, version: str, session: requests.Session) -> Optional[PackageMetadata]:
        """
        Fetch metadata for one package version.

        Implementations should:
        1. Query the registry for (name, version)
        2. Extract license, description, homepage, author, download locator,
           content hashes and the version's declared runtime dependencies
        3. Handle errors gracefully (log and return None on failure)

        Args:
            name: Normalized package name
            version: Concrete version
            session: requests.Session with configured headers

        Returns:
            PackageMetadata if the registry answered, None otherwise
        """
        ...

    def select_version(self, version_range: str) -> Optional[str]:
        """
        Pick a concrete version for a declared range.

        Returns:
            The minimum satisfying version, or None if it cannot be determined
        """
        ...
