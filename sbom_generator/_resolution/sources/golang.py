"""Go module proxy resolver."""

from typing import Dict, List, Optional

import requests

from sbom_generator.logging_config import logger

from ...http_client import DEFAULT_TIMEOUT
from ...models import Ecosystem
from ..metadata import PackageMetadata, RegistryDependency
from ..utils import get_text
from ..versions import select_go_version

GO_PROXY_BASE = "https://proxy.golang.org"
GO_PKG_SITE = "https://pkg.go.dev"

# Simple in-memory cache
_cache: Dict[str, Optional[PackageMetadata]] = {}


def clear_cache() -> None:
    """Clear the Go module metadata cache."""
    _cache.clear()


def escape_module_path(path: str) -> str:
    """
    Escape a module path or version for the module proxy protocol.

    Upper-case letters become ``!`` followed by the lower-case letter
    (``github.com/Azure/go`` -> ``github.com/!azure/go``).
    """
    return "".join(f"!{c.lower()}" if c.isupper() else c for c in path)


def parse_go_mod_requires(go_mod: str) -> List[RegistryDependency]:
    """Extract ``require`` directives (single-line and block form) from a go.mod file."""
    requires = []
    in_block = False
    for raw_line in go_mod.splitlines():
        line = raw_line.split("//", 1)[0].strip()
        if not line:
            continue
        if in_block:
            if line == ")":
                in_block = False
                continue
            parts = line.split()
        elif line.startswith("require"):
            rest = line[len("require") :].strip()
            if rest == "(":
                in_block = True
                continue
            parts = rest.split()
        else:
            continue
        if len(parts) >= 2:
            requires.append(RegistryDependency(parts[0].strip('"'), parts[1]))
    return requires


class GoModuleResolver:
    """
    Resolver for Go modules via proxy.golang.org.

    The module proxy serves the ``go.mod`` of every published version; its
    ``require`` directives are the module's dependencies at exact minimum
    versions. The proxy carries no license or description data.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "proxy.golang.org"

    @property
    def ecosystem(self) -> Ecosystem:
        return Ecosystem.GO

    def select_version(self, version_range: str) -> Optional[str]:
        return select_go_version(version_range)

    def fetch(self, name: str, version: str, session: requests.Session) -> Optional[PackageMetadata]:
        cache_key = f"go:{name}:{version}"
        if cache_key in _cache:
            logger.debug(f"Cache hit (Go): {name}@{version}")
            return _cache[cache_key]

        base = f"{GO_PROXY_BASE}/{escape_module_path(name)}/@v/{escape_module_path(version)}"
        go_mod = get_text(session, f"{base}.mod", self.name, f"{name}@{version}", self.timeout)

        metadata = None
        if go_mod is not None:
            logger.debug(f"Successfully fetched Go module metadata for: {name}")
            metadata = PackageMetadata(
                homepage=f"{GO_PKG_SITE}/{name}",
                download_url=f"{base}.zip",
                dependencies=parse_go_mod_requires(go_mod),
                source=self.name,
            )

        _cache[cache_key] = metadata
        return metadata
