"""Transitive dependency resolution against public package registries.

Each supported ecosystem has one resolver that knows its registry API;
the breadth-first traversal in traversal.py is shared by all of them.

Example usage:
    from sbom_generator._resolution import create_default_registry
    from sbom_generator.http_client import create_session

    registry = create_default_registry()
    with create_session() as session:
        nodes = registry.resolve(Ecosystem.NPM, refs, session)
"""

from .metadata import PackageMetadata, RegistryDependency
from .protocol import EcosystemResolver
from .registry import ResolverRegistry, clear_all_caches, create_default_registry
from .traversal import CancellationToken, Worklist, resolve_dependencies

__all__ = [
    # Main API
    "resolve_dependencies",
    "create_default_registry",
    "clear_all_caches",
    # Classes for advanced usage
    "ResolverRegistry",
    "EcosystemResolver",
    "CancellationToken",
    "Worklist",
    # Models
    "PackageMetadata",
    "RegistryDependency",
]
