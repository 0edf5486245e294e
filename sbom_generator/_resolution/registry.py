"""Resolver registry mapping ecosystems to their registry resolvers."""

from typing import Dict, Iterable, List, Optional

import requests

from ..exceptions import UnsupportedEcosystemError
from ..http_client import DEFAULT_TIMEOUT
from ..logging_config import logger
from ..models import DeclaredDependency, Ecosystem, PackageNode
from .protocol import EcosystemResolver
from .traversal import CancellationToken, resolve_dependencies


class ResolverRegistry:
    """
    Registry of ecosystem resolvers.

    Exactly one resolver is registered per ecosystem; registering another
    resolver for the same ecosystem replaces the previous one.

    Example:
        registry = ResolverRegistry()
        registry.register(NpmResolver())

        nodes = registry.resolve(Ecosystem.NPM, refs, session)
    """

    def __init__(self) -> None:
        self._resolvers: Dict[Ecosystem, EcosystemResolver] = {}

    def register(self, resolver: EcosystemResolver) -> None:
        """
        Register a resolver for its ecosystem.

        Args:
            resolver: Resolver implementing the EcosystemResolver protocol
        """
        if resolver.ecosystem in self._resolvers:
            logger.debug(f"Replacing resolver for {resolver.ecosystem.value}")
        self._resolvers[resolver.ecosystem] = resolver
        logger.debug(f"Registered resolver: {resolver.name} ({resolver.ecosystem.value})")

    def get(self, ecosystem: Ecosystem) -> Optional[EcosystemResolver]:
        return self._resolvers.get(ecosystem)

    def supports(self, ecosystem: Ecosystem) -> bool:
        return ecosystem in self._resolvers

    def resolve(
        self,
        ecosystem: Ecosystem,
        refs: Iterable[DeclaredDependency],
        session: requests.Session,
        cancel_token: Optional[CancellationToken] = None,
        include_transitive: bool = True,
    ) -> List[PackageNode]:
        """
        Resolve the direct references of one ecosystem.

        Raises:
            UnsupportedEcosystemError: If no resolver is registered for the ecosystem
            ResolutionCancelledError: If the token was cancelled
        """
        resolver = self._resolvers.get(ecosystem)
        if resolver is None:
            raise UnsupportedEcosystemError(f"No resolver registered for ecosystem: {ecosystem.value}")
        logger.debug(f"Resolving {ecosystem.value} dependencies with {resolver.name}")
        return resolve_dependencies(resolver, refs, session, cancel_token, include_transitive)

    @property
    def ecosystems(self) -> List[Ecosystem]:
        return list(self._resolvers)

    @property
    def registered_resolvers(self) -> List[str]:
        """Get names of all registered resolvers."""
        return [r.name for r in self._resolvers.values()]


def create_default_registry(timeout: float = DEFAULT_TIMEOUT) -> ResolverRegistry:
    """
    Create a ResolverRegistry with a resolver for every supported ecosystem.

    Args:
        timeout: Per-request timeout in seconds passed to every resolver

    Returns:
        Configured ResolverRegistry
    """
    from .sources import (
        CargoResolver,
        GoModuleResolver,
        MavenResolver,
        NpmResolver,
        NuGetResolver,
        PyPIResolver,
        RubyGemsResolver,
    )

    registry = ResolverRegistry()
    registry.register(NpmResolver(timeout=timeout))
    registry.register(NuGetResolver(timeout=timeout))
    registry.register(PyPIResolver(timeout=timeout))
    registry.register(MavenResolver(timeout=timeout))
    registry.register(CargoResolver(timeout=timeout))
    registry.register(GoModuleResolver(timeout=timeout))
    registry.register(RubyGemsResolver(timeout=timeout))
    return registry


def clear_all_caches() -> None:
    """Clear every resolver's metadata cache."""
    from .sources.cargo import clear_cache as clear_cargo
    from .sources.golang import clear_cache as clear_go
    from .sources.maven import clear_cache as clear_maven
    from .sources.npm import clear_cache as clear_npm
    from .sources.nuget import clear_cache as clear_nuget
    from .sources.pypi import clear_cache as clear_pypi
    from .sources.rubygems import clear_cache as clear_rubygems

    clear_npm()
    clear_nuget()
    clear_pypi()
    clear_maven()
    clear_cargo()
    clear_go()
    clear_rubygems()
    logger.debug("All resolver caches cleared")

