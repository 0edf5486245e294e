"""Breadth-first transitive dependency traversal shared by all ecosystems."""

import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterable, List, Optional, Set, Tuple

import requests

from ..exceptions import ResolutionCancelledError, ResolutionError
from ..logging_config import logger
from ..models import DeclaredDependency, DependencyEdge, PackageIdentity, PackageNode, normalize_name
from ..purl import build_purl
from .metadata import PackageMetadata
from .protocol import EcosystemResolver


class CancellationToken:
    """Cooperative cancellation flag checked by the traversal loop."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, context: str = "") -> None:
        if self._event.is_set():
            raise ResolutionCancelledError(f"Resolution cancelled{': ' + context if context else ''}")


@dataclass
class WorkItem:
    """A package version waiting to be visited."""

    name: str
    version: str
    direct: bool = False
    locked: bool = False
    lock_dependencies: List[DeclaredDependency] = field(default_factory=list)


@dataclass
class Worklist:
    """FIFO queue plus visited set for one traversal call."""

    queue: Deque[WorkItem] = field(default_factory=deque)
    visited: Set[PackageIdentity] = field(default_factory=set)


def resolve_dependencies(
    resolver: EcosystemResolver,
    direct_refs: Iterable[DeclaredDependency],
    session: requests.Session,
    cancel_token: Optional[CancellationToken] = None,
    include_transitive: bool = True,
) -> List[PackageNode]:
    """
    Resolve direct references of one ecosystem into the full reachable node set.

    Every visited package is fetched exactly once. A failed fetch leaves a
    bare node; its siblings are still traversed. Edges are recorded for every
    declared dependency, including ones whose range cannot be pinned
    (``resolved_version=None``); only pinned children are enqueued.

    Lockfile references (``locked=True``) are only enriched with metadata:
    their edges come from the lockfile, never from the registry.

    Args:
        resolver: Registry resolver for the ecosystem
        direct_refs: Declared references, all of the resolver's ecosystem
        session: requests.Session used for every registry call
        cancel_token: Checked before each package is visited
        include_transitive: If False, children are recorded as edges only

    Returns:
        Nodes in discovery order

    Raises:
        ResolutionCancelledError: If the token was cancelled mid-traversal
        ResolutionError: If a reference belongs to another ecosystem
    """
    ecosystem = resolver.ecosystem
    worklist = Worklist()
    nodes: Dict[PackageIdentity, PackageNode] = {}

    refs = list(direct_refs)
    lock_index = _index_locked_refs(resolver, refs)
    for ref in refs:
        if ref.ecosystem != ecosystem:
            raise ResolutionError(f"{resolver.name} cannot resolve {ref.ecosystem.value} package {ref.name}")
        worklist.queue.append(_seed_item(resolver, ref))

    while worklist.queue:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled(f"{resolver.name} with {len(worklist.queue)} packages pending")

        item = worklist.queue.popleft()
        identity = PackageIdentity.create(ecosystem, item.name, item.version)
        if identity in worklist.visited:
            if item.direct:
                nodes[identity].direct = True
            continue
        worklist.visited.add(identity)

        node = PackageNode(
            identity=identity,
            display_name=item.name.strip(),
            direct=item.direct,
            purl=build_purl(ecosystem, item.name.strip(), identity.version),
        )
        nodes[identity] = node

        metadata = _fetch(resolver, identity, session)
        if metadata is not None:
            metadata.apply_to(node)

        if item.locked:
            children = [(dep.name, dep.version_range, dep.version_range.strip() or None) for dep in item.lock_dependencies]
        elif metadata is not None:
            children = [
                (dep.name, dep.version_range, resolver.select_version(dep.version_range)) for dep in metadata.dependencies
            ]
        else:
            children = []

        _visit_children(resolver, worklist, node, children, item.locked, lock_index, include_transitive)

    logger.debug(f"{resolver.name}: resolved {len(nodes)} packages from {len(refs)} direct references")
    return list(nodes.values())


def _seed_item(resolver: EcosystemResolver, ref: DeclaredDependency) -> WorkItem:
    if ref.locked:
        version = ref.version_range.strip()
    else:
        version = resolver.select_version(ref.version_range)
        if version is None:
            # Keep the declaration visible even though it cannot be pinned
            logger.warning(
                f"Could not pin {resolver.name} package {ref.name} range '{ref.version_range}', keeping it as declared"
            )
            version = ref.version_range.strip()
    return WorkItem(
        name=ref.name,
        version=version,
        direct=ref.direct,
        locked=ref.locked,
        lock_dependencies=list(ref.dependencies),
    )


def _index_locked_refs(
    resolver: EcosystemResolver, refs: List[DeclaredDependency]
) -> Dict[PackageIdentity, DeclaredDependency]:
    """Map lockfile entries by identity so children inherit their locked edges."""
    index: Dict[PackageIdentity, DeclaredDependency] = {}
    for ref in refs:
        if ref.locked and ref.ecosystem == resolver.ecosystem:
            index.setdefault(PackageIdentity.create(ref.ecosystem, ref.name, ref.version_range), ref)
    return index


def _fetch(resolver: EcosystemResolver, identity: PackageIdentity, session: requests.Session) -> Optional[PackageMetadata]:
    try:
        metadata = resolver.fetch(identity.name, identity.version, session)
    except Exception as e:
        logger.warning(f"Error fetching from {resolver.name} for {identity}: {e}")
        return None
    if metadata is None:
        logger.debug(f"No metadata from {resolver.name} for {identity}, keeping bare node")
    return metadata


def _visit_children(
    resolver: EcosystemResolver,
    worklist: Worklist,
    node: PackageNode,
    children: List[Tuple[str, str, Optional[str]]],
    locked: bool,
    lock_index: Dict[PackageIdentity, DeclaredDependency],
    include_transitive: bool,
) -> None:
    ecosystem = resolver.ecosystem
    for child_name, declared_range, resolved_version in children:
        node.add_edge(DependencyEdge(normalize_name(ecosystem, child_name), declared_range, resolved_version))

        if resolved_version is None:
            logger.debug(f"Unresolved range '{declared_range}' for {child_name} (required by {node.identity})")
            continue
        if not include_transitive:
            continue

        child_identity = PackageIdentity.create(ecosystem, child_name, resolved_version)
        if child_identity in worklist.visited:
            continue

        locked_ref = lock_index.get(child_identity)
        worklist.queue.append(
            WorkItem(
                name=child_name,
                version=resolved_version,
                direct=False,
                locked=locked,
                lock_dependencies=list(locked_ref.dependencies) if locked_ref else [],
            )
        )
