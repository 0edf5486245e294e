"""In-memory package graph with identity-based deduplication."""

from typing import Dict, Iterable, Iterator, List, Optional

from .exceptions import GraphFrozenError
from .logging_config import logger
from .models import (
    DependencyEdge,
    Ecosystem,
    PackageFile,
    PackageIdentity,
    PackageNode,
    normalize_name,
    normalize_version,
)


class PackageGraph:
    """
    Insertion-ordered store of package nodes keyed by PackageIdentity.

    The graph owns deduplication: merging a node whose identity is already
    present folds its metadata, edges and directness into the existing node.
    Identities from different ecosystems never collide.

    Once every resolver has finished the graph is frozen; assemblers only
    read from a frozen graph.

    Example:
        graph = PackageGraph()
        graph.merge(npm_nodes).merge(pypi_nodes)
        graph.freeze()

        for node in graph:
            for edge, target in graph.resolved_edges(node):
                ...
    """

    def __init__(self, nodes: Optional[Iterable[PackageNode]] = None) -> None:
        self._nodes: Dict[PackageIdentity, PackageNode] = {}
        self._frozen = False
        if nodes is not None:
            self.merge(nodes)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "PackageGraph":
        """Mark the graph read-only. Further merges raise GraphFrozenError."""
        self._frozen = True
        return self

    def _check_mutable(self) -> None:
        if self._frozen:
            raise GraphFrozenError("Package graph is frozen and can no longer be modified")

    def merge(self, nodes: Iterable[PackageNode]) -> "PackageGraph":
        """
        Merge nodes into the graph.

        Re-inserting an existing identity keeps the first non-empty value of
        every metadata field, ORs the direct flag and unions the edges, so
        merging the same nodes twice leaves the graph unchanged.

        Args:
            nodes: Nodes produced by a resolver (or any other source)

        Returns:
            The graph itself, to allow chaining
        """
        self._check_mutable()
        added = 0
        for node in nodes:
            existing = self._nodes.get(node.identity)
            if existing is None:
                self._nodes[node.identity] = _copy_node(node)
                added += 1
            else:
                existing.merge(node)
        logger.debug(f"Merged nodes into graph: {added} new, {len(self._nodes)} total")
        return self

    def attach_files(self, identity: PackageIdentity, files: Iterable[PackageFile]) -> bool:
        """
        Attach a file listing to a resolved node.

        File listings are pure enrichment; identity and edges are untouched.

        Returns:
            True if the node exists and received the files
        """
        self._check_mutable()
        node = self._nodes.get(identity)
        if node is None:
            logger.debug(f"No node for file listing: {identity}")
            return False
        node.files = list(files)
        return True

    def get(self, identity: PackageIdentity) -> Optional[PackageNode]:
        return self._nodes.get(identity)

    @property
    def nodes(self) -> List[PackageNode]:
        """All nodes in insertion order."""
        return list(self._nodes.values())

    @property
    def direct_nodes(self) -> List[PackageNode]:
        return [node for node in self._nodes.values() if node.direct]

    @property
    def transitive_nodes(self) -> List[PackageNode]:
        return [node for node in self._nodes.values() if not node.direct]

    @property
    def ecosystems(self) -> List[Ecosystem]:
        """Ecosystems present in the graph, in first-seen order."""
        seen: List[Ecosystem] = []
        for identity in self._nodes:
            if identity.ecosystem not in seen:
                seen.append(identity.ecosystem)
        return seen

    def find_edge_target(self, source: PackageNode, edge: DependencyEdge) -> Optional[PackageNode]:
        """
        Match an edge to a node by (name, resolved version or declared range).

        Matching stays inside the source node's ecosystem.

        Returns:
            The target node, or None for a dangling edge
        """
        ecosystem = source.ecosystem
        identity = PackageIdentity(
            ecosystem,
            normalize_name(ecosystem, edge.name),
            normalize_version(ecosystem, edge.target_version),
        )
        return self._nodes.get(identity)

    def resolved_edges(self, node: PackageNode) -> List[tuple[DependencyEdge, PackageNode]]:
        """Edges of a node that match a node in the graph, in edge order."""
        resolved = []
        for edge in node.edges:
            target = self.find_edge_target(node, edge)
            if target is not None:
                resolved.append((edge, target))
        return resolved

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, identity: object) -> bool:
        return identity in self._nodes

    def __iter__(self) -> Iterator[PackageNode]:
        return iter(list(self._nodes.values()))


def _copy_node(node: PackageNode) -> PackageNode:
    """Copy a node so later merges never mutate resolver output."""
    return PackageNode(
        identity=node.identity,
        display_name=node.display_name,
        license=node.license,
        description=node.description,
        homepage=node.homepage,
        author=node.author,
        download_url=node.download_url,
        purl=node.purl,
        hashes=dict(node.hashes),
        files=list(node.files),
        direct=node.direct,
        edges=[DependencyEdge(e.name, e.declared_range, e.resolved_version) for e in node.edges],
    )
