"""Helpers shared by the assemblers."""

import json
from typing import Any, Dict, List, Tuple

from ..exceptions import AssemblyError
from ..graph import PackageGraph
from ..models import PackageNode
from ..purl import purl_for_node


def require_frozen(graph: PackageGraph) -> None:
    """Assemblers only run on a finalized graph."""
    if not graph.frozen:
        raise AssemblyError("Package graph must be frozen before assembly")


def node_purls(graph: PackageGraph) -> List[Tuple[PackageNode, str]]:
    """Pair every node with its PURL, in insertion order.

    PURLs are computed up front so a mapping failure aborts the document
    before anything is emitted.
    """
    return [(node, purl_for_node(node)) for node in graph]


def to_json(document: Dict[str, Any]) -> str:
    return json.dumps(document, indent=2)
