"""SbomAssembler protocol and options shared by all output formats."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol

from .. import __version__
from ..graph import PackageGraph

DEFAULT_TOOL_NAME = "sbom-generator"


@dataclass
class AssemblyOptions:
    """
    Options for a single document-generation call.

    Attributes:
        document_name: Name of the document and of its root component
        tool_name: Tool recorded as the document creator
        tool_version: Version of the creating tool
        creator_name: Optional organization recorded as an additional creator
        include_files: Emit per-package file listings when nodes carry them
        created: Creation timestamp; defaults to the current UTC time
    """

    document_name: str = "sbom"
    tool_name: str = DEFAULT_TOOL_NAME
    tool_version: str = __version__
    creator_name: Optional[str] = None
    include_files: bool = True
    created: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def timestamp(self) -> str:
        """Creation time as ``YYYY-MM-DDThh:mm:ssZ``."""
        return self.created.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class SbomAssembler(Protocol):
    """
    Protocol for SBOM output formats.

    Assemblers read a frozen PackageGraph and emit one complete document.
    Every node gets a sequential, document-local identifier in graph
    insertion order. Edges that match no node produce no relationship.
    """

    @property
    def format_name(self) -> str:
        """Canonical format name ("spdx2", "spdx3", "cyclonedx")."""
        ...

    @property
    def file_extension(self) -> str:
        """Conventional file suffix for the format, e.g. ".cdx.json"."""
        ...

    def assemble(self, graph: PackageGraph, options: AssemblyOptions) -> Dict[str, Any]:
        """
        Build the document as a JSON-ready dict.

        Raises:
            AssemblyError: If the graph is not frozen or cannot be mapped
        """
        ...

    def render(self, graph: PackageGraph, options: AssemblyOptions) -> str:
        """Build the document and serialize it to a JSON string."""
        ...
