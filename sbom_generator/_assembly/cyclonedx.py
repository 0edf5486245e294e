"""CycloneDX 1.5 JSON assembler built on cyclonedx-python-lib."""

import json
from typing import Any, Dict, List, Optional

from cyclonedx.exception import CycloneDxException
from cyclonedx.model import ExternalReference, ExternalReferenceType, HashAlgorithm, HashType, XsUri
from cyclonedx.model.bom import Bom, OrganizationalEntity, Tool
from cyclonedx.model.component import Component, ComponentType
from cyclonedx.model.license import DisjunctiveLicense, LicenseExpression
from packageurl import PackageURL

from ..exceptions import AssemblyError
from ..graph import PackageGraph
from ..license_utils import to_spdx_expression
from ..logging_config import logger
from ..models import PackageFile, PackageNode
from .common import node_purls, require_frozen
from .protocol import AssemblyOptions
from .serialization import serialize_cyclonedx_bom

CYCLONEDX_SPEC_VERSION = "1.5"
ROOT_BOM_REF = "root-component"

SPDX_LOGICAL_OPERATORS = (" AND ", " OR ", " WITH ")

# Internal hash names -> CycloneDX hash algorithms
HASH_ALGORITHMS = {
    "SHA-1": HashAlgorithm.SHA_1,
    "SHA-256": HashAlgorithm.SHA_256,
    "SHA-512": HashAlgorithm.SHA_512,
}


def component_bom_ref(index: int) -> str:
    return f"pkg-{index}"


def make_license(license_value: str):
    """
    Build a CycloneDX license object.

    SPDX expressions with operators become LicenseExpression, single SPDX
    ids become DisjunctiveLicense(id=...), anything else a named license.
    """
    expression = to_spdx_expression(license_value)
    if expression is None:
        return DisjunctiveLicense(name=license_value)
    if any(op in expression for op in SPDX_LOGICAL_OPERATORS):
        return LicenseExpression(value=expression)
    return DisjunctiveLicense(id=expression)


def _external_reference(reference_type: ExternalReferenceType, url: Optional[str]) -> Optional[ExternalReference]:
    if not url:
        return None
    try:
        return ExternalReference(type=reference_type, url=XsUri(url))
    except CycloneDxException as e:
        logger.debug(f"Skipping invalid external reference URL {url}: {e}")
        return None


class CycloneDxAssembler:
    """
    Assemble a CycloneDX 1.5 JSON BOM.

    The document root is ``metadata.component`` (bom-ref ``root-component``).
    Every node becomes a ``library`` component with bom-ref ``pkg-N``. The
    dependency graph holds one entry for the root listing all direct
    components, plus one entry per component listing its resolved
    dependencies (empty when it has none).
    """

    def __init__(self, spec_version: str = CYCLONEDX_SPEC_VERSION) -> None:
        self.spec_version = spec_version

    @property
    def format_name(self) -> str:
        return "cyclonedx"

    @property
    def file_extension(self) -> str:
        return ".cdx.json"

    def build_bom(self, graph: PackageGraph, options: AssemblyOptions) -> Bom:
        """Build the cyclonedx-python-lib Bom object for a frozen graph."""
        require_frozen(graph)
        pairs = node_purls(graph)

        bom = Bom()
        bom.metadata.timestamp = options.created
        bom.metadata.tools.tools.add(Tool(name=options.tool_name, version=options.tool_version))
        if options.creator_name:
            bom.metadata.supplier = OrganizationalEntity(name=options.creator_name)

        root = Component(name=options.document_name, type=ComponentType.APPLICATION, bom_ref=ROOT_BOM_REF)
        bom.metadata.component = root

        components: Dict[int, Component] = {}
        for index, (node, purl) in enumerate(pairs, start=1):
            component = self._component(node, purl, component_bom_ref(index), options)
            components[id(node)] = component
            bom.components.add(component)

        bom.register_dependency(root, [components[id(node)] for node, _ in pairs if node.direct])
        for node, _ in pairs:
            targets = [components[id(target)] for _, target in graph.resolved_edges(node)]
            bom.register_dependency(components[id(node)], targets)

        logger.debug(f"Assembled CycloneDX BOM: {len(components)} components")
        return bom

    def assemble(self, graph: PackageGraph, options: AssemblyOptions) -> Dict[str, Any]:
        return json.loads(self.render(graph, options))

    def render(self, graph: PackageGraph, options: AssemblyOptions) -> str:
        bom = self.build_bom(graph, options)
        try:
            return serialize_cyclonedx_bom(bom, self.spec_version)
        except (CycloneDxException, ValueError) as e:
            raise AssemblyError(f"Failed to serialize CycloneDX BOM: {e}") from e

    def _component(self, node: PackageNode, purl: str, bom_ref: str, options: AssemblyOptions) -> Component:
        try:
            package_url = PackageURL.from_string(purl)
        except ValueError as e:
            raise AssemblyError(f"Invalid PURL for {node.identity}: {purl}") from e

        component = Component(
            name=node.name,
            version=node.version or None,
            type=ComponentType.LIBRARY,
            bom_ref=bom_ref,
            purl=package_url,
            description=node.description,
        )

        if node.author:
            component.supplier = OrganizationalEntity(name=node.author)

        if node.license:
            component.licenses.add(make_license(node.license))

        for algorithm, value in node.hashes.items():
            if algorithm in HASH_ALGORITHMS:
                component.hashes.add(HashType(alg=HASH_ALGORITHMS[algorithm], content=value.lower()))

        for reference in (
            _external_reference(ExternalReferenceType.DISTRIBUTION, node.download_url),
            _external_reference(ExternalReferenceType.WEBSITE, node.homepage),
        ):
            if reference is not None:
                component.external_references.add(reference)

        if options.include_files:
            for file_index, package_file in enumerate(node.files, start=1):
                component.components.add(self._file_component(package_file, f"{bom_ref}-file-{file_index}"))

        return component

    def _file_component(self, package_file: PackageFile, bom_ref: str) -> Component:
        hashes: List[HashType] = []
        if package_file.sha256:
            hashes.append(HashType(alg=HashAlgorithm.SHA_256, content=package_file.sha256.lower()))
        return Component(name=package_file.path, type=ComponentType.FILE, bom_ref=bom_ref, hashes=hashes)
