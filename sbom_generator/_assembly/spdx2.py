"""SPDX 2.3 JSON assembler."""

import io
import uuid
from typing import Any, Dict, List, Set, Tuple, Union

from spdx_tools.spdx.jsonschema.document_converter import DocumentConverter
from spdx_tools.spdx.model import (
    Actor,
    ActorType,
    Checksum,
    ChecksumAlgorithm,
    CreationInfo,
    Document,
    ExternalPackageRef,
    ExternalPackageRefCategory,
    File,
    Package,
    PackagePurpose,
    Relationship,
    RelationshipType,
    SpdxNoAssertion,
)
from spdx_tools.spdx.parser.error import SPDXParsingError
from spdx_tools.spdx.parser.jsonlikedict.json_like_dict_parser import JsonLikeDictParser
from spdx_tools.spdx.parser.jsonlikedict.license_expression_parser import LicenseExpressionParser
from spdx_tools.spdx.validation.document_validator import validate_full_spdx_document
from spdx_tools.spdx.writer.json.json_writer import write_document_to_stream

from ..exceptions import AssemblyError
from ..graph import PackageGraph
from ..license_utils import to_spdx_expression
from ..logging_config import logger
from ..models import PackageNode
from .common import node_purls, require_frozen
from .protocol import AssemblyOptions

SPDX_VERSION = "SPDX-2.3"
DATA_LICENSE = "CC0-1.0"
DOCUMENT_SPDX_ID = "SPDXRef-DOCUMENT"
DOCUMENT_NAMESPACE_BASE = "https://spdx.org/spdxdocs"

# Internal hash names -> SPDX checksum algorithms
CHECKSUM_ALGORITHMS = {
    "SHA-1": ChecksumAlgorithm.SHA1,
    "SHA-256": ChecksumAlgorithm.SHA256,
    "SHA-512": ChecksumAlgorithm.SHA512,
}


def package_spdx_id(index: int) -> str:
    return f"SPDXRef-Package-{index}"


def file_spdx_id(package_index: int, file_index: int) -> str:
    return f"SPDXRef-File-{package_index}-{file_index}"


class Spdx2Assembler:
    """
    Assemble an SPDX 2.3 JSON document on the spdx-tools data model.

    Relationships:
    - ``SPDXRef-DOCUMENT DESCRIBES`` every direct package
    - every transitive-only package ``DEPENDENCY_OF`` the document
    - one ``DEPENDS_ON`` per distinct (package, target) pair whose edge
      resolves to a package in the graph

    Unknown license, download location, supplier and copyright values are
    written as ``NOASSERTION``.
    """

    @property
    def format_name(self) -> str:
        return "spdx2"

    @property
    def file_extension(self) -> str:
        return ".spdx.json"

    def build_document(self, graph: PackageGraph, options: AssemblyOptions) -> Document:
        """Build the spdx-tools Document for a frozen graph."""
        require_frozen(graph)
        pairs = node_purls(graph)

        creation_info = CreationInfo(
            spdx_version=SPDX_VERSION,
            spdx_id=DOCUMENT_SPDX_ID,
            name=options.document_name,
            document_namespace=f"{DOCUMENT_NAMESPACE_BASE}/{options.document_name}-{uuid.uuid4()}",
            creators=self._creators(options),
            created=options.created,
            data_license=DATA_LICENSE,
        )
        document = Document(creation_info)

        ids: Dict[int, str] = {}
        for index, (node, purl) in enumerate(pairs, start=1):
            spdx_id = package_spdx_id(index)
            ids[id(node)] = spdx_id
            document.packages.append(self._package(node, purl, spdx_id, options))

            if node.direct:
                document.relationships.append(Relationship(DOCUMENT_SPDX_ID, RelationshipType.DESCRIBES, spdx_id))
            else:
                document.relationships.append(Relationship(spdx_id, RelationshipType.DEPENDENCY_OF, DOCUMENT_SPDX_ID))

            if options.include_files:
                for file_index, package_file in enumerate(node.files, start=1):
                    file_id = file_spdx_id(index, file_index)
                    document.files.append(self._file(package_file.path, package_file.sha256, file_id))
                    document.relationships.append(Relationship(spdx_id, RelationshipType.CONTAINS, file_id))

        seen: Set[Tuple[str, str]] = set()
        for node, _ in pairs:
            for _, target in graph.resolved_edges(node):
                pair = (ids[id(node)], ids[id(target)])
                if pair in seen:
                    continue
                seen.add(pair)
                document.relationships.append(Relationship(pair[0], RelationshipType.DEPENDS_ON, pair[1]))

        logger.debug(
            f"Assembled SPDX 2.3 document: {len(document.packages)} packages, "
            f"{len(document.relationships)} relationships"
        )
        return document

    def assemble(self, graph: PackageGraph, options: AssemblyOptions) -> Dict[str, Any]:
        return DocumentConverter().convert(self.build_document(graph, options))

    def render(self, graph: PackageGraph, options: AssemblyOptions) -> str:
        return serialize_spdx2_document(self.build_document(graph, options))

    def _creators(self, options: AssemblyOptions) -> List[Actor]:
        creators = [Actor(ActorType.TOOL, f"{options.tool_name}-{options.tool_version}")]
        if options.creator_name:
            creators.append(Actor(ActorType.ORGANIZATION, options.creator_name))
        return creators

    def _package(self, node: PackageNode, purl: str, spdx_id: str, options: AssemblyOptions) -> Package:
        package = Package(
            spdx_id=spdx_id,
            name=node.name,
            download_location=node.download_url or SpdxNoAssertion(),
            version=node.version,
            supplier=Actor(ActorType.PERSON, node.author) if node.author else SpdxNoAssertion(),
            files_analyzed=options.include_files and bool(node.files),
            homepage=node.homepage or None,
            license_concluded=SpdxNoAssertion(),
            license_declared=SpdxNoAssertion(),
            copyright_text=SpdxNoAssertion(),
            description=node.description or None,
            comment="Direct dependency" if node.direct else "Transitive dependency",
            external_references=[
                ExternalPackageRef(
                    category=ExternalPackageRefCategory.PACKAGE_MANAGER,
                    reference_type="purl",
                    locator=purl,
                )
            ],
            primary_package_purpose=PackagePurpose.APPLICATION if node.direct else PackagePurpose.LIBRARY,
        )

        license_expression = to_spdx_expression(node.license)
        if license_expression:
            try:
                package.license_declared = LicenseExpressionParser().parse_license_expression(license_expression)
            except SPDXParsingError as e:
                logger.warning(f"Failed to parse license expression '{license_expression}': {e.get_messages()}")
                license_expression = None
        if node.license and not license_expression:
            package.license_comment = f"Declared license: {node.license}"

        package.checksums = [
            Checksum(CHECKSUM_ALGORITHMS[algorithm], value.lower())
            for algorithm, value in node.hashes.items()
            if algorithm in CHECKSUM_ALGORITHMS
        ]
        return package

    def _file(self, path: str, sha256: str | None, spdx_id: str) -> File:
        checksums = [Checksum(ChecksumAlgorithm.SHA256, sha256.lower())] if sha256 else []
        return File(
            name=path if path.startswith("./") else f"./{path.lstrip('/')}",
            spdx_id=spdx_id,
            checksums=checksums,
            license_concluded=SpdxNoAssertion(),
            copyright_text=SpdxNoAssertion(),
        )


def serialize_spdx2_document(document: Document) -> str:
    """Serialize a Document through the spdx-tools JSON writer without re-validating it."""
    stream = io.StringIO()
    write_document_to_stream(document, stream, validate=False)
    return stream.getvalue()


def validate_spdx2_document(document: Union[Document, Dict[str, Any]]) -> List[str]:
    """
    Validate an SPDX 2.3 document with spdx-tools.

    A JSON-like dict is parsed back into the spdx-tools model first, then
    the model is run through the full document validator.

    Returns:
        Validation messages; empty when the document is valid

    Raises:
        AssemblyError: If a dict document cannot be parsed at all
    """
    if isinstance(document, dict):
        try:
            document = JsonLikeDictParser().parse(document)
        except SPDXParsingError as e:
            raise AssemblyError(f"Generated SPDX document could not be parsed: {'; '.join(e.get_messages())}") from e

    messages = [message.validation_message for message in validate_full_spdx_document(document)]
    for message in messages:
        logger.warning(f"SPDX validation: {message}")
    return messages
