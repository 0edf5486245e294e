"""SPDX 3.0.1 JSON-LD assembler.

Elements are built as ``spdx_tools.spdx3`` model objects in a ``Payload``
and serialized with the library's JSON-LD converter. The converter emits
the model's own class and property names, so the result is compacted to
the property names of the official 3.0.1 context (``software_Package``,
``software_packageVersion``, ...) and the shared creation info is written
once as a blank node. Element IDs are URNs with a fresh UUID per element,
so they never repeat across runs.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Set, Tuple

from semantic_version import Version
from spdx_tools.spdx3.model import (
    CreationInfo,
    ExternalIdentifier,
    ExternalIdentifierType,
    Hash,
    HashAlgorithm,
    Organization,
    Person,
    ProfileIdentifierType,
    Relationship,
    RelationshipType,
    SpdxDocument,
    Tool,
)
from spdx_tools.spdx3.model.software import SoftwarePurpose
from spdx_tools.spdx3.model.software.file import File as SpdxFile
from spdx_tools.spdx3.model.software.package import Package
from spdx_tools.spdx3.payload import Payload
from spdx_tools.spdx3.writer.json_ld.json_ld_converter import convert_payload_to_json_ld_list_of_elements

from ..graph import PackageGraph
from ..license_utils import to_spdx_expression
from ..logging_config import logger
from ..models import PackageFile, PackageNode
from .common import node_purls, require_frozen, to_json
from .protocol import AssemblyOptions

SPDX3_CONTEXT_URL = "https://spdx.org/rdf/3.0.1/spdx-context.jsonld"
SPDX3_SPEC_VERSION = "3.0.1"
SPDX3_NOASSERTION = "https://spdx.org/rdf/3.0.1/terms/Core/NoAssertion"
SPDX3_DATA_LICENSE = "https://spdx.org/licenses/CC0-1.0"
CREATION_INFO_ID = "_:creationinfo"

# Internal hash names -> SPDX 3 HashAlgorithm
HASH_ALGORITHMS = {
    "SHA-1": HashAlgorithm.SHA1,
    "SHA-256": HashAlgorithm.SHA256,
    "SHA-512": HashAlgorithm.SHA512,
}

# Model class names -> 3.0.1 context type names
_TYPE_NAMES = {
    "Package": "software_Package",
    "File": "software_File",
}

# Model property names -> 3.0.1 context property names of the software profile
_SOFTWARE_PROPERTIES = {
    "packageVersion": "software_packageVersion",
    "downloadLocation": "software_downloadLocation",
    "packageUrl": "software_packageUrl",
    "homepage": "software_homePage",
    "primaryPurpose": "software_primaryPurpose",
}

_EXTERNAL_IDENTIFIER_TYPES = {
    "purl": "packageUrl",
}


def make_spdx3_id(kind: str) -> str:
    """Generate a unique URN identifier for an SPDX 3 element."""
    return f"urn:spdx:{kind}:{uuid.uuid4()}"


def make_spdx3_creation_info(created: datetime, created_by: List[str]) -> CreationInfo:
    """Create the CreationInfo shared by every element of one document."""
    return CreationInfo(
        spec_version=Version(SPDX3_SPEC_VERSION),
        created=created,
        created_by=created_by,
        profile=[ProfileIdentifierType.CORE, ProfileIdentifierType.SOFTWARE],
        data_license="CC0-1.0",
    )


@dataclass
class Spdx3Build:
    """
    A populated payload plus the 3.0.1 vocabulary the model cannot express.

    Attributes:
        payload: Model elements in graph order
        relationship_types: Relationship ID -> relationship type name, for
            types missing from the model's RelationshipType enum
        license_expressions: License element ID -> SPDX license expression
    """

    payload: Payload
    relationship_types: Dict[str, str] = field(default_factory=dict)
    license_expressions: Dict[str, str] = field(default_factory=dict)


class Spdx3Assembler:
    """
    Assemble an SPDX 3.0.1 JSON-LD document.

    Relationships:
    - the ``SpdxDocument`` ``contains`` every direct package
    - every transitive-only package is ``dependencyOf`` the document
    - one ``dependsOn`` per distinct (package, target) pair whose edge
      resolves to a package in the graph
    """

    @property
    def format_name(self) -> str:
        return "spdx3"

    @property
    def file_extension(self) -> str:
        return ".spdx3.json"

    def build_payload(self, graph: PackageGraph, options: AssemblyOptions) -> Spdx3Build:
        """Build the spdx-tools Payload for a frozen graph."""
        require_frozen(graph)
        pairs = node_purls(graph)

        tool_id = make_spdx3_id("tool")
        organization_id = make_spdx3_id("organization") if options.creator_name else None
        created_by = [tool_id] + ([organization_id] if organization_id else [])
        creation_info = make_spdx3_creation_info(options.created, created_by)

        build = Spdx3Build(payload=Payload())
        payload = build.payload
        payload.add_element(
            Tool(spdx_id=tool_id, creation_info=creation_info, name=f"{options.tool_name}-{options.tool_version}")
        )
        if organization_id:
            payload.add_element(
                Organization(spdx_id=organization_id, creation_info=creation_info, name=options.creator_name)
            )

        document = SpdxDocument(
            spdx_id=make_spdx3_id("sbom"),
            name=options.document_name,
            element=[],
            root_element=[],
            creation_info=creation_info,
        )
        payload.add_element(document)

        ids: Dict[int, str] = {}
        content_ids: List[str] = []
        relationships: List[Relationship] = []

        def relate(from_id: str, relationship_type: RelationshipType, to_ids: List[str], type_name: str = "") -> None:
            relationship = Relationship(
                spdx_id=make_spdx3_id("relationship"),
                from_element=from_id,
                relationship_type=relationship_type,
                to=to_ids,
                creation_info=creation_info,
            )
            if type_name:
                build.relationship_types[relationship.spdx_id] = type_name
            relationships.append(relationship)

        for node, purl in pairs:
            originator_id = None
            if node.author:
                originator_id = make_spdx3_id("person")
            package = self._package(node, purl, creation_info, originator_id)
            payload.add_element(package)
            ids[id(node)] = package.spdx_id
            content_ids.append(package.spdx_id)

            if originator_id:
                payload.add_element(Person(spdx_id=originator_id, creation_info=creation_info, name=node.author))
                content_ids.append(originator_id)

            license_expression = to_spdx_expression(node.license)
            if license_expression:
                license_id = make_spdx3_id("license")
                build.license_expressions[license_id] = license_expression
                content_ids.append(license_id)
                relate(package.spdx_id, RelationshipType.OTHER, [license_id], "hasDeclaredLicense")

            if options.include_files and node.files:
                file_ids = []
                for package_file in node.files:
                    file_element = self._file(package_file, creation_info)
                    payload.add_element(file_element)
                    file_ids.append(file_element.spdx_id)
                content_ids.extend(file_ids)
                relate(package.spdx_id, RelationshipType.CONTAINS, file_ids)

        for node, _ in pairs:
            if node.direct:
                relate(document.spdx_id, RelationshipType.CONTAINS, [ids[id(node)]])
            else:
                relate(ids[id(node)], RelationshipType.OTHER, [document.spdx_id], "dependencyOf")

        seen: Set[Tuple[str, str]] = set()
        for node, _ in pairs:
            for _, target in graph.resolved_edges(node):
                pair = (ids[id(node)], ids[id(target)])
                if pair in seen:
                    continue
                seen.add(pair)
                relate(pair[0], RelationshipType.DEPENDS_ON, [pair[1]])

        for relationship in relationships:
            payload.add_element(relationship)

        document.root_element = [ids[id(node)] for node, _ in pairs if node.direct]
        document.element = content_ids + [relationship.spdx_id for relationship in relationships]

        logger.debug(f"Assembled SPDX 3.0.1 document: {len(pairs)} packages, {len(relationships)} relationships")
        return build

    def assemble(self, graph: PackageGraph, options: AssemblyOptions) -> Dict[str, Any]:
        return payload_to_json_ld(self.build_payload(graph, options))

    def render(self, graph: PackageGraph, options: AssemblyOptions) -> str:
        return to_json(self.assemble(graph, options))

    def _package(
        self, node: PackageNode, purl: str, creation_info: CreationInfo, originator_id: Optional[str]
    ) -> Package:
        hashes = [
            Hash(algorithm=HASH_ALGORITHMS[algorithm], hash_value=value.lower())
            for algorithm, value in node.hashes.items()
            if algorithm in HASH_ALGORITHMS
        ]
        return Package(
            spdx_id=make_spdx3_id("package"),
            name=node.name,
            creation_info=creation_info,
            description=node.description or None,
            verified_using=hashes,
            external_identifier=[
                ExternalIdentifier(external_identifier_type=ExternalIdentifierType.PURL, identifier=purl)
            ],
            originated_by=[originator_id] if originator_id else None,
            primary_purpose=SoftwarePurpose.APPLICATION if node.direct else SoftwarePurpose.LIBRARY,
            package_version=node.version,
            download_location=node.download_url or SPDX3_NOASSERTION,
            package_url=purl,
            homepage=node.homepage or None,
        )

    def _file(self, package_file: PackageFile, creation_info: CreationInfo) -> SpdxFile:
        hashes = []
        if package_file.sha256:
            hashes.append(Hash(algorithm=HashAlgorithm.SHA256, hash_value=package_file.sha256.lower()))
        return SpdxFile(
            spdx_id=make_spdx3_id("file"),
            name=package_file.path,
            creation_info=creation_info,
            verified_using=hashes,
        )


def payload_to_json_ld(build: Spdx3Build) -> Dict[str, Any]:
    """
    Serialize a built payload as a 3.0.1 JSON-LD document.

    The converter output is compacted: ``@type`` becomes ``type`` with
    context type names, software properties get their ``software_``
    prefix, and the creation info embedded in every element is replaced
    by a reference to one ``CreationInfo`` blank node.
    """
    converted = convert_payload_to_json_ld_list_of_elements(build.payload)

    creation_info = converted[0]["creationInfo"]
    graph_elements: List[Dict[str, Any]] = [
        {
            "type": "CreationInfo",
            "@id": CREATION_INFO_ID,
            "specVersion": creation_info["specVersion"],
            "created": creation_info["created"],
            "createdBy": creation_info["createdBy"],
        }
    ]
    graph_elements.extend(_compact_element(element, build.relationship_types) for element in converted)
    graph_elements.extend(
        {
            "type": "simplelicensing_LicenseExpression",
            "@id": license_id,
            "creationInfo": CREATION_INFO_ID,
            "simplelicensing_licenseExpression": expression,
        }
        for license_id, expression in build.license_expressions.items()
    )
    return {"@context": SPDX3_CONTEXT_URL, "@graph": graph_elements}


def _compact_element(element: Dict[str, Any], relationship_types: Dict[str, str]) -> Dict[str, Any]:
    type_name = element.pop("@type")
    compacted: Dict[str, Any] = {
        "type": _TYPE_NAMES.get(type_name, type_name),
        "@id": element.pop("@id"),
        "creationInfo": CREATION_INFO_ID,
    }
    element.pop("creationInfo", None)

    for key, value in element.items():
        if key in ("verifiedUsing", "externalIdentifier"):
            value = [_compact_nested(item) for item in value]
        compacted[_SOFTWARE_PROPERTIES.get(key, key)] = value

    if type_name == "Relationship" and compacted["@id"] in relationship_types:
        compacted["relationshipType"] = relationship_types[compacted["@id"]]
    elif type_name == "SpdxDocument":
        compacted["dataLicense"] = SPDX3_DATA_LICENSE
        compacted["profileConformance"] = ["core", "software"]
        compacted.setdefault("rootElement", [])
        compacted.setdefault("element", [])
    return compacted


def _compact_nested(item: Dict[str, Any]) -> Dict[str, Any]:
    compacted = {"type": item.pop("@type")}
    compacted.update(item)
    identifier_type = compacted.get("externalIdentifierType")
    if identifier_type is not None:
        compacted["externalIdentifierType"] = _EXTERNAL_IDENTIFIER_TYPES.get(identifier_type, identifier_type)
    return compacted
