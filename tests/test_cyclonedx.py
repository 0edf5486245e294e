"""Tests for the CycloneDX 1.5 assembler."""

from datetime import datetime, timezone

import pytest
from cyclonedx.model.license import DisjunctiveLicense, LicenseExpression
from cyclonedx.output.json import JsonV1Dot5

from sbom_generator._assembly import AssemblyOptions, CycloneDxAssembler
from sbom_generator._assembly.cyclonedx import ROOT_BOM_REF, make_license
from sbom_generator._assembly.serialization import _get_cyclonedx_outputter
from sbom_generator.exceptions import AssemblyError
from sbom_generator.graph import PackageGraph
from sbom_generator.models import DependencyEdge, Ecosystem, PackageFile, PackageIdentity, PackageNode
from sbom_generator.purl import build_purl


def make_node(name, version, direct=False, edges=(), ecosystem="npm", **kwargs):
    node = PackageNode(identity=PackageIdentity.create(ecosystem, name, version), direct=direct, **kwargs)
    for edge in edges:
        node.add_edge(edge)
    return node


def dependencies_by_ref(bom):
    return {entry["ref"]: entry.get("dependsOn", []) for entry in bom["dependencies"]}


@pytest.fixture
def options():
    return AssemblyOptions(
        document_name="owner-repo",
        tool_version="1.0.0",
        created=datetime(2024, 5, 1, 12, 30, 0, tzinfo=timezone.utc),
    )


class TestCycloneDxAssembler:
    def test_metadata(self, options):
        graph = PackageGraph([make_node("lodash", "4.17.0", direct=True)]).freeze()
        bom = CycloneDxAssembler().assemble(graph, options)

        assert bom["bomFormat"] == "CycloneDX"
        assert bom["specVersion"] == "1.5"
        assert bom["metadata"]["component"]["bom-ref"] == ROOT_BOM_REF
        assert bom["metadata"]["component"]["name"] == "owner-repo"
        assert bom["metadata"]["component"]["type"] == "application"

    def test_single_direct_package(self, options):
        graph = PackageGraph([make_node("lodash", "4.17.0", direct=True, license="MIT")]).freeze()
        bom = CycloneDxAssembler().assemble(graph, options)

        (component,) = bom["components"]
        assert component["bom-ref"] == "pkg-1"
        assert component["type"] == "library"
        assert component["purl"] == "pkg:npm/lodash@4.17.0"
        assert component["licenses"] == [{"license": {"id": "MIT"}}]
        assert dependencies_by_ref(bom) == {ROOT_BOM_REF: ["pkg-1"], "pkg-1": []}

    def test_transitive_chain(self, options):
        a = make_node("a", "1.0.0", direct=True, edges=[DependencyEdge("b", "^1.0.0", "1.0.0")])
        b = make_node("b", "1.0.0")
        bom = CycloneDxAssembler().assemble(PackageGraph([a, b]).freeze(), options)

        assert len(bom["components"]) == 2
        assert len(bom["dependencies"]) == 3
        assert dependencies_by_ref(bom) == {ROOT_BOM_REF: ["pkg-1"], "pkg-1": ["pkg-2"], "pkg-2": []}

    def test_dangling_edge_ignored(self, options):
        a = make_node("a", "1.0.0", direct=True, edges=[DependencyEdge("missing", "^2.0.0", None)])
        bom = CycloneDxAssembler().assemble(PackageGraph([a]).freeze(), options)
        assert dependencies_by_ref(bom)["pkg-1"] == []

    def test_purl_matches_builder(self, options):
        node = make_node("org.slf4j:slf4j-api", "2.0.9", direct=True, ecosystem="maven")
        bom = CycloneDxAssembler().assemble(PackageGraph([node]).freeze(), options)
        assert bom["components"][0]["purl"] == build_purl(Ecosystem.MAVEN, "org.slf4j:slf4j-api", "2.0.9")

    def test_hashes_and_references(self, options):
        node = make_node(
            "a",
            "1.0.0",
            direct=True,
            hashes={"SHA-512": "F" * 128},
            homepage="https://example.com",
            download_url="https://registry.npmjs.org/a/-/a-1.0.0.tgz",
        )
        bom = CycloneDxAssembler().assemble(PackageGraph([node]).freeze(), options)
        component = bom["components"][0]

        assert component["hashes"] == [{"alg": "SHA-512", "content": "f" * 128}]
        reference_types = {ref["type"] for ref in component["externalReferences"]}
        assert reference_types == {"distribution", "website"}

    def test_files_nested_under_component(self, options):
        node = make_node("a", "1.0.0", direct=True, files=[PackageFile("lib/a.js", "0" * 64)])
        bom = CycloneDxAssembler().assemble(PackageGraph([node]).freeze(), options)

        (nested,) = bom["components"][0]["components"]
        assert nested["type"] == "file"
        assert nested["name"] == "lib/a.js"
        assert nested["bom-ref"] == "pkg-1-file-1"

    def test_files_skipped_when_disabled(self):
        node = make_node("a", "1.0.0", direct=True, files=[PackageFile("lib/a.js")])
        bom = CycloneDxAssembler().assemble(PackageGraph([node]).freeze(), AssemblyOptions(include_files=False))
        assert "components" not in bom["components"][0]

    def test_unfrozen_graph_rejected(self, options):
        with pytest.raises(AssemblyError):
            CycloneDxAssembler().assemble(PackageGraph([make_node("a", "1.0.0")]), options)


class TestMakeLicense:
    def test_single_identifier(self):
        license_obj = make_license("MIT")
        assert isinstance(license_obj, DisjunctiveLicense)
        assert license_obj.id == "MIT"

    def test_expression(self):
        license_obj = make_license("MIT OR Apache-2.0")
        assert isinstance(license_obj, LicenseExpression)
        assert license_obj.value == "MIT OR Apache-2.0"

    def test_free_text_becomes_named_license(self):
        license_obj = make_license("Some Custom License")
        assert isinstance(license_obj, DisjunctiveLicense)
        assert license_obj.name == "Some Custom License"


def test_format_metadata():
    assembler = CycloneDxAssembler()
    assert assembler.format_name == "cyclonedx"
    assert assembler.file_extension == ".cdx.json"


class TestOutputterSelection:
    def test_default_version_uses_json_v1_5(self):
        assert _get_cyclonedx_outputter("1.5") is JsonV1Dot5
        assert _get_cyclonedx_outputter("1.5.0") is JsonV1Dot5

    @pytest.mark.parametrize("spec_version", ["1.4", "1.6"])
    def test_other_versions_rejected(self, spec_version):
        with pytest.raises(ValueError, match="Unsupported CycloneDX version"):
            _get_cyclonedx_outputter(spec_version)
