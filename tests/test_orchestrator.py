"""Tests for repository analysis and SBOM generation."""

import json

import pytest

from sbom_generator._assembly import AssemblyOptions
from sbom_generator._resolution import PackageMetadata, RegistryDependency
from sbom_generator._resolution.registry import ResolverRegistry
from sbom_generator._resolution.versions import select_npm_version
from sbom_generator.exceptions import ConfigurationError, ResolutionError
from sbom_generator.inventory import parse_inventory
from sbom_generator.models import Ecosystem, PackageIdentity
from sbom_generator.orchestrator import SbomOrchestrator, document_name_from_repo


class FakeResolver:
    """In-memory resolver for one ecosystem: {(name, version): [(dep, range), ...]}."""

    def __init__(self, ecosystem, packages):
        self._ecosystem = ecosystem
        self.packages = packages

    @property
    def name(self):
        return f"fake-{self._ecosystem.value}"

    @property
    def ecosystem(self):
        return self._ecosystem

    def select_version(self, version_range):
        return select_npm_version(version_range)

    def fetch(self, name, version, session):
        if (name, version) not in self.packages:
            return None
        return PackageMetadata(
            license="MIT",
            dependencies=[RegistryDependency(dep, rng) for dep, rng in self.packages[(name, version)]],
            source=self.name,
        )


class FailingRegistry(ResolverRegistry):
    def resolve(self, ecosystem, refs, session, cancel_token=None, include_transitive=True):
        raise ResolutionError("registry exploded")


@pytest.fixture
def registry():
    registry = ResolverRegistry()
    registry.register(FakeResolver(Ecosystem.NPM, {("a", "1.0.0"): [("b", "^1.0.0")], ("b", "1.0.0"): []}))
    registry.register(FakeResolver(Ecosystem.PYPI, {("requests", "2.31.0"): []}))
    return registry


@pytest.fixture
def inventory():
    return parse_inventory(
        {
            "repository": "https://github.com/owner/repo.git",
            "ref": "main",
            "manifests": [
                {"path": "package.json", "ecosystem": "npm", "dependencies": [{"name": "a", "version": "1.0.0"}]},
                {
                    "path": "requirements.txt",
                    "ecosystem": "pypi",
                    "dependencies": [{"name": "requests", "version": "2.31.0"}],
                },
            ],
            "files": [
                {"ecosystem": "npm", "name": "a", "version": "1.0.0", "files": [{"path": "index.js", "sha256": "0" * 64}]}
            ],
        }
    )


class TestDocumentName:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://github.com/owner/repo", "owner-repo"),
            ("https://github.com/owner/repo.git", "owner-repo"),
            ("git@github.com:owner/repo.git", "owner-repo"),
            ("owner/repo", "owner-repo"),
            ("https://gitlab.com/group/sub/project/", "sub-project"),
            ("repo", "sbom"),
            ("", "sbom"),
            (None, "sbom"),
        ],
    )
    def test_document_name_from_repo(self, url, expected):
        assert document_name_from_repo(url) == expected


class TestAnalyze:
    def test_resolves_all_ecosystems(self, registry, inventory):
        analysis = SbomOrchestrator(registry=registry).analyze(inventory)

        assert analysis.graph.frozen
        assert analysis.errors == []
        assert analysis.manifests == ["package.json", "requirements.txt"]
        assert analysis.package_counts == {Ecosystem.NPM: 2, Ecosystem.PYPI: 1}
        assert [node.name for node in analysis.graph] == ["a", "b", "requests"]
        assert analysis.document_name == "owner-repo"
        assert analysis.ref == "main"

    def test_merge_order_is_fixed(self, registry, inventory):
        inventory.manifests.reverse()
        analysis = SbomOrchestrator(registry=registry, max_workers=2).analyze(inventory)
        assert [node.ecosystem for node in analysis.graph] == [Ecosystem.NPM, Ecosystem.NPM, Ecosystem.PYPI]

    def test_file_listings_attached(self, registry, inventory):
        analysis = SbomOrchestrator(registry=registry).analyze(inventory)
        node = analysis.graph.get(PackageIdentity.create("npm", "a", "1.0.0"))
        assert [f.path for f in node.files] == ["index.js"]

    def test_file_listings_skipped(self, registry, inventory):
        analysis = SbomOrchestrator(registry=registry).analyze(inventory, include_files=False)
        node = analysis.graph.get(PackageIdentity.create("npm", "a", "1.0.0"))
        assert node.files == []

    def test_ecosystem_filter(self, registry, inventory):
        analysis = SbomOrchestrator(registry=registry).analyze(inventory, ecosystems=["pypi"])
        assert analysis.manifests == ["requirements.txt"]
        assert [node.name for node in analysis.graph] == ["requests"]

    def test_without_transitive(self, registry, inventory):
        analysis = SbomOrchestrator(registry=registry).analyze(inventory, include_transitive=False)
        assert [node.name for node in analysis.graph] == ["a", "requests"]

    def test_repository_url_override(self, registry, inventory):
        analysis = SbomOrchestrator(registry=registry).analyze(inventory, repository_url="other/project")
        assert analysis.document_name == "other-project"

    def test_unsupported_ecosystem_recorded(self, inventory):
        registry = ResolverRegistry()
        registry.register(FakeResolver(Ecosystem.NPM, {("a", "1.0.0"): []}))

        analysis = SbomOrchestrator(registry=registry).analyze(inventory)

        (error,) = analysis.errors
        assert error.manifest == "requirements.txt"
        assert error.ecosystem == Ecosystem.PYPI
        assert error.error_type == "UnsupportedEcosystem"
        assert [node.name for node in analysis.graph] == ["a"]

    def test_inventory_errors_carried(self, registry):
        inventory = parse_inventory({"manifests": [{"path": "broken.json"}]})
        analysis = SbomOrchestrator(registry=registry).analyze(inventory)
        assert [e.manifest for e in analysis.errors] == ["broken.json"]
        assert len(analysis.graph) == 0

    def test_cancelled_ecosystem_contributes_nothing(self, registry, inventory):
        orchestrator = SbomOrchestrator(registry=registry)
        orchestrator.cancel(Ecosystem.NPM)

        analysis = orchestrator.analyze(inventory)

        (error,) = analysis.errors
        assert error.error_type == "ResolutionCancelled"
        assert error.ecosystem == Ecosystem.NPM
        assert error.manifest == "package.json"
        assert [node.name for node in analysis.graph] == ["requests"]

    def test_cancel_all(self, registry, inventory):
        orchestrator = SbomOrchestrator(registry=registry)
        orchestrator.cancel()

        analysis = orchestrator.analyze(inventory)

        assert len(analysis.graph) == 0
        assert {e.error_type for e in analysis.errors} == {"ResolutionCancelled"}

    def test_cancellation_does_not_outlive_analyze(self, registry, inventory):
        orchestrator = SbomOrchestrator(registry=registry)
        orchestrator.cancel()
        orchestrator.analyze(inventory)

        analysis = orchestrator.analyze(inventory)

        assert analysis.errors == []
        assert [node.name for node in analysis.graph] == ["a", "b", "requests"]

    def test_resolution_error_recorded(self, inventory):
        registry = FailingRegistry()
        registry.register(FakeResolver(Ecosystem.NPM, {}))
        registry.register(FakeResolver(Ecosystem.PYPI, {}))

        analysis = SbomOrchestrator(registry=registry).analyze(inventory)

        assert [e.error_type for e in analysis.errors] == ["ResolutionError", "ResolutionError"]
        assert len(analysis.graph) == 0


class TestGenerate:
    @pytest.mark.parametrize("sbom_format", ["spdx2", "spdx-3.0.1", "cdx"])
    def test_generate_json(self, registry, inventory, sbom_format):
        orchestrator = SbomOrchestrator(registry=registry)
        analysis = orchestrator.analyze(inventory)

        document = json.loads(orchestrator.generate(analysis, sbom_format))
        assert document

    def test_default_document_name(self, registry, inventory):
        orchestrator = SbomOrchestrator(registry=registry)
        document = json.loads(orchestrator.generate(orchestrator.analyze(inventory), "spdx2"))
        assert document["name"] == "owner-repo"

    def test_explicit_options(self, registry, inventory):
        orchestrator = SbomOrchestrator(registry=registry)
        analysis = orchestrator.analyze(inventory)
        document = json.loads(orchestrator.generate(analysis, "spdx2", AssemblyOptions(document_name="custom")))
        assert document["name"] == "custom"

    def test_unknown_format(self, registry, inventory):
        orchestrator = SbomOrchestrator(registry=registry)
        analysis = orchestrator.analyze(inventory)
        with pytest.raises(ConfigurationError):
            orchestrator.generate(analysis, "swid")
