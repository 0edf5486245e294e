"""Tests for dependency inventory loading."""

import json

import pytest

from sbom_generator.exceptions import InventoryError
from sbom_generator.inventory import inventory_from_dependencies, load_inventory, parse_inventory
from sbom_generator.models import Ecosystem, PackageIdentity

INVENTORY = {
    "repository": "https://github.com/owner/repo",
    "ref": "v1.2.0",
    "manifests": [
        {"path": "package.json", "ecosystem": "npm", "dependencies": [{"name": "lodash", "version": "^4.17.0"}]},
        {
            "path": "package-lock.json",
            "ecosystem": "npm",
            "lockfile": True,
            "dependencies": [
                {"name": "a", "version": "1.0.0", "dependencies": {"b": "1.0.0"}},
                {"name": "b", "version": "1.0.0", "direct": False},
            ],
        },
    ],
    "files": [{"ecosystem": "npm", "name": "a", "version": "1.0.0", "files": [{"path": "index.js", "size": "12"}]}],
}


class TestParseInventory:
    def test_repository_and_ref(self):
        inventory = parse_inventory(INVENTORY)
        assert inventory.repository_url == "https://github.com/owner/repo"
        assert inventory.ref == "v1.2.0"
        assert inventory.errors == []

    def test_manifest_dependencies(self):
        manifest = parse_inventory(INVENTORY).manifests[0]

        assert manifest.path == "package.json"
        assert manifest.ecosystem == Ecosystem.NPM
        assert manifest.lockfile is False
        (dependency,) = manifest.dependencies
        assert dependency.name == "lodash"
        assert dependency.version_range == "^4.17.0"
        assert dependency.direct is True
        assert dependency.locked is False

    def test_lockfile_nested_dependencies(self):
        lock = parse_inventory(INVENTORY).manifests[1]

        assert lock.lockfile is True
        a, b = lock.dependencies
        assert a.locked is True
        assert [(child.name, child.version_range, child.direct, child.locked) for child in a.dependencies] == [
            ("b", "1.0.0", False, True)
        ]
        assert b.direct is False

    def test_nested_dependencies_as_list(self):
        inventory = parse_inventory(
            {
                "manifests": [
                    {
                        "path": "Cargo.lock",
                        "ecosystem": "cargo",
                        "lockfile": True,
                        "dependencies": [
                            {"name": "serde", "version": "1.0.0", "dependencies": [{"name": "serde_derive", "version": "1.0.0"}]}
                        ],
                    }
                ]
            }
        )
        (serde,) = inventory.manifests[0].dependencies
        assert [child.name for child in serde.dependencies] == ["serde_derive"]

    def test_file_listings(self):
        (listing,) = parse_inventory(INVENTORY).file_listings
        assert listing.identity == PackageIdentity.create("npm", "a", "1.0.0")
        assert listing.files[0].path == "index.js"
        assert listing.files[0].size == 12
        assert listing.files[0].sha256 is None

    def test_ecosystem_alias(self):
        inventory = parse_inventory({"manifests": [{"path": "go.mod", "ecosystem": "golang", "dependencies": []}]})
        assert inventory.manifests[0].ecosystem == Ecosystem.GO

    def test_invalid_manifest_recorded_and_skipped(self):
        inventory = parse_inventory(
            {
                "manifests": [
                    {"path": "pom.xml", "ecosystem": "maven", "dependencies": [{"version": "1.0"}]},
                    {"path": "Gemfile", "ecosystem": "rubygems", "dependencies": [{"name": "rails", "version": "7.1.0"}]},
                ]
            }
        )

        assert [m.path for m in inventory.manifests] == ["Gemfile"]
        (error,) = inventory.errors
        assert error.manifest == "pom.xml"
        assert error.ecosystem == Ecosystem.MAVEN
        assert error.error_type == "ParseError"

    def test_unknown_ecosystem_recorded(self):
        inventory = parse_inventory({"manifests": [{"path": "build.zig", "ecosystem": "zig", "dependencies": []}]})
        (error,) = inventory.errors
        assert error.manifest == "build.zig"
        assert error.ecosystem is None

    def test_manifest_without_path(self):
        inventory = parse_inventory({"manifests": ["not-an-object"]})
        assert inventory.errors[0].manifest == "manifests[0]"

    def test_invalid_file_listing(self):
        inventory = parse_inventory({"manifests": [], "files": [{"ecosystem": "npm", "name": "a"}]})
        (error,) = inventory.errors
        assert error.manifest == "files[0]"
        assert error.error_type == "FileListingError"

    def test_non_numeric_file_size_recorded(self):
        data = {
            "manifests": [{"path": "package.json", "ecosystem": "npm", "dependencies": [{"name": "a", "version": "1.0.0"}]}],
            "files": [{"ecosystem": "npm", "name": "a", "version": "1.0.0", "files": [{"path": "x.js", "size": "12kb"}]}],
        }
        inventory = parse_inventory(data)

        (error,) = inventory.errors
        assert error.manifest == "files[0]"
        assert error.error_type == "FileListingError"
        assert "Invalid size for x.js: '12kb'" in error.message
        assert inventory.file_listings == []
        (manifest,) = inventory.manifests
        assert manifest.dependencies[0].name == "a"

    @pytest.mark.parametrize("data", [[], "inventory", {"manifests": {"path": "x"}}])
    def test_unusable_structure(self, data):
        with pytest.raises(InventoryError):
            parse_inventory(data)


class TestLoadInventory:
    def test_load_from_file(self, tmp_path):
        path = tmp_path / "inventory.json"
        path.write_text(json.dumps(INVENTORY))

        inventory = load_inventory(str(path))
        assert len(inventory.manifests) == 2

    def test_missing_file(self, tmp_path):
        with pytest.raises(InventoryError, match="not found"):
            load_inventory(str(tmp_path / "missing.json"))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "inventory.json"
        path.write_text("{not json")
        with pytest.raises(InventoryError, match="Invalid JSON"):
            load_inventory(str(path))


def test_inventory_from_dependencies():
    inventory = inventory_from_dependencies(
        {"npm": [{"name": "lodash", "version": "4.17.21"}], "pypi": [{"name": "requests", "version": ">=2.0"}]}
    )
    assert [(m.path, m.ecosystem) for m in inventory.manifests] == [("<npm>", Ecosystem.NPM), ("<pypi>", Ecosystem.PYPI)]
