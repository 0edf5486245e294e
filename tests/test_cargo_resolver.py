"""Tests for the crates.io resolver."""

from unittest.mock import Mock

from sbom_generator._resolution.sources.cargo import CargoResolver
from sbom_generator.models import Ecosystem

SERDE_VERSION = {
    "version": {
        "crate": "serde",
        "num": "1.0.228",
        "license": "MIT OR Apache-2.0",
        "checksum": "cc" * 32,
        "published_by": {"login": "dtolnay", "name": "David Tolnay"},
    },
    "crate": {
        "name": "serde",
        "description": "A generic serialization/deserialization framework",
        "homepage": "https://serde.rs",
        "repository": "https://github.com/serde-rs/serde",
    },
}

SERDE_DEPENDENCIES = {
    "dependencies": [
        {"crate_id": "serde_derive", "req": "=1.0.228", "kind": "normal", "optional": True},
        {"crate_id": "serde_core", "req": "^1.0.228", "kind": "normal", "optional": False},
        {"crate_id": "serde_json", "req": "^1.0", "kind": "dev", "optional": False},
        {"crate_id": "cc", "req": "1.0", "kind": "build", "optional": False},
    ]
}


def _response(payload, status_code=200):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    return response


class TestCargoResolver:
    def test_basics(self):
        resolver = CargoResolver()
        assert resolver.name == "crates.io"
        assert resolver.ecosystem is Ecosystem.CARGO
        assert resolver.select_version("1.2") == "1.2.0"

    def test_fetch_success(self, mock_session):
        mock_session.get.side_effect = [_response(SERDE_VERSION), _response(SERDE_DEPENDENCIES)]

        metadata = CargoResolver().fetch("serde", "1.0.228", mock_session)

        assert metadata.license == "MIT OR Apache-2.0"
        assert metadata.description == "A generic serialization/deserialization framework"
        assert metadata.homepage == "https://serde.rs"
        assert metadata.author == "David Tolnay"
        assert metadata.hashes == {"SHA-256": "cc" * 32}
        assert metadata.download_url == "https://crates.io/api/v1/crates/serde/1.0.228/download"

        urls = [call[0][0] for call in mock_session.get.call_args_list]
        assert urls == [
            "https://crates.io/api/v1/crates/serde/1.0.228",
            "https://crates.io/api/v1/crates/serde/1.0.228/dependencies",
        ]

    def test_only_required_normal_dependencies(self, mock_session):
        mock_session.get.side_effect = [_response(SERDE_VERSION), _response(SERDE_DEPENDENCIES)]
        metadata = CargoResolver().fetch("serde", "1.0.228", mock_session)
        assert [(d.name, d.version_range) for d in metadata.dependencies] == [("serde_core", "^1.0.228")]

    def test_dependencies_endpoint_failure_keeps_metadata(self, mock_session):
        mock_session.get.side_effect = [_response(SERDE_VERSION), _response({}, status_code=500)]
        metadata = CargoResolver().fetch("serde", "1.0.228", mock_session)
        assert metadata is not None
        assert metadata.dependencies == []

    def test_not_found_skips_dependencies_call(self, mock_session):
        mock_session.get.return_value = _response({}, status_code=404)
        assert CargoResolver().fetch("nope", "0.1.0", mock_session) is None
        assert mock_session.get.call_count == 1
