"""Tests for the NuGet resolver."""

import base64
from unittest.mock import Mock

from sbom_generator._resolution.sources.nuget import NuGetResolver, framework_rank
from sbom_generator.models import Ecosystem

CATALOG_URL = "https://api.nuget.org/v3/catalog0/data/2023.03.08/newtonsoft.json.13.0.3.json"

LEAF = {"catalogEntry": CATALOG_URL, "packageContent": "https://api.nuget.org/v3-flatcontainer/x.nupkg"}

CATALOG_ENTRY = {
    "id": "Newtonsoft.Json",
    "version": "13.0.3",
    "authors": "James Newton-King",
    "description": "Json.NET is a popular high-performance JSON framework for .NET",
    "licenseExpression": "MIT",
    "projectUrl": "https://www.newtonsoft.com/json",
    "packageHash": base64.b64encode(b"\xde\xad\xbe\xef").decode(),
    "packageHashAlgorithm": "SHA512",
    "dependencyGroups": [
        {"targetFramework": ".NETFramework4.5"},
        {
            "targetFramework": ".NETStandard2.0",
            "dependencies": [{"id": "Microsoft.CSharp", "range": "[4.3.0, )"}],
        },
        {
            "targetFramework": "net6.0",
            "dependencies": [{"id": "System.Runtime", "range": "[4.3.1, )"}],
        },
    ],
}


def _response(payload, status_code=200):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    return response


class TestFrameworkRank:
    def test_modern_net_beats_netstandard(self):
        assert framework_rank("net6.0") > framework_rank(".NETStandard2.0")

    def test_netstandard_beats_framework(self):
        assert framework_rank(".NETStandard2.0") > framework_rank(".NETFramework4.5")
        assert framework_rank("netstandard2.0") > framework_rank("net472")

    def test_higher_version_wins_within_family(self):
        assert framework_rank("net8.0") > framework_rank("net6.0")

    def test_missing_framework_ranks_lowest(self):
        assert framework_rank(None) < framework_rank("net45")


class TestNuGetResolver:
    def test_basics(self):
        resolver = NuGetResolver()
        assert resolver.name == "nuget.org"
        assert resolver.ecosystem is Ecosystem.NUGET
        assert resolver.select_version("[1.0,2.0)") == "1.0"

    def test_fetch_follows_catalog_entry(self, mock_session):
        mock_session.get.side_effect = [_response(LEAF), _response(CATALOG_ENTRY)]

        metadata = NuGetResolver().fetch("Newtonsoft.Json", "13.0.3", mock_session)

        assert metadata.license == "MIT"
        assert metadata.author == "James Newton-King"
        assert metadata.homepage == "https://www.newtonsoft.com/json"
        assert metadata.display_name == "Newtonsoft.Json"
        assert metadata.hashes == {"SHA-512": "deadbeef"}
        assert metadata.download_url == (
            "https://api.nuget.org/v3-flatcontainer/newtonsoft.json/13.0.3/newtonsoft.json.13.0.3.nupkg"
        )

        urls = [call[0][0] for call in mock_session.get.call_args_list]
        assert urls == [
            "https://api.nuget.org/v3/registration5-semver1/newtonsoft.json/13.0.3.json",
            CATALOG_URL,
        ]

    def test_highest_framework_group_selected(self, mock_session):
        mock_session.get.side_effect = [_response(LEAF), _response(CATALOG_ENTRY)]
        metadata = NuGetResolver().fetch("Newtonsoft.Json", "13.0.3", mock_session)
        assert [(d.name, d.version_range) for d in metadata.dependencies] == [("System.Runtime", "[4.3.1, )")]

    def test_inline_catalog_entry(self, mock_session):
        mock_session.get.return_value = _response({"catalogEntry": CATALOG_ENTRY})
        metadata = NuGetResolver().fetch("Newtonsoft.Json", "13.0.3", mock_session)
        assert metadata is not None
        assert mock_session.get.call_count == 1

    def test_not_found(self, mock_session):
        mock_session.get.return_value = _response({}, status_code=404)
        assert NuGetResolver().fetch("Missing.Package", "1.0.0", mock_session) is None
