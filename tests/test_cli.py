"""Tests for the Click CLI interface.

These tests verify that:
1. CLI arguments are parsed correctly
2. Environment variables are used as fallbacks
3. Configuration errors exit with status 1
4. The pipeline writes the requested SBOM format
"""

import json
import tempfile
import unittest
from importlib import import_module
from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner

from sbom_generator import __version__
from sbom_generator._resolution.registry import ResolverRegistry
from sbom_generator.cli.main import Config, build_config, cli, evaluate_boolean, parse_ecosystems, run_pipeline
from sbom_generator.exceptions import AssemblyError, ConfigurationError, InventoryError
from sbom_generator.models import Ecosystem
from sbom_generator.orchestrator import SbomOrchestrator

# sbom_generator.cli re-exports `main`, so fetch the module object for patching
cli_main_module = import_module("sbom_generator.cli.main")

EMPTY_INVENTORY = {"repository": "https://github.com/owner/repo", "manifests": []}


def _build(**overrides):
    values = dict(
        inventory_file=None,
        repository_url=None,
        sbom_format=None,
        output_file=None,
        ecosystems=None,
        include_files=None,
        include_transitive=None,
        timeout=None,
        max_workers=None,
        creator_name=None,
        validate_output=None,
        verbose=False,
    )
    values.update(overrides)
    return build_config(**values)


class TestCLIHelp(unittest.TestCase):
    """Test CLI help and version options."""

    def setUp(self):
        self.runner = CliRunner()

    def test_help_option(self):
        result = self.runner.invoke(cli, ["--help"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Resolve transitive dependencies", result.output)
        self.assertIn("--input", result.output)
        self.assertIn("--format", result.output)

    def test_short_help_option(self):
        result = self.runner.invoke(cli, ["-h"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("--ecosystems", result.output)

    def test_version_option(self):
        result = self.runner.invoke(cli, ["--version"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("sbom-generator", result.output)
        self.assertIn(__version__, result.output)


class TestCLIConfiguration(unittest.TestCase):
    """Test argument parsing and configuration errors."""

    def setUp(self):
        self.runner = CliRunner()
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.inventory = Path(self.tmp_dir.name) / "inventory.json"
        self.inventory.write_text(json.dumps(EMPTY_INVENTORY))

    def tearDown(self):
        self.tmp_dir.cleanup()

    def test_missing_input_exits_with_error(self):
        result = self.runner.invoke(cli, [], env={"SBOM_INPUT": None})
        self.assertEqual(result.exit_code, 1)

    def test_nonexistent_input_exits_with_error(self):
        result = self.runner.invoke(cli, ["--input", str(Path(self.tmp_dir.name) / "missing.json")])
        self.assertEqual(result.exit_code, 1)

    def test_unknown_format_exits_with_error(self):
        result = self.runner.invoke(cli, ["--input", str(self.inventory), "--format", "swid"])
        self.assertEqual(result.exit_code, 1)

    def test_unknown_ecosystem_exits_with_error(self):
        result = self.runner.invoke(cli, ["--input", str(self.inventory), "--ecosystems", "npm,zig"])
        self.assertEqual(result.exit_code, 1)

    @patch.object(cli_main_module, "run_pipeline")
    def test_arguments_reach_config(self, mock_run):
        result = self.runner.invoke(
            cli,
            [
                "--input",
                str(self.inventory),
                "--format",
                "SPDX-2.3",
                "--ecosystems",
                "npm,pip",
                "--no-files",
                "--timeout",
                "5",
                "--max-workers",
                "2",
                "--validate",
            ],
        )

        self.assertEqual(result.exit_code, 0)
        config = mock_run.call_args[0][0]
        self.assertEqual(config.sbom_format, "spdx2")
        self.assertEqual(config.ecosystems, [Ecosystem.NPM, Ecosystem.PYPI])
        self.assertFalse(config.include_files)
        self.assertTrue(config.include_transitive)
        self.assertEqual(config.timeout, 5.0)
        self.assertEqual(config.max_workers, 2)
        self.assertTrue(config.validate_output)

    @patch.object(cli_main_module, "run_pipeline")
    def test_environment_fallbacks(self, mock_run):
        result = self.runner.invoke(
            cli,
            [],
            env={
                "SBOM_INPUT": str(self.inventory),
                "SBOM_FORMAT": "cdx",
                "SBOM_INCLUDE_TRANSITIVE": "false",
                "SBOM_CREATOR": "Example Corp",
            },
        )

        self.assertEqual(result.exit_code, 0)
        config = mock_run.call_args[0][0]
        self.assertEqual(config.sbom_format, "cyclonedx")
        self.assertFalse(config.include_transitive)
        self.assertEqual(config.creator_name, "Example Corp")

    @patch.object(cli_main_module, "run_pipeline")
    def test_flag_overrides_environment(self, mock_run):
        result = self.runner.invoke(
            cli,
            ["--input", str(self.inventory), "--transitive"],
            env={"SBOM_INCLUDE_TRANSITIVE": "false"},
        )
        self.assertEqual(result.exit_code, 0)
        self.assertTrue(mock_run.call_args[0][0].include_transitive)

    @patch.object(cli_main_module, "run_pipeline")
    def test_pipeline_failure_exits_with_error(self, mock_run):
        mock_run.side_effect = InventoryError("broken inventory")
        result = self.runner.invoke(cli, ["--input", str(self.inventory)])
        self.assertEqual(result.exit_code, 1)


class TestBuildConfig(unittest.TestCase):
    def test_defaults(self):
        with patch.dict("os.environ", {}, clear=True):
            config = _build()
        self.assertEqual(config.sbom_format, "spdx2")
        self.assertTrue(config.include_files)
        self.assertTrue(config.include_transitive)
        self.assertFalse(config.validate_output)
        self.assertFalse(config.verbose)

    def test_verbose_from_environment(self):
        with patch.dict("os.environ", {"SBOM_VERBOSE": "yes"}, clear=True):
            config = _build()
        self.assertTrue(config.verbose)

    def test_validate_ignored_for_non_spdx2(self):
        with tempfile.NamedTemporaryFile(suffix=".json") as f:
            config = Config(inventory_file=f.name, sbom_format="spdx3", validate_output=True)
            config.validate()
        self.assertFalse(config.validate_output)

    def test_invalid_limits(self):
        with tempfile.NamedTemporaryFile(suffix=".json") as f:
            with self.assertRaises(ConfigurationError):
                Config(inventory_file=f.name, timeout=0).validate()
            with self.assertRaises(ConfigurationError):
                Config(inventory_file=f.name, max_workers=0).validate()


class TestHelpers(unittest.TestCase):
    def test_evaluate_boolean(self):
        for value in ["true", "True", "YES", "yeah", "1"]:
            self.assertTrue(evaluate_boolean(value))
        for value in ["false", "no", "0", ""]:
            self.assertFalse(evaluate_boolean(value))

    def test_parse_ecosystems(self):
        self.assertEqual(parse_ecosystems(None), [])
        self.assertEqual(parse_ecosystems("npm, node ,,cargo"), [Ecosystem.NPM, Ecosystem.CARGO])

    def test_parse_ecosystems_rejects_unknown(self):
        with self.assertRaises(ConfigurationError):
            parse_ecosystems("npm,cobol")


class TestRunPipeline(unittest.TestCase):
    """Run the pipeline end-to-end on an inventory without manifests."""

    def setUp(self):
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.inventory = Path(self.tmp_dir.name) / "inventory.json"
        self.inventory.write_text(json.dumps(EMPTY_INVENTORY))
        self.output = Path(self.tmp_dir.name) / "sbom.json"

        patcher = patch.object(
            cli_main_module,
            "SbomOrchestrator",
            side_effect=lambda **kwargs: SbomOrchestrator(registry=ResolverRegistry(), **kwargs),
        )
        patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self):
        self.tmp_dir.cleanup()

    def _config(self, sbom_format, **kwargs):
        config = Config(inventory_file=str(self.inventory), sbom_format=sbom_format, output_file=str(self.output), **kwargs)
        config.validate()
        return config

    def test_writes_spdx2(self):
        run_pipeline(self._config("spdx2"))
        document = json.loads(self.output.read_text())
        self.assertEqual(document["spdxVersion"], "SPDX-2.3")
        self.assertEqual(document["name"], "owner-repo")

    def test_validated_document_is_the_one_written(self):
        with patch.object(cli_main_module, "validate_spdx2_document", return_value=[]) as mock_validate:
            run_pipeline(self._config("spdx2", validate_output=True))

        validated = mock_validate.call_args[0][0]
        document = json.loads(self.output.read_text())
        self.assertEqual(document["documentNamespace"], validated.creation_info.document_namespace)

    def test_failed_validation_writes_nothing(self):
        with patch.object(cli_main_module, "validate_spdx2_document", return_value=["missing DESCRIBES"]):
            with self.assertRaises(AssemblyError):
                run_pipeline(self._config("spdx2", validate_output=True))
        self.assertFalse(self.output.exists())

    def test_writes_spdx3(self):
        run_pipeline(self._config("spdx3"))
        document = json.loads(self.output.read_text())
        self.assertIn("@graph", document)

    def test_writes_cyclonedx(self):
        run_pipeline(self._config("cyclonedx", repository_url="acme/widgets"))
        document = json.loads(self.output.read_text())
        self.assertEqual(document["metadata"]["component"]["name"], "acme-widgets")

    def test_missing_inventory_raises(self):
        config = Config(inventory_file=str(Path(self.tmp_dir.name) / "gone.json"))
        with self.assertRaises(InventoryError):
            run_pipeline(config)
