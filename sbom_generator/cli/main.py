"""Command-line interface for sbom-generator.

Every option can also be provided through an environment variable, which
makes the tool easy to drive from CI:

    SBOM_INPUT, SBOM_REPOSITORY, SBOM_FORMAT, SBOM_OUTPUT, SBOM_ECOSYSTEMS,
    SBOM_INCLUDE_FILES, SBOM_INCLUDE_TRANSITIVE, SBOM_TIMEOUT,
    SBOM_MAX_WORKERS, SBOM_CREATOR, SBOM_VALIDATE, SBOM_VERBOSE

Command-line arguments take precedence over environment variables.
"""

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import click

from .. import __version__
from .._assembly import (
    AssemblyOptions,
    get_assembler,
    normalize_format,
    serialize_spdx2_document,
    supported_formats,
    validate_spdx2_document,
)
from ..console import (
    console,
    print_analysis_errors,
    print_banner,
    print_final_failure,
    print_final_success,
    print_resolution_summary,
)
from ..exceptions import AssemblyError, ConfigurationError, SbomGeneratorError
from ..http_client import DEFAULT_TIMEOUT
from ..inventory import load_inventory
from ..logging_config import logger, set_log_level
from ..models import Ecosystem
from ..orchestrator import DEFAULT_MAX_WORKERS, SbomOrchestrator, document_name_from_repo

DEFAULT_FORMAT = "spdx2"


@dataclass
class Config:
    """Configuration settings for one generator run."""

    inventory_file: Optional[str] = None
    repository_url: Optional[str] = None
    sbom_format: str = DEFAULT_FORMAT
    output_file: Optional[str] = None
    ecosystems: List[Ecosystem] = field(default_factory=list)
    include_files: bool = True
    include_transitive: bool = True
    timeout: float = DEFAULT_TIMEOUT
    max_workers: int = DEFAULT_MAX_WORKERS
    creator_name: Optional[str] = None
    validate_output: bool = False
    verbose: bool = False

    def validate(self) -> None:
        """
        Validate configuration settings.

        Normalizes the format name to its canonical form.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if not self.inventory_file:
            raise ConfigurationError("No dependency inventory given (use --input or SBOM_INPUT)")
        if not Path(self.inventory_file).is_file():
            raise ConfigurationError(f"Inventory file not found: {self.inventory_file}")

        self.sbom_format = normalize_format(self.sbom_format)

        if self.timeout <= 0:
            raise ConfigurationError(f"Timeout must be positive, got {self.timeout}")
        if self.max_workers < 1:
            raise ConfigurationError(f"max-workers must be at least 1, got {self.max_workers}")

        if self.validate_output and self.sbom_format != "spdx2":
            logger.warning(f"--validate only applies to SPDX 2.3 output, ignoring it for {self.sbom_format}")
            self.validate_output = False


def evaluate_boolean(value: str) -> bool:
    """
    Evaluate string values as boolean.

    Args:
        value: String value to evaluate

    Returns:
        Boolean result
    """
    return value.lower() in ["true", "yes", "yeah", "1"]


def parse_ecosystems(value: Optional[str]) -> List[Ecosystem]:
    """
    Parse a comma-separated ecosystem filter such as ``"npm, pypi"``.

    Raises:
        ConfigurationError: If an entry names no supported ecosystem
    """
    if not value:
        return []
    ecosystems: List[Ecosystem] = []
    for item in value.split(","):
        if not item.strip():
            continue
        try:
            ecosystem = Ecosystem.parse(item)
        except SbomGeneratorError as e:
            raise ConfigurationError(str(e)) from e
        if ecosystem not in ecosystems:
            ecosystems.append(ecosystem)
    return ecosystems


def _flag_or_env(flag: Optional[bool], env_name: str, default: str) -> bool:
    if flag is not None:
        return flag
    return evaluate_boolean(os.getenv(env_name, default))


def build_config(
    inventory_file: Optional[str],
    repository_url: Optional[str],
    sbom_format: Optional[str],
    output_file: Optional[str],
    ecosystems: Optional[str],
    include_files: Optional[bool],
    include_transitive: Optional[bool],
    timeout: Optional[float],
    max_workers: Optional[int],
    creator_name: Optional[str],
    validate_output: Optional[bool],
    verbose: Optional[bool],
) -> Config:
    """
    Build a Config from CLI values, falling back to environment variables.

    Click already resolves the plain string options from their environment
    variables; the tri-state boolean flags are resolved here.
    """
    return Config(
        inventory_file=inventory_file,
        repository_url=repository_url,
        sbom_format=sbom_format or DEFAULT_FORMAT,
        output_file=output_file,
        ecosystems=parse_ecosystems(ecosystems),
        include_files=_flag_or_env(include_files, "SBOM_INCLUDE_FILES", "true"),
        include_transitive=_flag_or_env(include_transitive, "SBOM_INCLUDE_TRANSITIVE", "true"),
        timeout=timeout if timeout is not None else DEFAULT_TIMEOUT,
        max_workers=max_workers if max_workers is not None else DEFAULT_MAX_WORKERS,
        creator_name=creator_name,
        validate_output=_flag_or_env(validate_output, "SBOM_VALIDATE", "false"),
        verbose=bool(verbose) or evaluate_boolean(os.getenv("SBOM_VERBOSE", "false")),
    )


def run_pipeline(config: Config) -> str:
    """
    Load the inventory, resolve it and write one SBOM document.

    Returns:
        The serialized SBOM

    Raises:
        SbomGeneratorError: On inventory, configuration or assembly failures
    """
    inventory = load_inventory(config.inventory_file)
    repository_url = config.repository_url or inventory.repository_url

    orchestrator = SbomOrchestrator(max_workers=config.max_workers, timeout=config.timeout)
    analysis = orchestrator.analyze(
        inventory,
        repository_url=repository_url,
        ecosystems=config.ecosystems or None,
        include_files=config.include_files,
        include_transitive=config.include_transitive,
    )

    print_resolution_summary(analysis.package_counts, len(analysis.graph), len(analysis.graph.direct_nodes))
    print_analysis_errors(analysis.errors)

    options = AssemblyOptions(
        document_name=document_name_from_repo(repository_url),
        creator_name=config.creator_name,
        include_files=config.include_files,
    )
    assembler = get_assembler(config.sbom_format)
    if config.validate_output:
        document = assembler.build_document(analysis.graph, options)
        messages = validate_spdx2_document(document)
        if messages:
            raise AssemblyError(f"Generated SPDX document failed validation ({len(messages)} issues)")
        logger.info("SPDX 2.3 document passed validation")
        output = serialize_spdx2_document(document)
    else:
        output = orchestrator.generate(analysis, config.sbom_format, options)

    if config.output_file:
        Path(config.output_file).write_text(output + "\n", encoding="utf-8")
        logger.info(f"Wrote {assembler.format_name} SBOM to {config.output_file}")
    else:
        click.echo(output)
    return output


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--input",
    "-i",
    "inventory_file",
    envvar="SBOM_INPUT",
    type=click.Path(dir_okay=False),
    help="Dependency inventory JSON produced by manifest parsing.",
)
@click.option("--repo", "-r", "repository_url", envvar="SBOM_REPOSITORY", help="Repository URL (names the document).")
@click.option(
    "--format",
    "-f",
    "sbom_format",
    envvar="SBOM_FORMAT",
    help=f"Output format: spdx2, spdx3 or cyclonedx (default: {DEFAULT_FORMAT}).",
)
@click.option("--output", "-o", "output_file", envvar="SBOM_OUTPUT", help="Write the SBOM here instead of stdout.")
@click.option("--ecosystems", "-e", envvar="SBOM_ECOSYSTEMS", help="Comma-separated ecosystems to resolve.")
@click.option("--files/--no-files", "include_files", default=None, help="Include package file listings.")
@click.option(
    "--transitive/--no-transitive", "include_transitive", default=None, help="Follow transitive dependencies."
)
@click.option("--timeout", envvar="SBOM_TIMEOUT", type=float, help="Per-request timeout in seconds.")
@click.option("--max-workers", envvar="SBOM_MAX_WORKERS", type=int, help="Ecosystems resolved in parallel.")
@click.option("--creator", "creator_name", envvar="SBOM_CREATOR", help="Organization recorded as document creator.")
@click.option("--validate/--no-validate", "validate_output", default=None, help="Validate SPDX 2.3 output.")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
@click.version_option(__version__, "--version", prog_name="sbom-generator", message="%(prog)s %(version)s")
def cli(
    inventory_file: Optional[str],
    repository_url: Optional[str],
    sbom_format: Optional[str],
    output_file: Optional[str],
    ecosystems: Optional[str],
    include_files: Optional[bool],
    include_transitive: Optional[bool],
    timeout: Optional[float],
    max_workers: Optional[int],
    creator_name: Optional[str],
    validate_output: Optional[bool],
    verbose: Optional[bool],
) -> None:
    """Resolve transitive dependencies and generate an SBOM.

    Supported formats: SPDX 2.3 JSON, SPDX 3.0.1 JSON-LD and CycloneDX 1.5.
    """
    try:
        config = build_config(
            inventory_file,
            repository_url,
            sbom_format,
            output_file,
            ecosystems,
            include_files,
            include_transitive,
            timeout,
            max_workers,
            creator_name,
            validate_output,
            verbose,
        )
        if config.verbose:
            set_log_level("DEBUG")
        config.validate()
    except ConfigurationError as e:
        print_final_failure(f"Configuration error: {e}")
        console.print(f"Supported formats: {', '.join(supported_formats())}", style="dim")
        sys.exit(1)

    if config.output_file:
        print_banner(__version__)

    try:
        run_pipeline(config)
    except SbomGeneratorError as e:
        logger.error(str(e))
        print_final_failure(str(e))
        sys.exit(1)

    print_final_success(config.output_file)


def main() -> None:
    """Entry point for ``python -m sbom_generator.cli.main``."""
    cli()


if __name__ == "__main__":
    main()
