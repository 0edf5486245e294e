"""Rich console utilities for sbom-generator.

All console output goes to stderr so that an SBOM written to stdout stays
machine-readable.
"""

import os
import sys
from typing import Any, Dict, List, Optional, Tuple

from rich.console import Console
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from .models import AnalysisError, Ecosystem

# Detect CI environments
IS_GITHUB_ACTIONS = os.getenv("GITHUB_ACTIONS") == "true"
IS_GITLAB_CI = os.getenv("GITLAB_CI") == "true"
IS_CI = os.getenv("CI") == "true" or IS_GITHUB_ACTIONS or IS_GITLAB_CI

BANNER_COLORS_HEX = ["#2E7D32", "#388E3C", "#43A047", "#4CAF50"]
# ANSI names follow the terminal theme in CI logs
BANNER_COLORS_ADAPTIVE = ["green", "bright_green", "green", "bright_green"]
BANNER_COLORS = BANNER_COLORS_ADAPTIVE if IS_CI else BANNER_COLORS_HEX

custom_theme = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "step": "bold blue",
        "highlight": "magenta",
    }
)

# Shared console instance
console = Console(
    theme=custom_theme,
    stderr=True,
    force_terminal=IS_GITHUB_ACTIONS or None,
    color_system="auto",
)

BANNER_LINES = [
    "     _                                                     _\n",
    " ___| |__   ___  _ __ ___         __ _  ___ _ __   ___ _ __ __ _| |_ ___  _ __\n",
    "/ __| '_ \\ / _ \\| '_ ` _ \\ _____ / _` |/ _ \\ '_ \\ / _ \\ '__/ _` | __/ _ \\| '__|\n",
    "\\__ \\ |_) | (_) | | | | | |_____| (_| |  __/ | | |  __/ | | (_| | || (_) | |\n",
    "|___/_.__/ \\___/|_| |_| |_|      \\__, |\\___|_| |_|\\___|_|  \\__,_|\\__\\___/|_|\n",
    "                                 |___/\n",
]


def print_banner(version: str = "unknown") -> None:
    """Print the sbom-generator banner."""
    banner = Text()
    for index, line in enumerate(BANNER_LINES):
        banner.append(line, style=BANNER_COLORS[index % len(BANNER_COLORS)])
    # Only prefix with 'v' if version looks like semver (starts with digit)
    version_display = f"v{version}" if version and version[0:1].isdigit() else version
    banner.append(f" {version_display}", style=BANNER_COLORS[-1])
    banner.append(" - transitive dependency SBOMs\n", style="dim")

    console.print(banner)


def gha_warning(message: str, title: Optional[str] = None) -> None:
    """
    Emit a warning that appears in GitHub Actions job summary.

    Args:
        message: Warning message
        title: Optional title for the warning
    """
    if IS_GITHUB_ACTIONS:
        # Workflow commands are read from stdout
        prefix = f"::warning title={title}::" if title else "::warning::"
        print(f"{prefix}{message}", file=sys.stdout)
    elif title:
        console.print(f"[warning]Warning ({title}):[/warning] {message}")
    else:
        console.print(f"[warning]Warning:[/warning] {message}")


def gha_error(message: str, title: Optional[str] = None) -> None:
    """
    Emit an error that appears in GitHub Actions job summary.

    Args:
        message: Error message
        title: Optional title for the error
    """
    if IS_GITHUB_ACTIONS:
        prefix = f"::error title={title}::" if title else "::error::"
        print(f"{prefix}{message}", file=sys.stdout)
    elif title:
        console.print(f"[error]Error ({title}):[/error] {message}")
    else:
        console.print(f"[error]Error:[/error] {message}")


def print_summary_table(
    title: str,
    data: List[Tuple[str, Any]],
    show_if_empty: bool = False,
) -> None:
    """
    Print a two-column summary table.

    Args:
        title: Table title
        data: List of (label, value) tuples
        show_if_empty: Whether to show the table if all values are 0/empty
    """
    if not show_if_empty:
        data = [(label, value) for label, value in data if value]

    if not data:
        return

    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    for label, value in data:
        table.add_row(label, str(value))

    console.print(table)


def print_resolution_summary(
    package_counts: Dict[Ecosystem, int],
    total_packages: int,
    direct_packages: int,
) -> None:
    """
    Print per-ecosystem resolution counts.

    Args:
        package_counts: Nodes resolved per ecosystem (before deduplication)
        total_packages: Packages in the final graph
        direct_packages: Direct packages in the final graph
    """
    data: List[Tuple[str, Any]] = [
        (f"{ecosystem.value} packages", count) for ecosystem, count in package_counts.items()
    ]
    data.append(("Total packages", total_packages))
    data.append(("Direct dependencies", direct_packages))
    data.append(("Transitive dependencies", total_packages - direct_packages))
    print_summary_table("Resolution Summary", data, show_if_empty=True)


def print_analysis_errors(errors: List[AnalysisError]) -> None:
    """Print recoverable analysis errors as a table (nothing when empty)."""
    if not errors:
        return

    table = Table(title="Analysis Errors", show_header=True, header_style="bold")
    table.add_column("Manifest", style="cyan")
    table.add_column("Ecosystem")
    table.add_column("Type", style="warning")
    table.add_column("Message")
    for error in errors:
        table.add_row(
            error.manifest,
            error.ecosystem.value if error.ecosystem else "-",
            error.error_type,
            error.message,
        )
    console.print(table)

    if IS_GITHUB_ACTIONS:
        for error in errors:
            gha_warning(f"{error.manifest}: {error.message}", title=error.error_type)


def print_final_success(output: Optional[str] = None) -> None:
    """Print final success message."""
    if output:
        console.print(f"[success]✓ SBOM written to {output}[/success]")
    else:
        console.print("[success]✓ SBOM generated[/success]")


def print_final_failure(message: str) -> None:
    """Print final failure message."""
    console.print()
    gha_error(message, title="SBOM Generation Failed")
    if not IS_GITHUB_ACTIONS:
        console.rule("[bold red]FAILED[/bold red]", style="red")
        console.print(f"[bold red]{message}[/bold red]", justify="center")
    console.print()
