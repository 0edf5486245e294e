"""Output format lookup for SBOM assemblers."""

from typing import Dict, List

from ..exceptions import ConfigurationError
from .cyclonedx import CycloneDxAssembler
from .protocol import SbomAssembler
from .spdx2 import Spdx2Assembler
from .spdx3 import Spdx3Assembler

# User-facing format names and aliases -> canonical format
FORMAT_ALIASES: Dict[str, str] = {
    "spdx": "spdx2",
    "spdx2": "spdx2",
    "spdx-2": "spdx2",
    "spdx-2.2": "spdx2",
    "spdx-2.3": "spdx2",
    "spdx22": "spdx2",
    "spdx23": "spdx2",
    "spdx3": "spdx3",
    "spdx-3": "spdx3",
    "spdx-3.0": "spdx3",
    "spdx-3.0.1": "spdx3",
    "spdx30": "spdx3",
    "cyclonedx": "cyclonedx",
    "cdx": "cyclonedx",
    "cyclonedx-1.5": "cyclonedx",
}


def normalize_format(name: str) -> str:
    """
    Map a format name or alias to its canonical name.

    Raises:
        ConfigurationError: If the format is unknown
    """
    key = name.strip().lower()
    if key not in FORMAT_ALIASES:
        raise ConfigurationError(
            f"Unsupported output format: {name!r}. Supported formats: {', '.join(supported_formats())}"
        )
    return FORMAT_ALIASES[key]


def get_assembler(name: str) -> SbomAssembler:
    """Create the assembler for a format name or alias."""
    canonical = normalize_format(name)
    if canonical == "spdx2":
        return Spdx2Assembler()
    if canonical == "spdx3":
        return Spdx3Assembler()
    return CycloneDxAssembler()


def supported_formats() -> List[str]:
    return sorted(FORMAT_ALIASES)
