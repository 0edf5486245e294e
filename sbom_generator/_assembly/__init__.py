"""SBOM assemblers for SPDX 2.3, SPDX 3.0.1 and CycloneDX 1.5.

Example usage:
    from sbom_generator._assembly import AssemblyOptions, get_assembler

    graph.freeze()
    assembler = get_assembler("cyclonedx")
    text = assembler.render(graph, AssemblyOptions(document_name="owner-repo"))
"""

from .cyclonedx import CycloneDxAssembler
from .protocol import AssemblyOptions, SbomAssembler
from .registry import FORMAT_ALIASES, get_assembler, normalize_format, supported_formats
from .spdx2 import Spdx2Assembler, serialize_spdx2_document, validate_spdx2_document
from .spdx3 import Spdx3Assembler

__all__ = [
    "AssemblyOptions",
    "SbomAssembler",
    "Spdx2Assembler",
    "Spdx3Assembler",
    "CycloneDxAssembler",
    "FORMAT_ALIASES",
    "get_assembler",
    "normalize_format",
    "supported_formats",
    "serialize_spdx2_document",
    "validate_spdx2_document",
]
