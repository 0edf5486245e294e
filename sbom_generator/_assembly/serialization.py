"""CycloneDX serialization with version-aware outputter selection."""

from typing import Dict, Optional, Type

from cyclonedx.model.bom import Bom

from ..logging_config import logger

# Lazy import to avoid loading the outputter upfront
_CYCLONEDX_OUTPUTTERS: Dict[str, Optional[Type]] = {
    "1.5": None,  # JsonV1Dot5
}

DEFAULT_CYCLONEDX_VERSION = "1.5"


def _get_cyclonedx_outputter(spec_version: str) -> Type:
    """
    Get the CycloneDX JSON outputter class for a spec version.

    Args:
        spec_version: CycloneDX spec version (e.g., "1.5")

    Returns:
        Outputter class for the specified version

    Raises:
        ValueError: If the version is not supported
    """
    major_minor = ".".join(spec_version.split(".")[:2]) if spec_version else DEFAULT_CYCLONEDX_VERSION

    if major_minor == "1.5" and _CYCLONEDX_OUTPUTTERS["1.5"] is None:
        from cyclonedx.output.json import JsonV1Dot5

        _CYCLONEDX_OUTPUTTERS["1.5"] = JsonV1Dot5

    outputter_class = _CYCLONEDX_OUTPUTTERS.get(major_minor)
    if outputter_class is None:
        raise ValueError(
            f"Unsupported CycloneDX version: {spec_version}. "
            f"Supported versions: {', '.join(sorted(_CYCLONEDX_OUTPUTTERS))}"
        )
    return outputter_class


def serialize_cyclonedx_bom(bom: Bom, spec_version: str = DEFAULT_CYCLONEDX_VERSION) -> str:
    """
    Serialize a CycloneDX BOM to a JSON string.

    Args:
        bom: The CycloneDX BOM object to serialize
        spec_version: The CycloneDX spec version (e.g., "1.5")

    Returns:
        JSON string representation of the BOM

    Raises:
        ValueError: If spec_version is unsupported
    """
    outputter_class = _get_cyclonedx_outputter(spec_version)

    logger.debug(f"Serializing CycloneDX BOM using version {spec_version}")
    outputter = outputter_class(bom)
    return outputter.output_as_string(indent=2)
