"""Custom exceptions for sbom-generator."""


class SbomGeneratorError(Exception):
    """Base exception for all sbom-generator operations."""


class ConfigurationError(SbomGeneratorError):
    """Raised when configuration validation fails."""


class UnsupportedEcosystemError(SbomGeneratorError):
    """Raised when an ecosystem name is not one of the supported ecosystems."""


class InventoryError(SbomGeneratorError):
    """Raised when a dependency inventory file cannot be read or parsed."""


class ResolutionError(SbomGeneratorError):
    """Raised when dependency resolution cannot proceed for an ecosystem."""


class ResolutionCancelledError(ResolutionError):
    """Raised when an ecosystem's resolution was cancelled."""


class GraphFrozenError(SbomGeneratorError):
    """Raised when a frozen package graph is modified."""


class AssemblyError(SbomGeneratorError):
    """Raised when an SBOM document cannot be assembled."""
