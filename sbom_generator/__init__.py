"""sbom-generator: transitive dependency resolution and SBOM assembly."""


def _get_version() -> str:
    """Get package version with fallback mechanisms."""
    try:
        from importlib.metadata import PackageNotFoundError, version

        return version("sbom-generator")
    except PackageNotFoundError:
        pass

    try:
        from pathlib import Path

        import tomllib

        pyproject_path = Path(__file__).parent.parent / "pyproject.toml"
        if pyproject_path.exists():
            with open(pyproject_path, "rb") as f:
                pyproject_data = tomllib.load(f)
            return pyproject_data.get("project", {}).get("version", "unknown")
    except ImportError:
        # Python < 3.11 doesn't have tomllib
        pass

    return "unknown"


__version__ = _get_version()
