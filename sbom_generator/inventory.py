"""Dependency inventory input.

Manifest discovery and parsing happen outside this package; their result
is handed over as a JSON inventory listing, per manifest, the declared
dependencies of one ecosystem:

    {
      "repository": "https://github.com/owner/repo",
      "ref": "main",
      "manifests": [
        {"path": "package.json", "ecosystem": "npm",
         "dependencies": [{"name": "lodash", "version": "^4.17.0"}]},
        {"path": "package-lock.json", "ecosystem": "npm", "lockfile": true,
         "dependencies": [{"name": "a", "version": "1.0.0", "direct": true,
                           "dependencies": {"b": "1.0.0"}}]}
      ],
      "files": [{"ecosystem": "npm", "name": "a", "version": "1.0.0",
                 "files": [{"path": "index.js", "sha256": "...", "size": 10}]}]
    }

A manifest that does not validate is reported as an AnalysisError and the
rest of the inventory is still used.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .exceptions import InventoryError, SbomGeneratorError
from .logging_config import logger
from .models import AnalysisError, DeclaredDependency, Ecosystem, PackageFile, PackageIdentity


@dataclass
class Manifest:
    """Declared dependencies parsed from one manifest file."""

    path: str
    ecosystem: Ecosystem
    dependencies: List[DeclaredDependency] = field(default_factory=list)
    lockfile: bool = False


@dataclass
class FileListing:
    """Archive contents reported for one resolved package."""

    identity: PackageIdentity
    files: List[PackageFile]


@dataclass
class Inventory:
    """Parsed inventory: manifests, file listings and per-manifest problems."""

    repository_url: Optional[str] = None
    ref: Optional[str] = None
    manifests: List[Manifest] = field(default_factory=list)
    file_listings: List[FileListing] = field(default_factory=list)
    errors: List[AnalysisError] = field(default_factory=list)


def load_inventory(path: str) -> Inventory:
    """
    Load an inventory JSON file.

    Raises:
        InventoryError: If the file is missing or is not a JSON object
    """
    inventory_path = Path(path)
    if not inventory_path.exists():
        raise InventoryError(f"Inventory file not found: {path}")
    try:
        with open(inventory_path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InventoryError(f"Invalid JSON in inventory file {path}: {e}") from e
    return parse_inventory(data)


def parse_inventory(data: Any) -> Inventory:
    """
    Build an Inventory from decoded JSON.

    Raises:
        InventoryError: If the top-level structure is unusable
    """
    if not isinstance(data, dict):
        raise InventoryError("Inventory must be a JSON object")
    manifests_data = data.get("manifests", [])
    if not isinstance(manifests_data, list):
        raise InventoryError("Inventory 'manifests' must be a list")

    inventory = Inventory(repository_url=data.get("repository"), ref=data.get("ref"))

    for position, entry in enumerate(manifests_data):
        label = entry.get("path") if isinstance(entry, dict) and entry.get("path") else f"manifests[{position}]"
        try:
            inventory.manifests.append(_parse_manifest(entry, label))
        except SbomGeneratorError as e:
            ecosystem = entry.get("ecosystem") if isinstance(entry, dict) else None
            logger.warning(f"Skipping manifest {label}: {e}")
            inventory.errors.append(
                AnalysisError(manifest=label, message=str(e), ecosystem=_maybe_ecosystem(ecosystem))
            )

    for position, entry in enumerate(data.get("files") or []):
        try:
            inventory.file_listings.append(_parse_file_listing(entry))
        except SbomGeneratorError as e:
            logger.warning(f"Skipping file listing files[{position}]: {e}")
            inventory.errors.append(
                AnalysisError(manifest=f"files[{position}]", message=str(e), error_type="FileListingError")
            )

    logger.debug(
        f"Loaded inventory: {len(inventory.manifests)} manifests, {len(inventory.file_listings)} file listings"
    )
    return inventory


def _maybe_ecosystem(value: Any) -> Optional[Ecosystem]:
    try:
        return Ecosystem.parse(value) if value else None
    except SbomGeneratorError:
        return None


def _parse_manifest(entry: Any, label: str) -> Manifest:
    if not isinstance(entry, dict):
        raise InventoryError("Manifest entry must be an object")
    if not entry.get("ecosystem"):
        raise InventoryError("Manifest entry has no ecosystem")
    ecosystem = Ecosystem.parse(entry["ecosystem"])
    lockfile = bool(entry.get("lockfile", False))

    dependencies_data = entry.get("dependencies", [])
    if not isinstance(dependencies_data, list):
        raise InventoryError("Manifest 'dependencies' must be a list")

    dependencies = [_parse_dependency(dep, ecosystem, lockfile) for dep in dependencies_data]
    return Manifest(path=label, ecosystem=ecosystem, dependencies=dependencies, lockfile=lockfile)


def _parse_dependency(dep: Any, ecosystem: Ecosystem, lockfile: bool) -> DeclaredDependency:
    if not isinstance(dep, dict) or not isinstance(dep.get("name"), str) or not dep["name"].strip():
        raise InventoryError(f"Invalid dependency entry: {dep!r}")
    version = dep.get("version", "")
    if not isinstance(version, str):
        raise InventoryError(f"Version of {dep['name']} must be a string")

    children: List[DeclaredDependency] = []
    nested = dep.get("dependencies") or {}
    if isinstance(nested, dict):
        nested = [{"name": name, "version": child_version} for name, child_version in nested.items()]
    for child in nested:
        if not isinstance(child, dict) or not child.get("name"):
            raise InventoryError(f"Invalid nested dependency of {dep['name']}: {child!r}")
        children.append(
            DeclaredDependency(ecosystem, child["name"], str(child.get("version", "")), direct=False, locked=lockfile)
        )

    return DeclaredDependency(
        ecosystem=ecosystem,
        name=dep["name"],
        version_range=version,
        direct=bool(dep.get("direct", True)),
        locked=lockfile,
        dependencies=children,
    )


def _parse_file_listing(entry: Any) -> FileListing:
    if not isinstance(entry, dict):
        raise InventoryError("File listing entry must be an object")
    for key in ("ecosystem", "name", "version"):
        if not entry.get(key):
            raise InventoryError(f"File listing entry has no {key}")
    identity = PackageIdentity.create(entry["ecosystem"], entry["name"], entry["version"])
    files = []
    for item in entry.get("files") or []:
        if not isinstance(item, dict) or not item.get("path"):
            raise InventoryError(f"Invalid file entry: {item!r}")
        size = item.get("size")
        if size is not None:
            try:
                size = int(size)
            except (TypeError, ValueError) as e:
                raise InventoryError(f"Invalid size for {item['path']}: {size!r}") from e
        files.append(PackageFile(path=item["path"], sha256=item.get("sha256"), size=size))
    return FileListing(identity=identity, files=files)


def inventory_from_dependencies(dependencies: Dict[str, List[Dict[str, str]]]) -> Inventory:
    """Build an inventory from ``{ecosystem: [{"name", "version"}, ...]}`` (one manifest per ecosystem)."""
    return parse_inventory(
        {
            "manifests": [
                {"path": f"<{ecosystem}>", "ecosystem": ecosystem, "dependencies": deps}
                for ecosystem, deps in dependencies.items()
            ]
        }
    )
