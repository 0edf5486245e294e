"""Best-effort version selection for declared dependency ranges.

This is not a constraint solver. Each function returns the minimum version
a declared range admits (the range's inclusive lower bound), or None when
the range has no usable lower bound. No registry lookup is involved and no
conflicts between parents are reconciled.
"""

import re
from typing import Callable, Dict, List, Optional

import semantic_version
from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion
from packaging.version import Version as Pep440Version

from ..logging_config import logger
from ..models import Ecosystem

_NPM_TAGS = {"", "*", "x", "X", "latest", "next", "beta", "canary"}
_NPM_NON_REGISTRY_PREFIXES = (
    "http://",
    "https://",
    "git:",
    "git+",
    "git@",
    "github:",
    "gitlab:",
    "bitbucket:",
    "file:",
    "link:",
    "workspace:",
    "npm:",
    "portal:",
)
_OPERATOR_SPACING = re.compile(r"(>=|<=|>|<|=|\^|~)\s+")
_COMPARATOR = re.compile(r"^(\^|~>|~|>=|<=|>|<|=)?\s*[vV]?(.+)$")
_HYPHEN_RANGE = re.compile(r"^(\S+)\s+-\s+(\S+)$")
_WILDCARD = {"x", "X", "*"}


def pad_version(version: str) -> Optional[str]:
    """
    Turn a partial version into a full MAJOR.MINOR.PATCH version.

    ``1`` -> ``1.0.0``, ``1.2`` -> ``1.2.0``, ``1.x`` -> ``1.0.0``.
    Pre-release and build suffixes are kept on full versions only.

    Returns:
        The padded version, or None if the major component is a wildcard
    """
    core, sep, suffix = version.partition("-")
    if "+" in core:
        core, build_sep, build = core.partition("+")
        suffix = f"{suffix}{build_sep}{build}" if suffix else build
        sep = "+" if not sep else sep
    parts = core.split(".")
    if not parts or parts[0] in _WILDCARD or not parts[0]:
        return None

    padded: List[str] = []
    truncated = False
    for part in parts[:3]:
        if part in _WILDCARD or truncated:
            truncated = True
            padded.append("0")
        else:
            padded.append(part)
    while len(padded) < 3:
        padded.append("0")
        truncated = True

    result = ".".join(padded)
    if suffix and not truncated:
        result = f"{result}{sep}{suffix}"
    return result


def _semver_lower_bound(alternative: str) -> Optional[str]:
    """Lower bound of one npm/Cargo comparator set."""
    hyphen = _HYPHEN_RANGE.match(alternative)
    if hyphen:
        return pad_version(hyphen.group(1).lstrip("vV"))

    comparators = [c.strip() for c in re.split(r"[\s,]+", _OPERATOR_SPACING.sub(r"\1", alternative)) if c.strip()]
    if not comparators:
        return None

    lower_bounds = []
    for comparator in comparators:
        match = _COMPARATOR.match(comparator)
        if not match:
            return None
        operator = match.group(1) or ""
        if operator in ("<", "<="):
            continue
        if operator == ">":
            # Exclusive lower bound, the next version is unknown
            return None
        lower_bounds.append(match.group(2))

    if not lower_bounds:
        return None
    return pad_version(lower_bounds[0])


def select_npm_version(version_range: str) -> Optional[str]:
    """
    Pick the minimum version satisfying an npm range.

    The first ``||`` alternative is used. Tags, URLs, git and local specs
    cannot be pinned without a registry lookup and yield None.
    """
    spec = version_range.strip()
    if spec in _NPM_TAGS or spec.startswith(_NPM_NON_REGISTRY_PREFIXES):
        return None

    alternative = spec.split("||")[0].strip()
    if not alternative:
        return None

    candidate = _semver_lower_bound(alternative)
    if candidate is None:
        return None

    try:
        version = semantic_version.Version(candidate)
    except ValueError:
        logger.debug(f"Lower bound '{candidate}' of npm range '{spec}' is not a semantic version")
        return None

    try:
        if version not in semantic_version.NpmSpec(spec):
            logger.debug(f"Lower bound {candidate} does not satisfy npm range '{spec}'")
            return None
    except ValueError:
        # Range syntax beyond NpmSpec; keep the lower bound
        pass

    return str(version)


def select_cargo_version(version_range: str) -> Optional[str]:
    """
    Pick the minimum version satisfying a Cargo requirement.

    Bare versions are caret requirements in Cargo, so ``1.2`` selects
    ``1.2.0``. Comma-separated comparators are combined.
    """
    spec = version_range.strip()
    if spec in ("", "*"):
        return None

    candidate = _semver_lower_bound(spec)
    if candidate is None:
        return None

    try:
        return str(semantic_version.Version(candidate))
    except ValueError:
        logger.debug(f"Lower bound '{candidate}' of Cargo requirement '{spec}' is not a semantic version")
        return None


def select_pypi_version(version_range: str) -> Optional[str]:
    """
    Pick the minimum version satisfying a PEP 440 specifier set.

    Candidates are taken from ``==``, ``===``, ``>=`` and ``~=`` clauses;
    the largest of them that satisfies the whole set is the result.
    """
    spec = version_range.strip()
    if not spec:
        return None

    try:
        return str(Pep440Version(spec))
    except InvalidVersion:
        pass

    try:
        specifiers = SpecifierSet(spec)
    except InvalidSpecifier:
        logger.debug(f"Invalid PEP 440 specifier: '{spec}'")
        return None

    exact = []
    lower_bounds = []
    for specifier in specifiers:
        version = specifier.version
        if specifier.operator in ("==", "==="):
            exact.append(version[:-2] if version.endswith(".*") else version)
        elif specifier.operator in (">=", "~="):
            lower_bounds.append(version)

    for candidate in exact + sorted(lower_bounds, key=_pep440_sort_key, reverse=True):
        try:
            if specifiers.contains(candidate, prereleases=True):
                return candidate
        except InvalidVersion:
            continue
    return None


def _pep440_sort_key(version: str) -> Pep440Version:
    try:
        return Pep440Version(version)
    except InvalidVersion:
        return Pep440Version("0")


def select_interval_version(version_range: str) -> Optional[str]:
    """
    Pick the inclusive lower bound of a NuGet/Maven version range.

    ``[1.0,2.0)`` -> ``1.0``; ``[1.0]`` -> ``1.0``; a bare ``1.0`` is a
    minimum-version requirement and selects itself. Exclusive or missing
    lower bounds, floating versions and unresolved properties yield None.
    """
    spec = version_range.strip()
    if not spec or "*" in spec or "${" in spec or spec.upper() in ("LATEST", "RELEASE"):
        return None

    if spec[0] in "[(":
        inclusive = spec[0] == "["
        inner = spec[1:]
        lower = inner.split(",")[0].strip().rstrip("])")
        if not lower or not inclusive:
            return None
        return lower

    if "," in spec:
        return None
    return spec


def select_go_version(version_range: str) -> Optional[str]:
    """Go module requirements name exact minimum versions."""
    spec = version_range.strip()
    return spec or None


def select_rubygems_version(version_range: str) -> Optional[str]:
    """
    Pick the minimum version satisfying a RubyGems requirement list.

    ``~> 1.2, >= 1.2.3`` -> ``1.2.3``. ``>= 0`` admits anything and yields None.
    """
    spec = version_range.strip()
    if not spec:
        return None

    lower_bounds = []
    for clause in spec.split(","):
        clause = clause.strip().strip("'\"")
        if not clause:
            continue
        match = _COMPARATOR.match(clause)
        if not match:
            return None
        operator = match.group(1) or "="
        version = match.group(2).strip()
        if operator in ("~>", ">=", "="):
            lower_bounds.append(version)
        elif operator == ">":
            return None

    lower_bounds = [v for v in lower_bounds if v.strip("0.")]
    if not lower_bounds:
        return None
    return max(lower_bounds, key=_gem_sort_key)


def _gem_sort_key(version: str) -> tuple:
    return tuple(int(part) if part.isdigit() else 0 for part in version.split("."))


VERSION_SELECTORS: Dict[Ecosystem, Callable[[str], Optional[str]]] = {
    Ecosystem.NPM: select_npm_version,
    Ecosystem.NUGET: select_interval_version,
    Ecosystem.PYPI: select_pypi_version,
    Ecosystem.MAVEN: select_interval_version,
    Ecosystem.CARGO: select_cargo_version,
    Ecosystem.GO: select_go_version,
    Ecosystem.RUBYGEMS: select_rubygems_version,
}


def select_version(ecosystem: Ecosystem, version_range: str) -> Optional[str]:
    """Pick a concrete version for a declared range using the ecosystem's heuristic."""
    return VERSION_SELECTORS[ecosystem](version_range)
