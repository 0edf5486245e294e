"""Package URL synthesis for resolved packages."""

from typing import Dict, Optional, Tuple

from packageurl import PackageURL

from .exceptions import AssemblyError
from .models import Ecosystem, PackageNode

# Fixed ecosystem -> PURL type table shared by resolvers and assemblers
PURL_TYPES: Dict[Ecosystem, str] = {
    Ecosystem.NPM: "npm",
    Ecosystem.NUGET: "nuget",
    Ecosystem.PYPI: "pypi",
    Ecosystem.MAVEN: "maven",
    Ecosystem.CARGO: "cargo",
    Ecosystem.GO: "golang",
    Ecosystem.RUBYGEMS: "gem",
}


def get_purl_type(ecosystem: Ecosystem) -> str:
    """Return the PURL type for an ecosystem.

    Raises:
        AssemblyError: If the ecosystem has no PURL type mapping
    """
    try:
        return PURL_TYPES[ecosystem]
    except KeyError:
        raise AssemblyError(f"No PURL type registered for ecosystem {ecosystem!r}") from None


def split_name(ecosystem: Ecosystem, name: str) -> Tuple[Optional[str], str]:
    """Split a package name into PURL (namespace, name).

    - Maven ``group:artifact`` -> (group, artifact)
    - npm ``@scope/name`` -> (@scope, name)
    - Go ``github.com/org/mod`` -> (github.com/org, mod)
    """
    if ecosystem == Ecosystem.MAVEN and ":" in name:
        group, artifact = name.split(":", 1)
        return group, artifact
    if ecosystem == Ecosystem.NPM and name.startswith("@") and "/" in name:
        scope, local = name.split("/", 1)
        return scope, local
    if ecosystem == Ecosystem.GO and "/" in name:
        namespace, local = name.rsplit("/", 1)
        return namespace, local
    return None, name


def build_purl(ecosystem: Ecosystem, name: str, version: Optional[str]) -> str:
    """Synthesize ``pkg:<type>/<namespace>/<name>@<version>`` for a package."""
    namespace, local_name = split_name(ecosystem, name)
    purl = PackageURL(
        type=get_purl_type(ecosystem),
        namespace=namespace,
        name=local_name,
        version=version or None,
    )
    return purl.to_string()


def purl_for_node(node: PackageNode) -> str:
    """Return the node's PURL, synthesizing one when it has none."""
    if node.purl:
        return node.purl
    return build_purl(node.ecosystem, node.name, node.version)
