"""Registry resolvers, one per supported ecosystem."""

from .cargo import CargoResolver
from .golang import GoModuleResolver
from .maven import MavenResolver
from .npm import NpmResolver
from .nuget import NuGetResolver
from .pypi import PyPIResolver
from .rubygems import RubyGemsResolver

__all__ = [
    "CargoResolver",
    "GoModuleResolver",
    "MavenResolver",
    "NpmResolver",
    "NuGetResolver",
    "PyPIResolver",
    "RubyGemsResolver",
]
