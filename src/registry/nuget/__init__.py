"""NuGet registry package.

This package provides the NuGet side of the bridge:
- client.py: registry metadata source over the NuGet V3 registration API
- closure.py: transitive dependency closure of root packages
"""

from .client import NuGetMetadataSource, parse_catalog_entry  # noqa: F401
from .closure import (  # noqa: F401
    ClosureResult,
    DependencyClosureResolver,
    dependencies_for,
    join_all,
    resolve_closure,
)

__all__ = [
    "NuGetMetadataSource",
    "parse_catalog_entry",
    "ClosureResult",
    "DependencyClosureResolver",
    "dependencies_for",
    "join_all",
    "resolve_closure",
]
