"""Thunderstore registry package.

- client.py: community package listing index
- uptodate.py: filter resolved packages already deployed from the current version
"""

from .client import (  # noqa: F401
    ListingVersion,
    PackageListing,
    fetch_package_index,
    parse_package_index,
    thunderstore_package_name,
)
from .uptodate import filter_undeployed, is_deployed, thunderstore_version_number  # noqa: F401

__all__ = [
    "ListingVersion",
    "PackageListing",
    "fetch_package_index",
    "parse_package_index",
    "thunderstore_package_name",
    "filter_undeployed",
    "is_deployed",
    "thunderstore_version_number",
]
