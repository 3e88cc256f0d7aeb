"""Thunderstore registry client: community package listing index."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Tuple

from constants import Constants
from common.errors import ListingFetchFailed
from common.http_client import get_json
from common.logging_utils import extra_context, is_debug_enabled, safe_url

logger = logging.getLogger(__name__)

_INVALID_NAME_CHARS = re.compile(r"[^A-Za-z0-9_]")

ListingKey = Tuple[str, str]


@dataclass(frozen=True)
class ListingVersion:
    """One uploaded version of a Thunderstore package."""
    version_number: str
    date_created: datetime


@dataclass(frozen=True)
class PackageListing:
    """A Thunderstore package with its newest version first."""
    namespace: str
    name: str
    versions: Tuple[ListingVersion, ...]

    @property
    def latest_version(self) -> Optional[ListingVersion]:
        return self.versions[0] if self.versions else None


def thunderstore_package_name(package_id: str) -> str:
    """Thunderstore-legal package name for a NuGet package id."""
    return _INVALID_NAME_CHARS.sub("_", package_id)


def _parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def parse_package_index(data: Iterable[Dict[str, Any]]) -> Dict[ListingKey, PackageListing]:
    """Index a package listing payload by (namespace, name).

    Raises:
        ListingFetchFailed: the payload is not a list of package listings
    """
    index: Dict[ListingKey, PackageListing] = {}
    try:
        for entry in data:
            versions = tuple(
                ListingVersion(v["version_number"], _parse_timestamp(v["date_created"]))
                for v in entry.get("versions") or []
            )
            listing = PackageListing(namespace=entry["owner"], name=entry["name"], versions=versions)
            index[(listing.namespace, listing.name)] = listing
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise ListingFetchFailed(f"Malformed Thunderstore package index: {exc}") from exc
    return index


def fetch_package_index(community: str, base_url: str = Constants.REGISTRY_URL_THUNDERSTORE) -> Dict[ListingKey, PackageListing]:
    """Fetch and index every package listed in a Thunderstore community.

    Raises:
        ListingFetchFailed: the index could not be fetched or parsed
    """
    url = f"{base_url.rstrip('/')}/c/{community}/api/v1/package/"
    logger.info("Fetching Thunderstore package index for community '%s'", community)
    status_code, _, data = get_json(url, headers={"Accept-Encoding": "gzip, deflate"})
    if status_code != 200 or not isinstance(data, list):
        raise ListingFetchFailed(
            f"Failed to fetch Thunderstore package index from {safe_url(url)} (HTTP {status_code})"
        )
    index = parse_package_index(data)
    if is_debug_enabled(logger):
        logger.debug(
            "Parsed Thunderstore package index",
            extra=extra_context(
                event="parse", component="thunderstore", action="fetch_package_index",
                outcome="success", listing_count=len(index), target=community,
            ),
        )
    return index


def listing_for(index: Dict[ListingKey, PackageListing], namespace: str, package_id: str) -> Optional[PackageListing]:
    return index.get((namespace, thunderstore_package_name(package_id)))
