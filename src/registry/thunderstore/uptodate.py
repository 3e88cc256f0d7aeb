"""Decide which resolved NuGet packages still need a Thunderstore upload."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List

import semantic_version

from versioning.models import ResolvedPackageIdentity
from .client import ListingKey, PackageListing, listing_for

logger = logging.getLogger(__name__)


def thunderstore_version_number(version: semantic_version.Version) -> str:
    """Thunderstore only accepts major.minor.patch."""
    return f"{version.major}.{version.minor}.{version.patch}"


def _aware(moment: datetime) -> datetime:
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=timezone.utc)


def is_deployed(
    identity: ResolvedPackageIdentity,
    index: Dict[ListingKey, PackageListing],
    namespace: str,
    current_commit_when: datetime,
) -> bool:
    """Whether ``identity`` is already live and was built from the current commit.

    The listing's newest version must carry the same version number and must
    have been created no earlier than the commit being built, so any commit
    after the last upload makes the package stale again.
    """
    listing = listing_for(index, namespace, identity.package_id)
    if listing is None or listing.latest_version is None:
        return False
    latest = listing.latest_version
    if latest.version_number != thunderstore_version_number(identity.version):
        return False
    return _aware(latest.date_created) >= _aware(current_commit_when)


def filter_undeployed(
    identities: Iterable[ResolvedPackageIdentity],
    index: Dict[ListingKey, PackageListing],
    namespace: str,
    current_commit_when: datetime,
) -> List[ResolvedPackageIdentity]:
    """Identities that still have to be bridged, in input order."""
    pending = []
    for identity in identities:
        if is_deployed(identity, index, namespace, current_commit_when):
            logger.info("Skipping %s: already deployed to %s", identity, namespace)
            continue
        pending.append(identity)
    return pending
