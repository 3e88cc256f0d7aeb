"""Transitive dependency closure of a set of NuGet root packages.

Each root is pinned to its absolute latest version, then every dependency
edge of the nearest dependency group is resolved to the absolute latest
version inside its range, recursively. Fan-out happens concurrently at every
level and each level joins on all of its children before returning.

Within one run an identity is expanded only by the branch that claimed it
first and a package's versions are fetched only once, so diamonds collapse
and cycles terminate.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Dict, Iterable, Iterator, List, Mapping, Protocol, Sequence

from common.logging_utils import extra_context, is_debug_enabled, Timer
from versioning.frameworks import Framework, get_nearest
from versioning.models import (
    FloatBehavior,
    PackageDependency,
    PackageVersionMetadata,
    ResolvedPackageIdentity,
    VersionRange,
)
from versioning.resolvers.nuget import resolve_best_match_metadata

logger = logging.getLogger(__name__)


class MetadataSource(Protocol):
    """Anything that can list the published versions of a package."""

    async def fetch_all_versions(self, package_id: str) -> List[PackageVersionMetadata]:
        """All known versions; an empty list for an unknown package."""


@dataclass(frozen=True)
class ClosureResult:
    """Resolved identities plus the metadata each was chosen from."""
    identities: frozenset
    metadata: Mapping[ResolvedPackageIdentity, PackageVersionMetadata] = field(
        default_factory=dict, compare=False
    )

    def __iter__(self) -> Iterator[ResolvedPackageIdentity]:
        return iter(sorted(self.identities, key=lambda i: i.key))

    def __len__(self) -> int:
        return len(self.identities)

    def __contains__(self, identity: object) -> bool:
        return identity in self.identities


def dependencies_for(metadata: PackageVersionMetadata, framework: Framework) -> Sequence[PackageDependency]:
    """Dependencies of the group nearest to ``framework``; empty when none applies."""
    group = get_nearest(metadata.dependency_groups, framework, lambda g: g.target_framework)
    if group is None:
        return ()
    return group.dependencies


async def join_all(awaitables: Iterable[Awaitable]) -> list:
    """Wait for every awaitable, then re-raise the first failure in launch order."""
    results = await asyncio.gather(*awaitables, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


class _ClosureRun:
    """State shared by every branch of one resolution run."""

    def __init__(self, source: MetadataSource, framework: Framework):
        self.source = source
        self.framework = framework
        self.claimed: Dict[ResolvedPackageIdentity, PackageVersionMetadata] = {}
        self._fetches: Dict[str, asyncio.Future] = {}

    def versions_of(self, package_id: str) -> asyncio.Future:
        """Shared fetch of ``package_id``'s versions, started on first request."""
        key = package_id.lower()
        fetch = self._fetches.get(key)
        if fetch is None:
            fetch = asyncio.ensure_future(self.source.fetch_all_versions(package_id))
            self._fetches[key] = fetch
        return fetch

    def claim(self, metadata: PackageVersionMetadata) -> bool:
        """Record ``metadata``'s identity; True only for the first claimant.

        Runs without awaiting, so check-and-insert is atomic on the event loop.
        """
        identity = metadata.identity
        if identity in self.claimed:
            return False
        self.claimed[identity] = metadata
        return True

    async def resolve(self, package_id: str, version_range: VersionRange) -> None:
        package_versions = await self.versions_of(package_id)
        chosen = resolve_best_match_metadata(
            package_versions, version_range.with_float(FloatBehavior.ABSOLUTE_LATEST), package_id
        )
        if not self.claim(chosen):
            return
        if is_debug_enabled(logger):
            logger.debug(
                "Resolved package version",
                extra=extra_context(
                    event="package_resolved",
                    component="closure",
                    package_manager="nuget",
                    target=package_id,
                    version=str(chosen.version),
                    range=str(version_range),
                ),
            )
        await self.expand(chosen)

    async def expand(self, metadata: PackageVersionMetadata) -> None:
        dependencies = dependencies_for(metadata, self.framework)
        await join_all(self.resolve(dep.package_id, dep.version_range) for dep in dependencies)


class DependencyClosureResolver:
    """Resolve the full set of package versions needed by some root packages.

    Args:
        source: registry metadata source
        target_framework: framework used to pick each version's dependency group
    """

    def __init__(self, source: MetadataSource, target_framework: Framework):
        self.source = source
        self.target_framework = target_framework

    async def resolve(self, root_package_ids: Sequence[str]) -> ClosureResult:
        """Return the deduplicated closure of ``root_package_ids``.

        Raises:
            NoMatchingVersion: some root or dependency range matched nothing
            MetadataFetchFailed: the metadata source failed for some package
        """
        run = _ClosureRun(self.source, self.target_framework)
        with Timer() as t:
            await join_all(
                run.resolve(package_id, VersionRange.unbounded()) for package_id in root_package_ids
            )
        logger.info(
            "Resolved %d package versions from %d root packages",
            len(run.claimed),
            len(root_package_ids),
            extra=extra_context(
                event="closure_resolved",
                component="closure",
                framework=str(self.target_framework),
                duration_ms=t.duration_ms(),
            ),
        )
        return ClosureResult(identities=frozenset(run.claimed), metadata=dict(run.claimed))


def resolve_closure(
    source: MetadataSource, root_package_ids: Sequence[str], target_framework: Framework
) -> Awaitable[ClosureResult]:
    """Convenience wrapper around DependencyClosureResolver.resolve."""
    return DependencyClosureResolver(source, target_framework).resolve(root_package_ids)
