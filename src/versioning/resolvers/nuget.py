"""NuGet best-match version selection over semantic versions."""

from typing import Iterable, List, Optional, Sequence

import semantic_version

from common.errors import NoMatchingVersion
from ..models import FloatBehavior, PackageVersionMetadata, VersionRange, precedence


def _filter_matching_versions(
    candidates: Iterable[semantic_version.Version], version_range: VersionRange
) -> List[semantic_version.Version]:
    """Versions allowed by the range; stable ones win over pre-releases."""
    matches = [ver for ver in candidates if version_range.satisfies(ver)]
    stable = [ver for ver in matches if not ver.prerelease]
    return stable or matches


def resolve_best_match(
    known_versions: Iterable[semantic_version.Version],
    version_range: VersionRange,
    package_id: Optional[str] = None,
) -> semantic_version.Version:
    """Pick the version ``version_range`` resolves to among ``known_versions``.

    Pre-release versions are only eligible when no stable version satisfies
    the bounds. ``FloatBehavior.ABSOLUTE_LATEST`` returns the highest eligible
    version and ``FloatBehavior.NONE`` the lowest.

    Raises:
        NoMatchingVersion: nothing in ``known_versions`` satisfies the range
    """
    candidates = list(known_versions)
    matching_versions = _filter_matching_versions(candidates, version_range)
    if not matching_versions:
        raise NoMatchingVersion(package_id, version_range, len(candidates))
    if version_range.float_behavior is FloatBehavior.ABSOLUTE_LATEST:
        return max(matching_versions, key=precedence)
    return min(matching_versions, key=precedence)


def resolve_best_match_metadata(
    package_versions: Sequence[PackageVersionMetadata],
    version_range: VersionRange,
    package_id: Optional[str] = None,
) -> PackageVersionMetadata:
    """Like resolve_best_match, returning the chosen version's metadata."""
    index = {precedence(meta.version): meta for meta in package_versions}
    if package_id is None and package_versions:
        package_id = package_versions[0].package_id
    chosen = resolve_best_match((meta.version for meta in package_versions), version_range, package_id)
    return index[precedence(chosen)]
