"""Data models for version resolution and dependency closure."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

import semantic_version


class FloatBehavior(Enum):
    """How a range picks one version among those it allows."""
    NONE = "none"  # lowest applicable version
    ABSOLUTE_LATEST = "absolute_latest"  # highest applicable version


def _prerelease_key(prerelease: Tuple[str, ...]) -> Tuple:
    # Releases sort above every pre-release; numeric identifiers below alphanumeric ones
    if not prerelease:
        return (1,)
    return (0, tuple((0, int(p), "") if p.isdigit() else (1, 0, p) for p in prerelease))


def precedence(version: semantic_version.Version) -> Tuple:
    """Hashable ordering key of a version, ignoring build metadata.

    The NuGet revision (fourth numeric part) ranks between patch and
    pre-release; plain semantic versions have revision 0.
    """
    return (
        version.major,
        version.minor,
        version.patch,
        getattr(version, "revision", 0),
        _prerelease_key(tuple(version.prerelease or ())),
    )


class NuGetVersion(semantic_version.Version):
    """Semantic version with NuGet's optional fourth numeric part.

    ``revision`` takes part in ordering and equality; ``original`` keeps the
    text the registry published. ``str()`` gives the normalized NuGet form
    (``1.2.3`` or ``1.2.3.4`` plus any pre-release and build labels).
    """

    def __init__(self, major: int, minor: int = 0, patch: int = 0, revision: int = 0,
                 prerelease: Tuple[str, ...] = (), build: Tuple[str, ...] = (),
                 original: Optional[str] = None):
        self.revision = revision
        super().__init__(major=major, minor=minor, patch=patch, prerelease=prerelease, build=build)
        self.original = original if original is not None else str(self)

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.revision:
            text += f".{self.revision}"
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        if self.build:
            text += "+" + ".".join(self.build)
        return text

    def __repr__(self) -> str:
        return f"NuGetVersion({str(self)!r})"

    def __hash__(self) -> int:
        return hash(precedence(self))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, semantic_version.Version):
            return NotImplemented
        return precedence(self) == precedence(other) and tuple(self.build or ()) == tuple(other.build or ())

    def __ne__(self, other: object) -> bool:
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, semantic_version.Version):
            return NotImplemented
        return precedence(self) < precedence(other)

    def __le__(self, other: object) -> bool:
        if not isinstance(other, semantic_version.Version):
            return NotImplemented
        return precedence(self) <= precedence(other)

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, semantic_version.Version):
            return NotImplemented
        return precedence(self) > precedence(other)

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, semantic_version.Version):
            return NotImplemented
        return precedence(self) >= precedence(other)


@dataclass(frozen=True)
class VersionRange:
    """Bounds over semantic versions plus a float behavior.

    A missing bound is unbounded on that side.
    """
    min_version: Optional[semantic_version.Version] = None
    include_min: bool = True
    max_version: Optional[semantic_version.Version] = None
    include_max: bool = False
    float_behavior: FloatBehavior = FloatBehavior.NONE

    @classmethod
    def unbounded(cls, float_behavior: FloatBehavior = FloatBehavior.ABSOLUTE_LATEST) -> "VersionRange":
        """Range that allows every version."""
        return cls(float_behavior=float_behavior)

    def with_float(self, float_behavior: FloatBehavior) -> "VersionRange":
        """Copy of this range with another float behavior."""
        return replace(self, float_behavior=float_behavior)

    def satisfies(self, version: semantic_version.Version) -> bool:
        """Whether ``version`` lies within the bounds."""
        key = precedence(version)
        if self.min_version is not None:
            low = precedence(self.min_version)
            if key < low or (key == low and not self.include_min):
                return False
        if self.max_version is not None:
            high = precedence(self.max_version)
            if key > high or (key == high and not self.include_max):
                return False
        return True

    def __str__(self) -> str:
        if self.min_version is None and self.max_version is None:
            return "(, )"
        if (
            self.min_version is not None
            and self.max_version is not None
            and self.include_min
            and self.include_max
            and precedence(self.min_version) == precedence(self.max_version)
        ):
            return f"[{self.min_version}]"
        if self.min_version is not None and self.max_version is None and self.include_min:
            return f"[{self.min_version}, )"
        lower = "[" if self.include_min and self.min_version is not None else "("
        upper = "]" if self.include_max and self.max_version is not None else ")"
        low = str(self.min_version) if self.min_version is not None else ""
        high = str(self.max_version) if self.max_version is not None else ""
        return f"{lower}{low}, {high}{upper}"


@dataclass(frozen=True, eq=False)
class ResolvedPackageIdentity:
    """A package id at one version.

    Package ids compare case-insensitively and versions by precedence, which
    includes the NuGet revision but not build metadata.
    """
    package_id: str
    version: semantic_version.Version

    @property
    def key(self) -> Tuple[str, Tuple]:
        return self.package_id.lower(), precedence(self.version)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResolvedPackageIdentity):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        return f"{self.package_id}@{self.version}"


@dataclass(frozen=True)
class PackageDependency:
    """One dependency edge as declared by a package version."""
    package_id: str
    version_range: VersionRange


@dataclass(frozen=True)
class DependencyGroup:
    """Dependencies declared for one target framework.

    ``target_framework`` is a parsed ``versioning.frameworks.Framework``.
    """
    target_framework: object
    dependencies: Tuple[PackageDependency, ...] = ()


@dataclass(frozen=True)
class PackageVersionMetadata:
    """Registry metadata of a single published package version."""
    package_id: str
    version: semantic_version.Version
    dependency_groups: Tuple[DependencyGroup, ...] = ()
    listed: bool = True

    @property
    def identity(self) -> ResolvedPackageIdentity:
        return ResolvedPackageIdentity(self.package_id, self.version)


@dataclass(frozen=True)
class VersionTagCandidate:
    """A version tag (or synthetic root) found while walking history."""
    commit_id: str
    tag_name: str
    version: semantic_version.Version
    discovery_order: int


@dataclass(frozen=True)
class VersionResolution:
    """Winning candidate of a history walk.

    ``head_committed_when`` is the committer timestamp of the checked-out
    commit, which may be newer than the winning tag.
    """
    version: semantic_version.Version
    last_version_change_when: datetime
    commit_id: str
    head_committed_when: datetime
    tag_name: str = ""
    candidate_count: int = field(default=0, compare=False)
