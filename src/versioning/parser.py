"""Version and version-range parsing utilities.

NuGet accepts versions with one to four numeric parts and expresses ranges in
interval notation. Both are mapped onto ``semantic_version`` objects here.
"""

import re
from typing import Optional

import semantic_version

from .models import FloatBehavior, NuGetVersion, VersionRange, precedence

_NUGET_VERSION = re.compile(
    r"^(?P<major>\d+)(?:\.(?P<minor>\d+))?(?:\.(?P<patch>\d+))?(?:\.(?P<revision>\d+))?"
    r"(?:-(?P<prerelease>[0-9A-Za-z.-]+))?(?:\+(?P<build>[0-9A-Za-z.-]+))?$"
)


def parse_semantic_version(text: str) -> Optional[semantic_version.Version]:
    """Parse a strict major.minor.patch semantic version, or return None."""
    try:
        return semantic_version.Version(text.strip())
    except ValueError:
        return None


def parse_nuget_version(text: str) -> NuGetVersion:
    """Parse a NuGet version string.

    One and two part versions are padded with zeros; a fourth numeric part is
    the revision and ranks between patch and pre-release.

    Raises:
        ValueError: the string is not a version
    """
    s = text.strip()
    m = _NUGET_VERSION.match(s)
    if not m:
        raise ValueError(f"Invalid version: {text!r}")
    prerelease, build = m.group("prerelease"), m.group("build")
    return NuGetVersion(
        major=int(m.group("major")),
        minor=int(m.group("minor") or 0),
        patch=int(m.group("patch") or 0),
        revision=int(m.group("revision") or 0),
        prerelease=tuple(prerelease.split(".")) if prerelease else (),
        build=tuple(build.split(".")) if build else (),
        original=s,
    )


def parse_version_range(text: Optional[str]) -> VersionRange:
    """Parse a NuGet version range.

    Supported forms::

        1.0          version >= 1.0
        [1.0]        version == 1.0
        (1.0,)       version > 1.0
        [1.0,2.0)    1.0 <= version < 2.0
        (,2.0]       version <= 2.0
        "" or *      any version

    Raises:
        ValueError: the string is not a valid range
    """
    s = (text or "").strip()
    if s in ("", "*", "*-*"):
        return VersionRange()

    if s[0] not in "[(":
        return VersionRange(min_version=parse_nuget_version(s), include_min=True)

    if len(s) < 3 or s[-1] not in "])":
        raise ValueError(f"Invalid version range: {text!r}")

    include_min = s[0] == "["
    include_max = s[-1] == "]"
    body = s[1:-1]

    if "," not in body:
        # Only the [x.y.z] exact form is valid without a comma
        if not (include_min and include_max):
            raise ValueError(f"Invalid version range: {text!r}")
        exact = parse_nuget_version(body)
        return VersionRange(min_version=exact, include_min=True, max_version=exact, include_max=True)

    parts = body.split(",")
    if len(parts) != 2:
        raise ValueError(f"Invalid version range: {text!r}")
    low, high = parts[0].strip(), parts[1].strip()
    if not low and not high:
        raise ValueError(f"Invalid version range: {text!r}")

    min_version = parse_nuget_version(low) if low else None
    max_version = parse_nuget_version(high) if high else None
    if min_version is not None and max_version is not None:
        if precedence(max_version) < precedence(min_version):
            raise ValueError(f"Invalid version range: {text!r}")
        if precedence(max_version) == precedence(min_version) and not (include_min and include_max):
            raise ValueError(f"Empty version range: {text!r}")

    return VersionRange(
        min_version=min_version,
        include_min=include_min if min_version is not None else True,
        max_version=max_version,
        include_max=include_max if max_version is not None else False,
        float_behavior=FloatBehavior.NONE,
    )
