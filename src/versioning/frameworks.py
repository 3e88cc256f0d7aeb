"""Target framework monikers and nearest-match selection.

A package declares dependency groups per target framework; the group used for
a build is the "nearest" one the build's runtime framework can consume.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Tuple, TypeVar

from constants import FrameworkFamilies

T = TypeVar("T")

_LONG_FORM = re.compile(
    r"^\.?(?P<name>netframework|netstandard|netcoreapp)"
    r"(?:,version=v?|\s*)?(?P<version>\d+(?:\.\d+)*)?$"
)
_SHORT_FORM = re.compile(r"^(?P<name>netstandard|netcoreapp|net)(?P<version>[\d.]+)$")

_FAMILY_BY_NAME = {
    "netframework": FrameworkFamilies.NET_FRAMEWORK,
    "netstandard": FrameworkFamilies.NET_STANDARD,
    "netcoreapp": FrameworkFamilies.NET_CORE_APP,
}

# Highest .NET Standard version each runtime implements, keyed by the
# runtime's minimum version.
_NETSTANDARD_SUPPORT = {
    FrameworkFamilies.NET_CORE_APP: (
        ((3,), (2, 1)),
        ((2,), (2,)),
        ((1,), (1, 6)),
    ),
    FrameworkFamilies.NET_FRAMEWORK: (
        ((4, 6, 1), (2,)),
        ((4, 6), (1, 3)),
        ((4, 5, 1), (1, 2)),
        ((4, 5), (1, 1)),
    ),
}


def _version_tuple(text: str) -> Tuple[int, ...]:
    parts = tuple(int(p) for p in text.split(".") if p != "")
    while len(parts) > 1 and parts[-1] == 0:
        parts = parts[:-1]
    return parts or (0,)


@dataclass(frozen=True)
class Framework:
    """A parsed framework: family plus normalized numeric version."""
    family: FrameworkFamilies
    version: Tuple[int, ...] = (0,)

    @property
    def is_any(self) -> bool:
        return self.family is FrameworkFamilies.ANY

    def __str__(self) -> str:
        if self.is_any:
            return "any"
        if self.family is FrameworkFamilies.NET_FRAMEWORK:
            return "net" + "".join(str(p) for p in self.version)
        padded = self.version if len(self.version) > 1 else self.version + (0,)
        dotted = ".".join(str(p) for p in padded)
        if self.family is FrameworkFamilies.NET_CORE_APP and self.version >= (5,):
            return f"net{dotted}"
        prefix = "netstandard" if self.family is FrameworkFamilies.NET_STANDARD else "netcoreapp"
        return f"{prefix}{dotted}"


ANY_FRAMEWORK = Framework(FrameworkFamilies.ANY)


def parse_framework(moniker: Optional[str]) -> Framework:
    """Parse a short or long framework moniker.

    Raises:
        ValueError: the moniker is not recognised
    """
    s = (moniker or "").strip().lower()
    if s in ("", "any", "agnostic", "dotnet"):
        return ANY_FRAMEWORK
    # Platform suffix (net6.0-windows) does not change dependency selection
    s = s.split("-", 1)[0]

    m = _LONG_FORM.match(s)
    if m and s.startswith("."):
        version = m.group("version") or "0"
        return Framework(_FAMILY_BY_NAME[m.group("name")], _version_tuple(version))

    m = _SHORT_FORM.match(s)
    if not m:
        raise ValueError(f"Unrecognised target framework: {moniker!r}")
    name, version = m.group("name"), m.group("version")
    if name == "net":
        if "." in version:
            # net5.0 and later are the .NETCoreApp family
            return Framework(FrameworkFamilies.NET_CORE_APP, _version_tuple(version))
        # net472 -> 4.7.2
        return Framework(FrameworkFamilies.NET_FRAMEWORK, _version_tuple(".".join(version)))
    return Framework(_FAMILY_BY_NAME[name], _version_tuple(version))


def _supported_netstandard(target: Framework) -> Optional[Tuple[int, ...]]:
    for minimum, netstandard in _NETSTANDARD_SUPPORT.get(target.family, ()):
        if target.version >= minimum:
            return netstandard
    return None


def is_compatible(target: Framework, candidate: Framework) -> bool:
    """Whether a project targeting ``target`` can consume ``candidate`` assets."""
    if candidate.is_any:
        return True
    if target.is_any:
        return False
    if candidate.family is target.family:
        return candidate.version <= target.version
    if candidate.family is FrameworkFamilies.NET_STANDARD:
        supported = _supported_netstandard(target)
        return supported is not None and candidate.version <= supported
    return False


def _preference(target: Framework, candidate: Framework) -> Tuple[int, Tuple[int, ...]]:
    if candidate.family is target.family:
        rank = 2
    elif candidate.family is FrameworkFamilies.NET_STANDARD:
        rank = 1
    else:
        rank = 0
    return rank, candidate.version


def get_nearest(items: Iterable[T], target: Framework, key: Callable[[T], Framework]) -> Optional[T]:
    """Return the item whose framework is the nearest compatible one to ``target``.

    Same-family frameworks win over .NET Standard, which wins over ``any``;
    within a family the highest compatible version wins. Returns None when
    nothing is compatible.
    """
    best: Optional[T] = None
    best_rank = None
    for item in items:
        candidate = key(item)
        if not is_compatible(target, candidate):
            continue
        rank = _preference(target, candidate)
        if best_rank is None or rank > best_rank:
            best, best_rank = item, rank
    return best
