"""Version tag discovery over git history.

The walk starts at the tip commit and follows parents depth-first with an
explicit stack, first parent first. Every ``v``-prefixed tag whose remainder
is a semantic version becomes a candidate; parentless commits without such a
tag contribute a synthetic ``0.0.0`` candidate so the walk never comes back
empty.
"""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Protocol, Sequence, Set, Tuple

import semantic_version

from common.errors import NoCandidates
from constants import Constants
from .models import VersionTagCandidate
from .parser import parse_semantic_version

ROOT_VERSION = semantic_version.Version("0.0.0")


class CommitHistory(Protocol):
    """Read-only view over a repository's commit graph."""

    def tip(self) -> str:
        """Id of the commit HEAD points at."""

    def parents(self, commit_id: str) -> Sequence[str]:
        """Parent ids in recorded order."""

    def tags_targeting(self, commit_id: str) -> Sequence[str]:
        """Names of the tags whose target is ``commit_id``."""

    def committed_when(self, commit_id: str) -> datetime:
        """Committer timestamp of ``commit_id``."""


def _version_tags(tag_names: Iterable[str], prefix: str) -> List[Tuple[str, semantic_version.Version]]:
    """Qualifying tags at one commit, ordered by version then name."""
    tags = []
    for name in tag_names:
        if not name.startswith(prefix):
            continue
        version = parse_semantic_version(name[len(prefix):])
        if version is None:
            continue
        tags.append((name, version))
    tags.sort(key=lambda tag: tag[0])
    tags.sort(key=lambda tag: tag[1])
    return tags


def walk_version_tag_candidates(
    history: CommitHistory, prefix: str = Constants.VERSION_TAG_PREFIX
) -> List[VersionTagCandidate]:
    """Collect version tag candidates reachable from the tip commit.

    ``discovery_order`` is the number of candidates emitted before each one,
    so it reflects the walk order exactly.
    """
    candidates: List[VersionTagCandidate] = []
    considered: Set[str] = set()
    to_consider = [history.tip()]

    while to_consider:
        commit_id = to_consider.pop()
        if commit_id in considered:
            continue
        considered.add(commit_id)
        emitted = len(candidates)

        for name, version in _version_tags(history.tags_targeting(commit_id), prefix):
            candidates.append(VersionTagCandidate(commit_id, name, version, len(candidates)))

        parents = list(history.parents(commit_id))
        to_consider.extend(reversed(parents))

        if not parents and len(candidates) == emitted:
            candidates.append(VersionTagCandidate(commit_id, "", ROOT_VERSION, len(candidates)))

    return candidates


def order_candidates(candidates: Iterable[VersionTagCandidate]) -> List[VersionTagCandidate]:
    """Sort candidates best first.

    Two stable passes: discovery order ascending, then version descending, so
    among equal versions the earliest discovered candidate comes first.
    """
    ordered = sorted(candidates, key=lambda c: c.discovery_order)
    ordered.sort(key=lambda c: c.version, reverse=True)
    return ordered


def select_candidate(candidates: Iterable[VersionTagCandidate]) -> VersionTagCandidate:
    """Return the winning candidate.

    Raises:
        NoCandidates: ``candidates`` is empty
    """
    ordered = order_candidates(candidates)
    if not ordered:
        raise NoCandidates("No version tag candidates; the history walk produced nothing")
    return ordered[0]
