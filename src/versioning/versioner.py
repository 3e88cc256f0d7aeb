"""Deterministic version of the current checkout, derived from git tags."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, ContextManager

import semantic_version

from common.logging_utils import extra_context, is_debug_enabled, Timer
from common.memo import OneShot
from constants import Constants
from .history import CommitHistory, select_candidate, walk_version_tag_candidates
from .models import VersionResolution

logger = logging.getLogger(__name__)


def _open_git_history(path: str) -> ContextManager[CommitHistory]:
    # Imported here so the resolver can be built from fakes without GitPython
    from repository.git_history import GitHistory  # pylint: disable=import-outside-toplevel
    return GitHistory.open(path)


def resolve_version(history: CommitHistory, prefix: str = Constants.VERSION_TAG_PREFIX) -> VersionResolution:
    """Walk ``history`` and return the winning version with its commit timestamps."""
    candidates = walk_version_tag_candidates(history, prefix)
    winner = select_candidate(candidates)
    return VersionResolution(
        version=winner.version,
        last_version_change_when=history.committed_when(winner.commit_id),
        commit_id=winner.commit_id,
        head_committed_when=history.committed_when(history.tip()),
        tag_name=winner.tag_name,
        candidate_count=len(candidates),
    )


class Versioner:
    """Version resolver for one repository.

    The history walk runs at most once per instance; every property reads
    the same memoized ``VersionResolution``.
    """

    def __init__(
        self,
        repository_root: str,
        history_factory: Callable[[str], ContextManager[CommitHistory]] = _open_git_history,
        prefix: str = Constants.VERSION_TAG_PREFIX,
    ):
        self.repository_root = repository_root
        self._history_factory = history_factory
        self._prefix = prefix
        self._resolution = OneShot(self._compute)

    def _compute(self) -> VersionResolution:
        with Timer() as t:
            with self._history_factory(self.repository_root) as history:
                resolution = resolve_version(history, self._prefix)
        if is_debug_enabled(logger):
            logger.debug(
                "Resolved version from history",
                extra=extra_context(
                    event="version_resolved",
                    component="versioner",
                    version=str(resolution.version),
                    tag=resolution.tag_name or None,
                    commit=resolution.commit_id,
                    candidates=resolution.candidate_count,
                    duration_ms=t.duration_ms(),
                ),
            )
        return resolution

    @property
    def resolution(self) -> VersionResolution:
        return self._resolution.get()

    @property
    def version(self) -> semantic_version.Version:
        return self.resolution.version

    @property
    def last_version_change_when(self) -> datetime:
        return self.resolution.last_version_change_when

    @property
    def head_committed_when(self) -> datetime:
        return self.resolution.head_committed_when
