"""GitPython-backed commit history accessor for the version resolver."""
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Sequence

from common.errors import RepositoryUnavailable
from common.logging_utils import extra_context, is_debug_enabled

logger = logging.getLogger(__name__)


class GitHistory:
    """Read-only view over a git repository.

    Tags are indexed by the sha of the commit they peel to when the
    repository is opened; tags pointing at trees or blobs are ignored.
    """

    def __init__(self, repo):
        self._repo = repo
        self._commits: Dict[str, object] = {}
        self._tags_by_sha = self._index_tags()

    @classmethod
    def open(cls, path: str) -> "GitHistory":
        """Open the repository containing ``path``.

        Raises:
            RepositoryUnavailable: ``path`` is not inside a git work tree
        """
        # Lazy import: GitPython probes for the git executable on import
        try:
            import git  # pylint: disable=import-outside-toplevel
        except ImportError as exc:
            raise RepositoryUnavailable(f"GitPython is unavailable: {exc}") from exc

        try:
            repo = git.Repo(path, search_parent_directories=True)
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as exc:
            raise RepositoryUnavailable(f"Not a git repository: {path}") from exc
        return cls(repo)

    def __enter__(self) -> "GitHistory":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._repo.close()

    def _index_tags(self) -> Dict[str, List[str]]:
        tags_by_sha: Dict[str, List[str]] = defaultdict(list)
        for tag in self._repo.tags:
            try:
                sha = tag.commit.hexsha
            except ValueError:
                # Tag targets something other than a commit
                continue
            tags_by_sha[sha].append(tag.name)
        if is_debug_enabled(logger):
            logger.debug(
                "Indexed repository tags",
                extra=extra_context(
                    event="tag_index",
                    component="git_history",
                    tag_count=sum(len(v) for v in tags_by_sha.values()),
                ),
            )
        return tags_by_sha

    def _commit(self, commit_id: str):
        commit = self._commits.get(commit_id)
        if commit is None:
            commit = self._repo.commit(commit_id)
            self._commits[commit_id] = commit
        return commit

    def tip(self) -> str:
        """Id of HEAD's commit.

        Raises:
            RepositoryUnavailable: the repository has no commits yet
        """
        if not self._repo.head.is_valid():
            raise RepositoryUnavailable(f"Repository at {self._repo.working_dir} has no commits")
        commit = self._repo.head.commit
        self._commits[commit.hexsha] = commit
        return commit.hexsha

    def parents(self, commit_id: str) -> Sequence[str]:
        ids = []
        for parent in self._commit(commit_id).parents:
            self._commits[parent.hexsha] = parent
            ids.append(parent.hexsha)
        return ids

    def tags_targeting(self, commit_id: str) -> Sequence[str]:
        return list(self._tags_by_sha.get(commit_id, ()))

    def committed_when(self, commit_id: str) -> datetime:
        return self._commit(commit_id).committed_datetime
