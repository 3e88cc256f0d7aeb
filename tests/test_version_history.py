"""Tests for version tag discovery and candidate selection."""

import threading

import pytest
import semantic_version

from common.errors import NoCandidates, RepositoryUnavailable
from versioning.history import order_candidates, select_candidate, walk_version_tag_candidates
from versioning.models import VersionTagCandidate
from versioning.versioner import Versioner, resolve_version

from conftest import EPOCH, FakeHistory


def V(text):
    return semantic_version.Version(text)


class TestWalkVersionTagCandidates:
    """Commit graph walking."""

    def test_linear_ancestry_picks_descendant_tag(self):
        """v2.0.0 on the tip beats v1.0.0 on its parent."""
        history = FakeHistory({"A": [], "B": ["A"]}, tip="B", tags={"A": ["v1.0.0"], "B": ["v2.0.0"]})

        resolution = resolve_version(history)

        assert resolution.version == V("2.0.0")
        assert resolution.commit_id == "B"
        assert resolution.tag_name == "v2.0.0"

    def test_higher_version_on_ancestor_wins(self):
        """Version precedence, not proximity, decides."""
        history = FakeHistory({"A": [], "B": ["A"]}, tip="B", tags={"A": ["v3.0.0"], "B": ["v2.0.0"]})

        assert resolve_version(history).version == V("3.0.0")

    def test_no_tags_resolves_to_zero_at_root_commit(self):
        """Untagged history yields 0.0.0 dated at the root commit."""
        history = FakeHistory({"A": [], "B": ["A"], "C": ["B"]}, tip="C")

        resolution = resolve_version(history)

        assert resolution.version == V("0.0.0")
        assert resolution.commit_id == "A"
        assert resolution.tag_name == ""
        assert resolution.last_version_change_when == EPOCH
        assert resolution.head_committed_when == history.committed_when("C")

    def test_non_matching_tags_are_ignored(self):
        """Tags without the prefix or with invalid versions are skipped."""
        history = FakeHistory(
            {"A": [], "B": ["A"]},
            tip="B",
            tags={"B": ["release-5.0.0", "vnext", "v1.2", "V9.0.0"], "A": ["v0.1.0"]},
        )

        candidates = walk_version_tag_candidates(history)

        assert [(c.commit_id, c.tag_name) for c in candidates] == [("A", "v0.1.0")]

    def test_tagged_root_gets_no_synthetic_candidate(self):
        """A root commit with a qualifying tag does not also produce 0.0.0."""
        history = FakeHistory({"A": []}, tip="A", tags={"A": ["v0.5.0"]})

        candidates = walk_version_tag_candidates(history)

        assert len(candidates) == 1
        assert candidates[0].version == V("0.5.0")

    def test_tags_on_one_commit_ordered_by_version_then_name(self):
        """Several tags on one commit get discovery orders sorted by version, then name."""
        history = FakeHistory(
            {"A": []},
            tip="A",
            tags={"A": ["v2.0.0", "v1.0.0+b", "v1.0.0+a", "v1.0.0-rc.1"]},
        )

        candidates = walk_version_tag_candidates(history)

        assert [c.tag_name for c in candidates] == ["v1.0.0-rc.1", "v1.0.0+a", "v1.0.0+b", "v2.0.0"]
        assert [c.discovery_order for c in candidates] == [0, 1, 2, 3]

    def test_first_parent_is_walked_first(self):
        """The mainline parent of a merge is explored before the merged branch."""
        history = FakeHistory(
            {"R": [], "P1": ["R"], "P2": ["R"], "M": ["P1", "P2"]},
            tip="M",
            tags={"P1": ["v1.0.0"], "P2": ["v1.1.0"]},
        )

        candidates = walk_version_tag_candidates(history)

        assert [(c.commit_id, c.discovery_order) for c in candidates] == [
            ("P1", 0),
            ("R", 1),
            ("P2", 2),
        ]
        assert select_candidate(candidates).version == V("1.1.0")

    def test_merge_convergence_visits_each_commit_once(self):
        """Shared ancestors reachable through several parents are considered once."""
        history = FakeHistory(
            {"R": [], "A": ["R"], "B": ["R"], "C": ["A", "B"], "D": ["A"], "M": ["C", "D"]},
            tip="M",
            tags={"R": ["v0.1.0"], "A": ["v0.2.0"]},
        )

        candidates = walk_version_tag_candidates(history)

        assert sorted(c.commit_id for c in candidates) == ["A", "R"]

    def test_multiple_roots_each_get_synthetic_candidate(self):
        """Unrelated histories merged together each contribute a root candidate."""
        history = FakeHistory({"R1": [], "R2": [], "M": ["R1", "R2"]}, tip="M")

        candidates = walk_version_tag_candidates(history)

        assert [(c.commit_id, c.tag_name, c.discovery_order) for c in candidates] == [
            ("R1", "", 0),
            ("R2", "", 1),
        ]
        assert select_candidate(candidates).commit_id == "R1"


class TestCandidateSelection:
    """Ordering and tie-break of candidates."""

    def test_equal_versions_prefer_earliest_discovery(self):
        """Two branches tagged v1.0.0: the one found first wins, every time."""
        history = FakeHistory(
            {"R": [], "X": ["R"], "Y": ["R"], "M": ["X", "Y"]},
            tip="M",
            tags={"X": ["v1.0.0"], "Y": ["v1.0.0"]},
        )

        winners = {resolve_version(history).commit_id for _ in range(5)}

        assert winners == {"X"}

    def test_order_is_version_descending_then_discovery_ascending(self):
        """Explicit two-key ordering."""
        candidates = [
            VersionTagCandidate("c3", "v1.0.0", V("1.0.0"), 3),
            VersionTagCandidate("c0", "v0.9.0", V("0.9.0"), 0),
            VersionTagCandidate("c1", "v1.0.0", V("1.0.0"), 1),
            VersionTagCandidate("c2", "v2.0.0-beta", V("2.0.0-beta"), 2),
        ]

        ordered = order_candidates(candidates)

        assert [c.commit_id for c in ordered] == ["c2", "c1", "c3", "c0"]

    def test_build_metadata_does_not_break_ties(self):
        """Build metadata has no precedence, so discovery order decides."""
        candidates = [
            VersionTagCandidate("late", "v1.0.0+zzz", V("1.0.0+zzz"), 5),
            VersionTagCandidate("early", "v1.0.0+aaa", V("1.0.0+aaa"), 2),
        ]

        assert select_candidate(candidates).commit_id == "early"

    def test_prerelease_ranks_below_release(self):
        """1.0.0 outranks 1.0.0-rc.1 even when discovered later."""
        candidates = [
            VersionTagCandidate("rc", "v1.0.0-rc.1", V("1.0.0-rc.1"), 0),
            VersionTagCandidate("final", "v1.0.0", V("1.0.0"), 1),
        ]

        assert select_candidate(candidates).commit_id == "final"

    def test_empty_candidates_raise(self):
        """The selector refuses an empty collection."""
        with pytest.raises(NoCandidates):
            select_candidate([])

    def test_selection_ignores_input_order(self):
        """The result depends on the candidates, not the order they are passed in."""
        candidates = [
            VersionTagCandidate("a", "v1.0.0", V("1.0.0"), 4),
            VersionTagCandidate("b", "v1.0.0", V("1.0.0"), 1),
            VersionTagCandidate("c", "v0.1.0", V("0.1.0"), 0),
        ]

        assert select_candidate(candidates).commit_id == "b"
        assert select_candidate(list(reversed(candidates))).commit_id == "b"


class TestVersioner:
    """Memoized version resolver."""

    def test_exposes_version_and_timestamp(self):
        """Version and LastVersionChangeWhen come from the winning commit."""
        history = FakeHistory({"A": [], "B": ["A"]}, tip="B", tags={"B": ["v1.4.2"]})
        versioner = Versioner("/repo", history_factory=lambda path: history)

        assert versioner.version == V("1.4.2")
        assert versioner.last_version_change_when == history.committed_when("B")
        assert versioner.head_committed_when == history.committed_when("B")
        assert history.closed is True

    def test_walk_runs_once(self):
        """Repeated reads reuse the first result."""
        calls = []
        history = FakeHistory({"A": []}, tip="A", tags={"A": ["v1.0.0"]})

        def factory(path):
            calls.append(path)
            return history

        versioner = Versioner("/repo", history_factory=factory)
        first = versioner.resolution
        _ = versioner.version
        _ = versioner.last_version_change_when

        assert versioner.resolution is first
        assert calls == ["/repo"]

    def test_concurrent_first_access_walks_once(self):
        """Threads racing on the first read trigger a single walk."""
        calls = []
        gate = threading.Event()
        history = FakeHistory({"A": []}, tip="A", tags={"A": ["v1.0.0"]})

        def factory(path):
            calls.append(path)
            gate.wait(timeout=1)
            return history

        versioner = Versioner("/repo", history_factory=factory)
        results = []
        threads = [threading.Thread(target=lambda: results.append(versioner.resolution)) for _ in range(8)]
        for thread in threads:
            thread.start()
        gate.set()
        for thread in threads:
            thread.join()

        assert len(calls) == 1
        assert len({id(r) for r in results}) == 1

    def test_failure_is_not_memoized(self):
        """An unavailable repository raises, and a later read retries."""
        history = FakeHistory({"A": []}, tip="A", tags={"A": ["v1.0.0"]})
        attempts = []

        def factory(path):
            attempts.append(path)
            if len(attempts) == 1:
                raise RepositoryUnavailable("not yet")
            return history

        versioner = Versioner("/repo", history_factory=factory)
        with pytest.raises(RepositoryUnavailable):
            _ = versioner.version

        assert versioner.version == V("1.0.0")
        assert len(attempts) == 2
