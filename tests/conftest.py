"""Shared fakes for history and registry tests."""

import asyncio
from collections import Counter
from datetime import datetime, timedelta, timezone

import pytest

from common.errors import MetadataFetchFailed
from versioning.frameworks import parse_framework
from versioning.models import DependencyGroup, PackageDependency, PackageVersionMetadata
from versioning.parser import parse_nuget_version, parse_version_range

EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeHistory:
    """In-memory commit graph.

    ``commits`` maps commit id to its ordered parent ids; commit timestamps
    follow insertion order, one hour apart.
    """

    def __init__(self, commits, tip, tags=None):
        self.commits = dict(commits)
        self._tip = tip
        self.tags = {k: list(v) for k, v in (tags or {}).items()}
        self.when = {
            commit_id: EPOCH + timedelta(hours=i) for i, commit_id in enumerate(self.commits)
        }
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True

    def tip(self):
        return self._tip

    def parents(self, commit_id):
        return list(self.commits[commit_id])

    def tags_targeting(self, commit_id):
        return list(self.tags.get(commit_id, ()))

    def committed_when(self, commit_id):
        return self.when[commit_id]


def make_metadata(package_id, version, dependencies=None, framework="netstandard2.0", groups=None):
    """Build PackageVersionMetadata from plain strings.

    ``dependencies`` is a list of (id, range) for a single group targeting
    ``framework``; ``groups`` maps framework monikers to such lists instead.
    """
    if groups is None:
        groups = {framework: dependencies or []}
    return PackageVersionMetadata(
        package_id=package_id,
        version=parse_nuget_version(version),
        dependency_groups=tuple(
            DependencyGroup(
                target_framework=parse_framework(moniker),
                dependencies=tuple(
                    PackageDependency(dep_id, parse_version_range(dep_range)) for dep_id, dep_range in deps
                ),
            )
            for moniker, deps in groups.items()
        ),
    )


class FakeRegistry:
    """Metadata source over a dict of package id -> list of PackageVersionMetadata."""

    def __init__(self, packages=None, failing=(), delay=0.0):
        self.packages = {k.lower(): list(v) for k, v in (packages or {}).items()}
        self.failing = {f.lower() for f in failing}
        self.delay = delay
        self.fetch_counts = Counter()

    def add(self, *metadata):
        for meta in metadata:
            self.packages.setdefault(meta.package_id.lower(), []).append(meta)
        return self

    async def fetch_all_versions(self, package_id):
        key = package_id.lower()
        self.fetch_counts[key] += 1
        await asyncio.sleep(self.delay)
        if key in self.failing:
            raise MetadataFetchFailed(package_id, "connection reset")
        return list(self.packages.get(key, []))


@pytest.fixture
def registry():
    return FakeRegistry()
