"""Tests for NuGet version/range parsing and best-match selection."""

import pytest
import semantic_version

from common.errors import NoMatchingVersion
from versioning.models import FloatBehavior, ResolvedPackageIdentity, VersionRange
from versioning.parser import parse_nuget_version, parse_semantic_version, parse_version_range
from versioning.resolvers import resolve_best_match, resolve_best_match_metadata

from conftest import make_metadata


def V(text):
    return semantic_version.Version(text)


def versions(*texts):
    return [V(t) for t in texts]


class TestVersionParsing:
    """Version string parsing."""

    def test_semantic_version_is_strict(self):
        assert parse_semantic_version("1.2.3-beta.1") == V("1.2.3-beta.1")
        assert parse_semantic_version("1.2") is None
        assert parse_semantic_version("latest") is None

    def test_nuget_short_versions_are_padded(self):
        assert parse_nuget_version("1") == V("1.0.0")
        assert parse_nuget_version("13.0") == V("13.0.0")

    def test_nuget_fourth_part_is_revision(self):
        """1.2.3.4 keeps the fourth part as a revision between patch and pre-release."""
        version = parse_nuget_version("1.2.3.4")
        assert (version.major, version.minor, version.patch, version.revision) == (1, 2, 3, 4)
        assert not version.prerelease
        assert str(version) == "1.2.3.4"
        assert parse_nuget_version("1.2.3.4") > parse_nuget_version("1.2.3.3")
        assert parse_nuget_version("1.2.3.3") > parse_nuget_version("1.2.3")
        assert parse_nuget_version("1.2.4") > parse_nuget_version("1.2.3.9")
        assert parse_nuget_version("1.2.3.0") == parse_nuget_version("1.2.3")

    def test_nuget_version_keeps_original_text(self):
        version = parse_nuget_version("1.02.3.4-beta")
        assert version.original == "1.02.3.4-beta"
        assert str(version) == "1.2.3.4-beta"

    def test_nuget_version_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_nuget_version("abc")


class TestVersionRangeParsing:
    """NuGet interval notation."""

    def test_bare_version_is_minimum_inclusive(self):
        rng = parse_version_range("1.0")
        assert rng.min_version == V("1.0.0") and rng.include_min
        assert rng.max_version is None
        assert rng.float_behavior is FloatBehavior.NONE

    def test_exact_version(self):
        rng = parse_version_range("[2.1.0]")
        assert rng.satisfies(V("2.1.0"))
        assert not rng.satisfies(V("2.1.1"))
        assert str(rng) == "[2.1.0]"

    def test_half_open_interval(self):
        rng = parse_version_range("[1.0,2.0)")
        assert rng.satisfies(V("1.0.0"))
        assert rng.satisfies(V("1.9.9"))
        assert not rng.satisfies(V("2.0.0"))

    def test_exclusive_minimum(self):
        rng = parse_version_range("(1.0,)")
        assert not rng.satisfies(V("1.0.0"))
        assert rng.satisfies(V("1.0.1"))

    def test_maximum_only(self):
        rng = parse_version_range("(,2.0]")
        assert rng.min_version is None
        assert rng.satisfies(V("0.0.1"))
        assert rng.satisfies(V("2.0.0"))
        assert not rng.satisfies(V("2.0.1"))

    @pytest.mark.parametrize("text", ["", None, "*"])
    def test_empty_and_wildcard_are_unbounded(self, text):
        rng = parse_version_range(text)
        assert rng.min_version is None and rng.max_version is None
        assert rng.satisfies(V("0.0.1"))

    @pytest.mark.parametrize("text", ["[1.0", "(1.0)", "[,]", "[2.0,1.0]", "(1.0,1.0)", "[1.0,2.0,3.0]", "[a,b]"])
    def test_invalid_ranges_raise(self, text):
        with pytest.raises(ValueError):
            parse_version_range(text)


class TestResolveBestMatch:
    """Choosing one version from a range."""

    def test_absolute_latest_picks_highest_allowed(self):
        rng = parse_version_range("[1.0,2.0)").with_float(FloatBehavior.ABSOLUTE_LATEST)
        chosen = resolve_best_match(versions("0.9.0", "1.0.0", "1.5.0", "1.9.0", "2.0.0"), rng)
        assert chosen == V("1.9.0")

    def test_no_float_picks_lowest_allowed(self):
        rng = parse_version_range("1.2")
        chosen = resolve_best_match(versions("1.0.0", "1.3.0", "1.2.0", "2.0.0"), rng)
        assert chosen == V("1.2.0")

    def test_unbounded_range_floats_to_latest(self):
        chosen = resolve_best_match(versions("3.0.0", "10.0.0", "9.1.0"), VersionRange.unbounded())
        assert chosen == V("10.0.0")

    def test_stable_preferred_over_prerelease(self):
        """A newer pre-release loses to an older stable version."""
        chosen = resolve_best_match(versions("1.0.0", "2.0.0-beta"), VersionRange.unbounded())
        assert chosen == V("1.0.0")

    def test_prerelease_used_when_nothing_stable_matches(self):
        rng = parse_version_range("[2.0.0-alpha,3.0)").with_float(FloatBehavior.ABSOLUTE_LATEST)
        chosen = resolve_best_match(versions("1.0.0", "2.0.0-alpha", "2.0.0-beta"), rng)
        assert chosen == V("2.0.0-beta")

    def test_no_match_raises_with_context(self):
        rng = parse_version_range("[5.0,)")
        with pytest.raises(NoMatchingVersion) as excinfo:
            resolve_best_match(versions("1.0.0", "2.0.0"), rng, package_id="Foo")
        assert excinfo.value.package_id == "Foo"
        assert excinfo.value.known_count == 2
        assert "Foo" in str(excinfo.value)

    def test_no_known_versions_raises(self):
        with pytest.raises(NoMatchingVersion):
            resolve_best_match([], VersionRange.unbounded(), package_id="Ghost")

    def test_metadata_variant_returns_matching_entry(self):
        metas = [make_metadata("Foo", v) for v in ("1.0.0", "1.1.0", "2.0.0")]
        rng = parse_version_range("[1.0,2.0)").with_float(FloatBehavior.ABSOLUTE_LATEST)

        chosen = resolve_best_match_metadata(metas, rng)

        assert chosen is metas[1]

    def test_exact_range_honors_revision(self):
        """[1.0.0.1] matches only that revision, never a later one."""
        metas = [make_metadata("Foo", v) for v in ("1.0.0.1", "1.0.0.2")]
        rng = parse_version_range("[1.0.0.1]").with_float(FloatBehavior.ABSOLUTE_LATEST)

        chosen = resolve_best_match_metadata(metas, rng)

        assert chosen is metas[0]
        assert str(chosen.version) == "1.0.0.1"

    def test_range_bounds_compare_revisions(self):
        versions = [parse_nuget_version(v) for v in ("1.0.0", "1.0.0.1", "1.0.0.5", "1.0.1")]
        rng = parse_version_range("(1.0.0.1,1.0.1)").with_float(FloatBehavior.ABSOLUTE_LATEST)

        assert str(resolve_best_match(versions, rng)) == "1.0.0.5"


class TestResolvedPackageIdentity:
    """Identity equality."""

    def test_package_id_is_case_insensitive(self):
        assert ResolvedPackageIdentity("Newtonsoft.Json", V("13.0.3")) == ResolvedPackageIdentity(
            "newtonsoft.json", V("13.0.3")
        )

    def test_build_metadata_is_ignored(self):
        a = ResolvedPackageIdentity("Foo", V("1.0.0+abc"))
        b = ResolvedPackageIdentity("Foo", V("1.0.0+def"))
        assert a == b
        assert len({a, b}) == 1

    def test_different_versions_differ(self):
        assert ResolvedPackageIdentity("Foo", V("1.0.0")) != ResolvedPackageIdentity("Foo", V("1.0.1"))
        assert str(ResolvedPackageIdentity("Foo", V("1.0.1"))) == "Foo@1.0.1"

    def test_revisions_differ(self):
        a = ResolvedPackageIdentity("Foo", parse_nuget_version("1.0.0.1"))
        b = ResolvedPackageIdentity("Foo", parse_nuget_version("1.0.0.2"))
        assert a != b
        assert len({a, b}) == 2
        assert str(a) == "Foo@1.0.0.1"
