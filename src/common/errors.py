"""Error taxonomy shared by the version resolver, the closure resolver and the CLI.

The engines raise these and never log or translate them; presentation is
left to the caller (see thunderbridge.main).
"""

from __future__ import annotations

from typing import Optional


class BridgeError(Exception):
    """Base class for all thunderbridge failures."""


class RepositoryUnavailable(BridgeError):
    """Raised when git history cannot be opened or contains no commits."""


class NoCandidates(BridgeError):
    """Raised when the candidate selector receives an empty collection.

    The commit walker always synthesizes a root candidate, so this signals
    a walker bug rather than a user-facing condition.
    """


class NoMatchingVersion(BridgeError):
    """Raised when a version range matches none of the known versions."""

    def __init__(self, package_id: Optional[str], version_range: object, known_count: int = 0):
        self.package_id = package_id
        self.version_range = version_range
        self.known_count = known_count
        target = package_id or "<unknown package>"
        super().__init__(
            f"No version of {target} satisfies {version_range} ({known_count} versions known)"
        )


class MetadataFetchFailed(BridgeError):
    """Raised when the registry metadata source cannot answer."""

    def __init__(self, package_id: str, reason: str):
        self.package_id = package_id
        self.reason = reason
        super().__init__(f"Failed to fetch metadata for {package_id}: {reason}")


class ListingFetchFailed(BridgeError):
    """Raised when the Thunderstore package index cannot be fetched or parsed."""


class ConfigurationError(BridgeError):
    """Raised for missing or invalid community/package configuration files."""
