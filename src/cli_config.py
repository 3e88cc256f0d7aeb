"""Community and package configuration loading.

Layout under the bridge root directory::

    Communities/<community-slug>.json
    Packages/*.json

Files may be JSON or YAML; both are read with PyYAML and validated against
the schemas in schema_validate.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

import yaml

from constants import Constants
from common.errors import ConfigurationError
from schema_validate import (
    COMMUNITY_CONFIGURATION_SCHEMA,
    PACKAGE_CONFIGURATION_SCHEMA,
    SchemaError,
    validate,
)
from versioning.frameworks import Framework, parse_framework

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommunityConfiguration:
    """Target Thunderstore community and the runtime its mods run on."""
    community_slug: str
    runtime_framework: Framework
    package_namespace: str


@dataclass(frozen=True)
class PackageConfiguration:
    """A NuGet package to bridge."""
    package_id: str
    source_path: str = ""


@dataclass(frozen=True)
class BridgeConfiguration:
    """Everything the resolution phase needs from disk."""
    community: CommunityConfiguration
    packages: Tuple[PackageConfiguration, ...]

    @property
    def root_package_ids(self) -> List[str]:
        return [package.package_id for package in self.packages]


def _load_document(path: str) -> Any:
    """Parse a JSON or YAML file."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Configuration file not found: {path}") from exc
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Failed to read configuration file {path}: {exc}") from exc


def _validated(path: str, schema: Dict[str, Any]) -> Dict[str, Any]:
    data = _load_document(path)
    try:
        validate(schema, data, source=path)
    except SchemaError as exc:
        raise ConfigurationError(str(exc)) from exc
    return data


def load_community_configuration(root: str, community_slug: str) -> CommunityConfiguration:
    """Load ``Communities/<community_slug>.json`` below ``root``."""
    path = os.path.join(root, Constants.COMMUNITIES_DIRECTORY, f"{community_slug}.json")
    logger.info("Deserializing community configuration from %s", path)
    data = _validated(path, COMMUNITY_CONFIGURATION_SCHEMA)
    if data["communitySlug"] != community_slug:
        raise ConfigurationError(
            f"{path} declares community '{data['communitySlug']}', expected '{community_slug}'"
        )
    try:
        framework = parse_framework(data["runtimeFrameworkMoniker"])
    except ValueError as exc:
        raise ConfigurationError(f"{path}: {exc}") from exc
    return CommunityConfiguration(
        community_slug=data["communitySlug"],
        runtime_framework=framework,
        package_namespace=data["packageNamespace"],
    )


def load_package_configurations(root: str) -> Tuple[PackageConfiguration, ...]:
    """Load every package configuration file in ``Packages/`` below ``root``, sorted by file name."""
    directory = os.path.join(root, Constants.PACKAGES_DIRECTORY)
    if not os.path.isdir(directory):
        raise ConfigurationError(f"Package configuration directory not found: {directory}")

    packages = []
    seen = set()
    for name in sorted(os.listdir(directory)):
        if os.path.splitext(name)[1].lower() not in Constants.CONFIG_EXTENSIONS:
            continue
        path = os.path.join(directory, name)
        logger.info("Deserializing package configuration from %s", path)
        data = _validated(path, PACKAGE_CONFIGURATION_SCHEMA)
        package_id = data["packageId"].strip()
        if package_id.lower() in seen:
            logger.warning("Duplicate package configuration for '%s' in %s", package_id, path)
            continue
        seen.add(package_id.lower())
        packages.append(PackageConfiguration(package_id=package_id, source_path=path))
    return tuple(packages)


def load_bridge_configuration(root: str, community_slug: str) -> BridgeConfiguration:
    """Load the community configuration and all package configurations."""
    community = load_community_configuration(root, community_slug)
    packages = load_package_configurations(root)
    if not packages:
        logger.warning("No package configurations found below %s", root)
    return BridgeConfiguration(community=community, packages=packages)
