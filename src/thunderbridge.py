"""thunderbridge - Bridge NuGet packages and their dependencies into Thunderstore

    Commands:
        version: print the semantic version derived from git tags
        resolve: resolve every NuGet package version a community needs

    Returns:
        int: Exit code
"""
import asyncio
import json
import logging
import sys
from dataclasses import dataclass
from typing import List, Optional

from constants import ExitCodes, Constants
from common.errors import (
    ConfigurationError,
    ListingFetchFailed,
    MetadataFetchFailed,
    NoMatchingVersion,
    RepositoryUnavailable,
)
from common.logging_utils import add_file_handler, configure_logging
from args import parse_args
from cli_config import (
    BridgeConfiguration,
    CommunityConfiguration,
    PackageConfiguration,
    load_bridge_configuration,
    load_community_configuration,
)
from registry.nuget import ClosureResult, DependencyClosureResolver, NuGetMetadataSource, join_all
from registry.thunderstore import fetch_package_index, filter_undeployed
from versioning.frameworks import parse_framework
from versioning.models import ResolvedPackageIdentity, VersionResolution
from versioning.versioner import Versioner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BridgeResolution:
    """Outcome of the resolve command, consumed by the export step."""
    configuration: BridgeConfiguration
    version: VersionResolution
    closure: ClosureResult
    pending: List[ResolvedPackageIdentity]


async def run_resolution(
    configuration: BridgeConfiguration,
    versioner: Versioner,
    *,
    source_url: str = Constants.REGISTRY_URL_NUGET_V3,
    include_prerelease: bool = Constants.NUGET_INCLUDE_PRERELEASE,
    skip_deployed: bool = False,
) -> BridgeResolution:
    """Resolve the closure, the bridge version and (optionally) the Thunderstore index concurrently."""
    community = configuration.community
    async with NuGetMetadataSource(source_url, include_prerelease=include_prerelease) as source:
        resolver = DependencyClosureResolver(source, community.runtime_framework)
        steps = [
            resolver.resolve(configuration.root_package_ids),
            asyncio.to_thread(lambda: versioner.resolution),
        ]
        if skip_deployed:
            steps.append(asyncio.to_thread(fetch_package_index, community.community_slug))
        results = await join_all(steps)

    closure, version = results[0], results[1]
    pending = list(closure)
    if skip_deployed:
        pending = filter_undeployed(
            pending, results[2], community.package_namespace, version.head_committed_when
        )
    return BridgeResolution(configuration, version, closure, pending)


def export_json(resolution: BridgeResolution, path: str) -> None:
    """Exports the resolution to a JSON file.

    Args:
        resolution: Result of the resolve command.
        path: File path to export the JSON.
    """
    community = resolution.configuration.community
    data = {
        "version": str(resolution.version.version),
        "lastVersionChangeWhen": resolution.version.last_version_change_when.isoformat(),
        "headCommittedWhen": resolution.version.head_committed_when.isoformat(),
        "community": community.community_slug,
        "packageNamespace": community.package_namespace,
        "framework": str(community.runtime_framework),
        "packages": [
            {"id": identity.package_id, "version": str(identity.version)}
            for identity in resolution.pending
        ],
        "resolvedCount": len(resolution.closure),
    }
    try:
        with open(path, "w", encoding="utf-8") as file:
            json.dump(data, file, indent=2)
        logging.info("JSON file has been successfully exported at: %s", path)
    except OSError as e:
        logging.error("JSON file couldn't be written to disk: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)


def _configuration_from_args(args) -> BridgeConfiguration:
    if args.PACKAGES:
        community = load_community_configuration(args.ROOT, args.COMMUNITY)
        packages = tuple(PackageConfiguration(package_id=p) for p in args.PACKAGES)
        configuration = BridgeConfiguration(community=community, packages=packages)
    else:
        configuration = load_bridge_configuration(args.ROOT, args.COMMUNITY)
    if args.FRAMEWORK:
        try:
            framework = parse_framework(args.FRAMEWORK)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc
        community = configuration.community
        configuration = BridgeConfiguration(
            community=CommunityConfiguration(community.community_slug, framework, community.package_namespace),
            packages=configuration.packages,
        )
    return configuration


def command_version(args) -> int:
    """Print the version derived from git history."""
    versioner = Versioner(args.ROOT)
    resolution = versioner.resolution
    print(str(resolution.version))
    logger.info(
        "Version %s from %s (changed %s)",
        resolution.version,
        resolution.tag_name or "root commit",
        resolution.last_version_change_when.isoformat(),
    )
    return ExitCodes.SUCCESS.value


def command_resolve(args) -> int:
    """Resolve, print and optionally export the package versions to bridge."""
    configuration = _configuration_from_args(args)
    resolution = asyncio.run(
        run_resolution(
            configuration,
            Versioner(args.ROOT),
            source_url=args.SOURCE or Constants.REGISTRY_URL_NUGET_V3,
            include_prerelease=args.PRERELEASE or Constants.NUGET_INCLUDE_PRERELEASE,
            skip_deployed=args.SKIP_DEPLOYED,
        )
    )
    for identity in resolution.pending:
        print(f"{identity.package_id} {identity.version}")
    logger.info(
        "%d of %d resolved package versions need bridging (bridge version %s)",
        len(resolution.pending),
        len(resolution.closure),
        resolution.version.version,
    )
    if args.OUTPUT:
        export_json(resolution, args.OUTPUT)
    return ExitCodes.SUCCESS.value


COMMANDS = {
    "version": command_version,
    "resolve": command_resolve,
}


def main(argv: Optional[List[str]] = None) -> None:
    """Main function of the program."""
    args = parse_args(argv)
    configure_logging(args.LOG_LEVEL)
    if args.LOG_FILE:
        add_file_handler(args.LOG_FILE)
        logger.info("Logging to file: %s", args.LOG_FILE)

    try:
        code = COMMANDS[args.COMMAND](args)
    except ConfigurationError as exc:
        logger.error("%s", exc)
        code = ExitCodes.FILE_ERROR.value
    except (MetadataFetchFailed, ListingFetchFailed) as exc:
        logger.error("%s", exc)
        code = ExitCodes.CONNECTION_ERROR.value
    except NoMatchingVersion as exc:
        logger.error("%s", exc)
        code = ExitCodes.RESOLUTION_ERROR.value
    except RepositoryUnavailable as exc:
        logger.error("%s", exc)
        code = ExitCodes.REPOSITORY_ERROR.value
    sys.exit(code)


if __name__ == "__main__":
    main()
