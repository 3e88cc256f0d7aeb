"""NuGet registry client: every published version of a package via the V3 registration API."""
from __future__ import annotations

import asyncio
import logging
import urllib.parse
from typing import Any, Dict, List, Optional

import aiohttp

from constants import Constants
from common.errors import MetadataFetchFailed
from common.http_client import HttpFetchError, async_get_json
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from versioning.frameworks import parse_framework
from versioning.models import DependencyGroup, PackageDependency, PackageVersionMetadata
from versioning.parser import parse_nuget_version, parse_version_range

logger = logging.getLogger(__name__)


def _get_v3_registration_base(service_index: Dict[str, Any]) -> Optional[str]:
    """Registration base URL from the service index, preferring SemVer 2 feeds."""
    resources = service_index.get("resources", [])
    for wanted in Constants.NUGET_REGISTRATION_TYPES:
        for resource in resources:
            if resource.get("@type") == wanted and resource.get("@id"):
                base_url = resource["@id"]
                return base_url if base_url.endswith("/") else base_url + "/"
    return None


def _get_v3_registration_url(package_id: str, registration_base: str) -> str:
    encoded_id = urllib.parse.quote(package_id.lower(), safe="")
    return f"{registration_base}{encoded_id}/index.json"


def _parse_dependency_group(group: Dict[str, Any]) -> DependencyGroup:
    dependencies = []
    for dependency in group.get("dependencies") or []:
        dependency_id = dependency.get("id")
        if not dependency_id:
            continue
        dependencies.append(
            PackageDependency(dependency_id, parse_version_range(dependency.get("range")))
        )
    return DependencyGroup(
        target_framework=parse_framework(group.get("targetFramework")),
        dependencies=tuple(dependencies),
    )


def parse_catalog_entry(package_id: str, catalog_entry: Dict[str, Any]) -> Optional[PackageVersionMetadata]:
    """Build version metadata from a registration leaf's catalogEntry.

    Returns None when the entry carries no usable version. Malformed ranges or
    framework monikers raise ValueError.
    """
    raw_version = catalog_entry.get("version")
    if not raw_version:
        return None
    try:
        version = parse_nuget_version(raw_version)
    except ValueError:
        if is_debug_enabled(logger):
            logger.debug(
                "Skipping unparseable version",
                extra=extra_context(
                    event="anomaly", component="client", package_manager="nuget",
                    target=package_id, version=raw_version,
                ),
            )
        return None
    groups = tuple(
        _parse_dependency_group(group)
        for group in catalog_entry.get("dependencyGroups") or []
    )
    return PackageVersionMetadata(
        package_id=catalog_entry.get("id") or package_id,
        version=version,
        dependency_groups=groups,
        listed=bool(catalog_entry.get("listed", True)),
    )


class NuGetMetadataSource:
    """Registry metadata source backed by a NuGet V3 feed.

    Owns an aiohttp session for its lifetime; use as an async context
    manager. The service index is fetched once per instance.
    """

    def __init__(
        self,
        service_index_url: str = Constants.REGISTRY_URL_NUGET_V3,
        *,
        include_prerelease: bool = Constants.NUGET_INCLUDE_PRERELEASE,
        include_unlisted: bool = False,
        max_concurrency: int = Constants.NUGET_MAX_CONCURRENCY,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.service_index_url = service_index_url
        self.include_prerelease = include_prerelease
        self.include_unlisted = include_unlisted
        self._session = session
        self._owns_session = session is None
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._registration_base: Optional[str] = None
        self._registration_lock = asyncio.Lock()

    async def __aenter__(self) -> "NuGetMetadataSource":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    async def start(self) -> None:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=Constants.REQUEST_TIMEOUT)
            )
            self._owns_session = True

    async def stop(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    async def _get(self, url: str, package_id: str):
        if self._session is None:
            await self.start()
        async with self._semaphore:
            try:
                return await async_get_json(self._session, url)
            except HttpFetchError as exc:
                raise MetadataFetchFailed(package_id, str(exc)) from exc

    async def _registration_base_url(self, package_id: str) -> str:
        async with self._registration_lock:
            if self._registration_base is None:
                status, index = await self._get(self.service_index_url, package_id)
                if status != 200 or not isinstance(index, dict):
                    raise MetadataFetchFailed(
                        package_id,
                        f"service index {safe_url(self.service_index_url)} returned HTTP {status}",
                    )
                base = _get_v3_registration_base(index)
                if base is None:
                    raise MetadataFetchFailed(package_id, "service index has no registration resource")
                self._registration_base = base
        return self._registration_base

    async def _page_leaves(self, package_id: str, page: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Leaves of a registration page, fetching the page when not inlined."""
        if page.get("items") is not None:
            return page["items"]
        page_url = page.get("@id")
        if not page_url:
            raise MetadataFetchFailed(package_id, "registration page without items or @id")
        status, page_data = await self._get(page_url, package_id)
        if status != 200 or not isinstance(page_data, dict):
            raise MetadataFetchFailed(package_id, f"registration page returned HTTP {status}")
        return page_data.get("items") or []

    async def fetch_all_versions(self, package_id: str) -> List[PackageVersionMetadata]:
        """Every published version of ``package_id`` with its dependency groups.

        Returns an empty list when the feed does not know the package.

        Raises:
            MetadataFetchFailed: the feed could not be reached or answered
                with something other than a registration index
        """
        base = await self._registration_base_url(package_id)
        url = _get_v3_registration_url(package_id, base)
        status, registration = await self._get(url, package_id)
        if status == 404:
            logger.info("NuGet package '%s' has no published versions", package_id)
            return []
        if status != 200 or not isinstance(registration, dict):
            raise MetadataFetchFailed(package_id, f"registration index returned HTTP {status}")

        pages = registration.get("items") or []
        leaves_per_page = await asyncio.gather(*(self._page_leaves(package_id, page) for page in pages))

        versions: List[PackageVersionMetadata] = []
        for leaves in leaves_per_page:
            for leaf in leaves:
                try:
                    metadata = parse_catalog_entry(package_id, leaf.get("catalogEntry") or {})
                except ValueError as exc:
                    raise MetadataFetchFailed(package_id, f"malformed catalog entry: {exc}") from exc
                if metadata is None:
                    continue
                if not metadata.listed and not self.include_unlisted:
                    continue
                if metadata.version.prerelease and not self.include_prerelease:
                    continue
                versions.append(metadata)

        logger.info("Fetched index for NuGet package '%s' (%d versions)", package_id, len(versions))
        return versions
