"""Constants used in the project."""

import os
from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    RESOLUTION_ERROR = 3
    REPOSITORY_ERROR = 4


class FrameworkFamilies(Enum):
    """Framework families understood by the nearest-match utility.

    Args:
        Enum (string): Long framework identifiers as used by NuGet.
    """

    ANY = "Any"
    NET_FRAMEWORK = ".NETFramework"
    NET_STANDARD = ".NETStandard"
    NET_CORE_APP = ".NETCoreApp"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    REGISTRY_URL_NUGET_V3 = os.environ.get(
        "THUNDERBRIDGE_NUGET_SOURCE", "https://api.nuget.org/v3/index.json"
    )
    NUGET_REGISTRATION_TYPES = [
        "RegistrationsBaseUrl/3.6.0",
        "RegistrationsBaseUrl/3.4.0",
        "RegistrationsBaseUrl",
    ]
    NUGET_INCLUDE_PRERELEASE = os.environ.get("THUNDERBRIDGE_INCLUDE_PRERELEASE", "").lower() in (
        "1",
        "true",
        "yes",
    )
    NUGET_MAX_CONCURRENCY = 16

    REGISTRY_URL_THUNDERSTORE = os.environ.get(
        "THUNDERBRIDGE_THUNDERSTORE_URL", "https://thunderstore.io"
    )

    VERSION_TAG_PREFIX = "v"
    COMMUNITIES_DIRECTORY = "Communities"
    PACKAGES_DIRECTORY = "Packages"
    CONFIG_EXTENSIONS = [".json", ".yml", ".yaml"]

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
    ENV_LOG_LEVEL = "THUNDERBRIDGE_LOG_LEVEL"

    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    USER_AGENT = "thunderbridge/0.1"
