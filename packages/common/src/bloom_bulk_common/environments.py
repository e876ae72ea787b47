"""Static table of the library environments a run can target.

The bucket category picks everything else: bucket name, metadata server,
sync folder name and the credentials to use. None of these are supplied
individually by the user.
"""

from dataclasses import dataclass
from enum import Enum

from .config import Settings
from .errors import ConfigurationError

SYNC_FOLDER_NAME = "BloomBulkDownloader-SyncFolder"


class BucketCategory(str, Enum):
    """Which copy of the library to mirror."""

    sandbox = "sandbox"
    production = "production"


@dataclass(frozen=True)
class Environment:
    """Fixed endpoints for one bucket category."""

    category: BucketCategory
    bucket_name: str
    parse_server: str
    sync_folder_name: str


@dataclass(frozen=True)
class ParseCredentials:
    """Application id and REST key for the metadata service."""

    app_id: str
    api_key: str


ENVIRONMENTS: dict[BucketCategory, Environment] = {
    BucketCategory.sandbox: Environment(
        category=BucketCategory.sandbox,
        bucket_name="BloomLibraryBooks-Sandbox",
        parse_server="https://bloom-parse-server-develop.azurewebsites.net",
        sync_folder_name=SYNC_FOLDER_NAME + "-sandbox",
    ),
    BucketCategory.production: Environment(
        category=BucketCategory.production,
        bucket_name="BloomLibraryBooks",
        parse_server="https://bloom-parse-server-production.azurewebsites.net",
        sync_folder_name=SYNC_FOLDER_NAME,
    ),
}


def get_environment(category: BucketCategory | str) -> Environment:
    """Look up the fixed environment for a bucket category.

    Raises:
        ConfigurationError: If the category is unknown
    """
    try:
        return ENVIRONMENTS[BucketCategory(category)]
    except ValueError:
        raise ConfigurationError(
            f"Unknown bucket category {category!r}; expected one of "
            f"{', '.join(c.value for c in BucketCategory)}"
        )


def get_credentials(category: BucketCategory | str, settings: Settings) -> ParseCredentials:
    """Pick the metadata-service credentials for a bucket category."""
    env = get_environment(category)
    if env.category is BucketCategory.production:
        return ParseCredentials(settings.parse_production_app_id, settings.parse_production_api_key)
    return ParseCredentials(settings.parse_sandbox_app_id, settings.parse_sandbox_api_key)
