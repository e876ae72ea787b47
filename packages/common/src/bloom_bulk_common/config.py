"""Runtime settings loaded from environment variables and an optional .env file.

Example:
    >>> settings = get_settings()
    >>> settings.catalog_page_limit
    2000
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
VALID_LOG_FORMATS = {"console", "json"}


class Settings(BaseSettings):
    """Settings for the bulk downloader.

    Every field can be overridden by the upper-cased environment variable of
    the same name (e.g. ``SYNC_EXECUTABLE=/usr/local/bin/aws``).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"

    # Bulk sync subprocess
    sync_executable: str = "aws"
    sync_root: Path = Path.home()
    sync_timeout: Optional[float] = None

    # Catalog service
    catalog_timeout: float = 60.0
    catalog_page_limit: int = 2000
    catalog_retries: int = 3

    # Credentials for the metadata service, one pair per environment
    parse_sandbox_app_id: str = ""
    parse_sandbox_api_key: str = ""
    parse_production_app_id: str = ""
    parse_production_api_key: str = ""

    # Uploader used by --trial runs
    trial_uploader: str = "gordon_martin@sil.org"

    # Where books are assembled before they become visible (None = system temp)
    staging_root: Optional[Path] = None

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        upper = v.upper()
        if upper not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(VALID_LOG_LEVELS)}, got {v!r}")
        return upper

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        lower = v.lower()
        if lower not in VALID_LOG_FORMATS:
            raise ValueError(f"log_format must be one of {sorted(VALID_LOG_FORMATS)}, got {v!r}")
        return lower

    @field_validator("catalog_page_limit", "catalog_retries")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, loaded once."""
    return Settings()
