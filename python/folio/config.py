"""Application settings loaded from environment variables.

Environment Configuration:
    FOLIO_ENV: Deployment environment (local | test | staging | prod)
    LOG_JSON: Emit JSON logs (default true); false gives console output

Supabase Storage Configuration:
    SUPABASE_URL: Supabase project URL (e.g. https://xxx.supabase.co)
    SUPABASE_SERVICE_ROLE_KEY: Service role key used for every storage call
    EPUB_BUCKET: Bucket holding uploaded EPUB files (default "epubs")
    MANIFEST_BUCKET: Bucket receiving the published output (default "readium-manifests")

Limits:
    MAX_EPUB_BYTES: Largest EPUB accepted for processing
    STORAGE_TIMEOUT_S: Per-request timeout handed to the storage HTTP client

The Supabase values are optional at load time so the process can start (and
serve /health) without them. Publishing checks them per request and fails
with E_STORAGE_NOT_CONFIGURED when either is missing.
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    """Valid deployment environments."""

    LOCAL = "local"
    TEST = "test"
    STAGING = "staging"
    PROD = "prod"


class Settings(BaseSettings):
    """Application configuration.

    Settings are loaded from environment variables (and a local .env file).
    Components receive a Settings instance explicitly; nothing below the
    route layer reads the environment on its own.
    """

    folio_env: Environment = Field(default=Environment.LOCAL, alias="FOLIO_ENV")
    log_json: bool = Field(default=True, alias="LOG_JSON")

    # Supabase Storage settings
    supabase_url: str | None = Field(default=None, alias="SUPABASE_URL")
    supabase_service_role_key: str | None = Field(default=None, alias="SUPABASE_SERVICE_ROLE_KEY")
    epub_bucket: str = Field(default="epubs", alias="EPUB_BUCKET")
    manifest_bucket: str = Field(default="readium-manifests", alias="MANIFEST_BUCKET")

    # Limits
    max_epub_bytes: int = Field(default=50 * 1024 * 1024, alias="MAX_EPUB_BYTES")  # 50 MB
    storage_timeout_s: int = Field(default=60, alias="STORAGE_TIMEOUT_S")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    @model_validator(mode="after")
    def validate_limits(self) -> "Settings":
        """Reject non-positive limits."""
        for env_name, value in (
            ("MAX_EPUB_BYTES", self.max_epub_bytes),
            ("STORAGE_TIMEOUT_S", self.storage_timeout_s),
        ):
            if value < 1:
                raise ValueError(f"{env_name} must be >= 1 (got {value})")
        return self

    @property
    def storage_configured(self) -> bool:
        """Whether both Supabase storage settings are present."""
        return bool(self.supabase_url and self.supabase_service_role_key)

    @property
    def missing_storage_settings(self) -> list[str]:
        """Names of the Supabase settings that are not set."""
        missing = []
        if not self.supabase_url:
            missing.append("SUPABASE_URL")
        if not self.supabase_service_role_key:
            missing.append("SUPABASE_SERVICE_ROLE_KEY")
        return missing


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If a setting is invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    get_settings.cache_clear()
