"""FastAPI dependencies for route handlers.

Storage clients are resolved through dependencies so tests can swap in
FakeStorageClient via app.dependency_overrides.
"""

from typing import Annotated

from fastapi import Depends

from folio.config import Settings, get_settings
from folio.errors import ApiError, ApiErrorCode
from folio.logging import get_logger
from folio.storage.client import StorageClientBase, StorageError, get_storage_client

__all__ = ["get_app_settings", "get_source_storage", "get_output_storage"]

logger = get_logger(__name__)


def get_app_settings() -> Settings:
    return get_settings()


def _storage_for_bucket(settings: Settings, bucket: str) -> StorageClientBase:
    try:
        return get_storage_client(settings, bucket)
    except StorageError as exc:
        logger.error("storage.not_configured", missing=settings.missing_storage_settings)
        raise ApiError(ApiErrorCode.E_STORAGE_NOT_CONFIGURED, exc.message) from exc


def get_source_storage(
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> StorageClientBase:
    """Storage client for the bucket holding uploaded EPUBs.

    Raises:
        ApiError: E_STORAGE_NOT_CONFIGURED if credentials are missing.
    """
    return _storage_for_bucket(settings, settings.epub_bucket)


def get_output_storage(
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> StorageClientBase:
    """Storage client for the bucket receiving published output."""
    return _storage_for_bucket(settings, settings.manifest_bucket)
