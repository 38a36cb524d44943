"""Storage module for Supabase Storage operations.

Provides:
- StorageClient for uploading and downloading objects in one bucket
- FakeStorageClient for tests
- Path building utilities for the published layout
"""

from folio.storage.client import (
    FakeStorageClient,
    StorageClient,
    StorageClientBase,
    StorageError,
    get_storage_client,
)
from folio.storage.paths import (
    content_index_path,
    derive_base_path,
    manifest_path,
    positions_path,
    resource_path,
    validate_filename,
)

__all__ = [
    "StorageClient",
    "StorageClientBase",
    "StorageError",
    "FakeStorageClient",
    "get_storage_client",
    "content_index_path",
    "derive_base_path",
    "manifest_path",
    "positions_path",
    "resource_path",
    "validate_filename",
]
