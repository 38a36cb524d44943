"""Supabase Storage client abstraction.

Provides a clean interface for the storage operations publishing needs:
- Object upload (upsert) returning the object's public URL
- Whole-object download (authenticated)
- Public URL construction

One client instance serves one bucket. All methods receive the full
storage path inside that bucket - no prefix manipulation.

No retries happen here; a rejected call raises StorageError carrying the
status code and the response body, and transport failures (connect errors,
timeouts) are raised as StorageError too.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx

from folio.config import Settings
from folio.logging import get_logger
from folio.media_types import content_type_for_path

logger = get_logger(__name__)

USER_AGENT = "folio-publisher/1.0"


class StorageError(Exception):
    """Storage operation error."""

    def __init__(self, message: str, code: str = "E_STORAGE_ERROR"):
        super().__init__(message)
        self.message = message
        self.code = code


class StorageClientBase(ABC):
    """Abstract base class for storage client implementations."""

    @abstractmethod
    def upload(self, path: str, data: bytes, *, content_type: str) -> str:
        """Upload (or overwrite) an object.

        Args:
            path: Full storage path (e.g., "book/OEBPS/chapter1.xhtml").
            data: Object bytes.
            content_type: Content-Type stored with the object.

        Returns:
            Public URL of the stored object.

        Raises:
            StorageError: If the upload is rejected.
        """
        ...

    @abstractmethod
    def download(self, path: str) -> bytes:
        """Download a whole object.

        Args:
            path: Full storage path.

        Returns:
            The object content.

        Raises:
            StorageError: If the object doesn't exist or the download fails.
        """
        ...

    @abstractmethod
    def public_url(self, path: str) -> str:
        """Return the public URL an object is (or will be) served at."""
        ...

    def upload_path(self, path: str, data: bytes) -> str:
        """Upload an object with the Content-Type derived from its path."""
        return self.upload(path, data, content_type=content_type_for_path(path))


class StorageClient(StorageClientBase):
    """Production Supabase Storage client.

    Uses httpx for HTTP operations against Supabase Storage API.
    """

    def __init__(
        self,
        supabase_url: str,
        service_key: str,
        bucket: str,
        *,
        timeout_s: float = 60.0,
    ):
        """Initialize the storage client.

        Args:
            supabase_url: Supabase project URL (e.g., https://xxx.supabase.co).
            service_key: Supabase service role key.
            bucket: Storage bucket name.
            timeout_s: Per-request timeout.
        """
        self._base_url = supabase_url.rstrip("/")
        self._service_key = service_key
        self._bucket = bucket
        self._storage_url = f"{self._base_url}/storage/v1"
        self._timeout = timeout_s
        self._headers = {
            "Authorization": f"Bearer {service_key}",
            "apikey": service_key,
            "User-Agent": USER_AGENT,
        }

    @property
    def bucket(self) -> str:
        return self._bucket

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self._timeout)

    def upload(self, path: str, data: bytes, *, content_type: str) -> str:
        """Upload via POST /object/{bucket}/{path} with upsert enabled."""
        url = f"{self._storage_url}/object/{self._bucket}/{path}"
        headers = {
            **self._headers,
            "Content-Type": content_type,
            "x-upsert": "true",
        }
        # Browsers should display JSON documents rather than download them
        if path.lower().endswith(".json"):
            headers["Content-Disposition"] = "inline"

        try:
            with self._client() as client:
                response = client.post(url, headers=headers, content=data)
        except httpx.HTTPError as exc:
            logger.warning("storage.upload_failed", path=path, error=str(exc))
            raise StorageError(f"Failed to upload {path}: {exc}") from exc

        if response.status_code not in (200, 201):
            logger.warning(
                "storage.upload_failed",
                path=path,
                status_code=response.status_code,
            )
            raise StorageError(
                f"Failed to upload {path}: unexpected status code "
                f"{response.status_code}, response: {response.text}",
                code="E_STORAGE_UPLOAD_FAILED",
            )

        return self.public_url(path)

    def download(self, path: str) -> bytes:
        """Download via authenticated GET /object/{bucket}/{path}."""
        url = f"{self._storage_url}/object/{self._bucket}/{path}"

        try:
            with self._client() as client:
                response = client.get(url, headers=self._headers)
        except httpx.HTTPError as exc:
            raise StorageError(f"Failed to download {path}: {exc}") from exc

        if response.status_code == 404:
            raise StorageError(
                f"Object not found: {path}",
                code="E_STORAGE_MISSING",
            )

        if response.status_code != 200:
            raise StorageError(
                f"Failed to download {path}: unexpected status code "
                f"{response.status_code}, response: {response.text}",
                code="E_STORAGE_ERROR",
            )

        return response.content

    def public_url(self, path: str) -> str:
        return f"{self._storage_url}/object/public/{self._bucket}/{path}"


@dataclass(frozen=True)
class StoredObject:
    """An object held by FakeStorageClient."""

    content: bytes
    content_type: str


class FakeStorageClient(StorageClientBase):
    """Fake storage client for testing without real Supabase.

    Stores objects in memory and records every upload call in order, so
    tests can assert how many times a path was written.
    """

    def __init__(self, bucket: str = "fake-bucket"):
        self._bucket = bucket
        self._objects: dict[str, StoredObject] = {}
        self.uploads: list[str] = []
        self.fail_uploads: set[str] = set()

    def upload(self, path: str, data: bytes, *, content_type: str) -> str:
        """Store a fake object, or fail if the path was marked to fail."""
        if path in self.fail_uploads:
            raise StorageError(
                f"Failed to upload {path}: unexpected status code 500, response: fake failure",
                code="E_STORAGE_UPLOAD_FAILED",
            )
        self.uploads.append(path)
        self._objects[path] = StoredObject(content=data, content_type=content_type)
        return self.public_url(path)

    def download(self, path: str) -> bytes:
        """Return fake object content."""
        if path not in self._objects:
            raise StorageError(
                f"Object not found: {path}",
                code="E_STORAGE_MISSING",
            )
        return self._objects[path].content

    def public_url(self, path: str) -> str:
        return f"https://fake-storage.test/public/{self._bucket}/{path}"

    # Test helper methods

    def put_object(
        self, path: str, content: bytes, content_type: str = "application/epub+zip"
    ) -> None:
        """Store an object directly (test helper)."""
        self._objects[path] = StoredObject(content=content, content_type=content_type)

    def get_object(self, path: str) -> StoredObject | None:
        """Get a stored object directly (test helper)."""
        return self._objects.get(path)

    def upload_count(self, path: str) -> int:
        """Number of successful uploads to path (test helper)."""
        return self.uploads.count(path)

    def clear(self) -> None:
        """Clear all stored objects and recorded uploads (test helper)."""
        self._objects.clear()
        self.uploads.clear()


def get_storage_client(settings: Settings, bucket: str) -> StorageClientBase:
    """Build the Supabase storage client for one bucket.

    Args:
        settings: Application settings; storage must be configured.
        bucket: Bucket the client reads from and writes to.

    Raises:
        StorageError: If SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY is missing.
    """
    if not settings.storage_configured:
        raise StorageError(
            f"Storage is not configured: missing {', '.join(settings.missing_storage_settings)}",
            code="E_STORAGE_NOT_CONFIGURED",
        )
    return StorageClient(
        supabase_url=settings.supabase_url,  # type: ignore[arg-type]
        service_key=settings.supabase_service_role_key,  # type: ignore[arg-type]
        bucket=bucket,
        timeout_s=settings.storage_timeout_s,
    )
