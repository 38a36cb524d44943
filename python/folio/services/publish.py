"""EPUB publishing pipeline.

Turns an EPUB in the source bucket into a self-contained Readium web
publication in the output bucket:

    {base}/<resource path>           every referenced resource, once
    {base}/readium/positions.json    position list
    {base}/readium/content.json      content index
    {base}/manifest.json             the manifest (uploaded last)

Steps run sequentially in one thread: resource walking must finish before
the manifest is synthesized, and both it and position measuring read the
same publication. A failure aborts the remaining steps; objects already
uploaded stay in place.
"""

import json
from dataclasses import dataclass
from typing import Any

from folio.config import Settings
from folio.logging import get_logger, set_publication_context
from folio.publication.archive import BytesAsset, InvalidEpubError, open_publication
from folio.publication.reader import Publication
from folio.services.content_index import content_document
from folio.services.manifest import synthesize_manifest
from folio.services.positions import build_positions, positions_document
from folio.services.resource_walker import materialize_resources
from folio.storage.client import StorageClientBase
from folio.storage.paths import (
    content_index_path,
    derive_base_path,
    manifest_path,
    positions_path,
    validate_filename,
)

logger = get_logger(__name__)

_ZIP_SIGNATURE = b"PK"


@dataclass(frozen=True)
class PublishResult:
    manifest_url: str
    base_path: str
    resource_count: int
    position_count: int


def serialize_document(document: dict[str, Any]) -> bytes:
    """Serialize a published JSON document (2-space indent, sorted keys)."""
    return json.dumps(document, indent=2, sort_keys=True, ensure_ascii=False).encode("utf-8")


def fetch_epub(storage: StorageClientBase, filename: str, *, max_bytes: int) -> bytes:
    """Download an EPUB from the source bucket and sanity-check it.

    Raises:
        StorageError: If the download fails.
        InvalidEpubError: If the bytes are too small, too large, or not a ZIP archive.
    """
    data = storage.download(filename)

    if len(data) < 4:
        raise InvalidEpubError("File too small to be a valid EPUB")
    if not data.startswith(_ZIP_SIGNATURE):
        raise InvalidEpubError("File does not appear to be a valid EPUB (missing ZIP signature)")
    if len(data) > max_bytes:
        raise InvalidEpubError(f"EPUB is {len(data)} bytes (limit {max_bytes})")
    return data


def publish_publication(
    publication: Publication,
    base_path: str,
    storage: StorageClientBase,
) -> PublishResult:
    """Materialize resources, then upload positions, content index, and manifest.

    Raises:
        PublishError: If a required resource cannot be processed.
        StorageError: If a generated document cannot be uploaded.
    """
    resource_map = materialize_resources(publication, base_path, storage)

    positions = build_positions(publication)
    storage.upload_path(
        positions_path(base_path), serialize_document(positions_document(positions))
    )

    manifest = publication.manifest
    storage.upload_path(
        content_index_path(base_path), serialize_document(content_document(manifest))
    )

    manifest_storage_path = manifest_path(base_path)
    document = synthesize_manifest(
        manifest,
        resource_map,
        manifest_url=storage.public_url(manifest_storage_path),
    )
    manifest_url = storage.upload_path(manifest_storage_path, serialize_document(document))

    return PublishResult(
        manifest_url=manifest_url,
        base_path=base_path,
        resource_count=len(resource_map),
        position_count=len(positions),
    )


def process_epub(
    filename: str,
    settings: Settings,
    *,
    source: StorageClientBase,
    output: StorageClientBase,
) -> PublishResult:
    """Publish the EPUB stored at ``filename`` in the source bucket.

    Args:
        filename: Object path in the source bucket.
        settings: Application settings (limits).
        source: Storage client for the EPUB bucket.
        output: Storage client for the output bucket.

    Raises:
        ValueError: If the filename is invalid.
        StorageError: If downloading or uploading fails.
        InvalidEpubError: If the file is not a usable EPUB.
        PublishError: If a required resource cannot be processed.
    """
    filename = validate_filename(filename)
    base_path = derive_base_path(filename)
    set_publication_context(base_path)

    logger.info("publish.started", filename=filename, base_path=base_path)
    try:
        data = fetch_epub(source, filename, max_bytes=settings.max_epub_bytes)
        logger.info("publish.downloaded", size_bytes=len(data))

        with open_publication(BytesAsset(name=filename, data=data)) as publication:
            result = publish_publication(publication, base_path, output)
    except Exception as exc:
        logger.warning("publish.failed", error=str(exc), error_type=type(exc).__name__)
        raise

    logger.info(
        "publish.completed",
        manifest_url=result.manifest_url,
        resource_count=result.resource_count,
        position_count=result.position_count,
    )
    return result
