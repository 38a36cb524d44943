"""Storage path building utilities.

This module is the single point of logic for output storage paths.

Path Invariant:
    - Resources: {base}/{href without leading slash}
    - Manifest: {base}/manifest.json
    - Readium documents: {base}/readium/content.json, {base}/readium/positions.json

Rules:
    - {base} is derived from the source filename exactly once, in derive_base_path()
    - No leading slash on any path
    - Fragments never reach a storage path
"""

import posixpath

READIUM_DIR = "readium"


def validate_filename(filename: str | None) -> str:
    """Validate the source EPUB filename from a request.

    Args:
        filename: Object path inside the EPUB bucket.

    Returns:
        The filename with one leading slash removed.

    Raises:
        ValueError: If the filename is empty or attempts path traversal.
    """
    if not filename:
        raise ValueError("Missing filename")
    if filename.startswith("/"):
        filename = filename[1:]
    if not filename:
        raise ValueError("Missing filename")
    if ".." in filename:
        raise ValueError("Invalid filename: path traversal not allowed")
    return filename


def derive_base_path(filename: str) -> str:
    """Derive the output base path from a source filename.

    Drops the final extension and flattens path separators to underscores,
    so "user/abc.epub" publishes under "user_abc/".

    Example:
        >>> derive_base_path("8f1a/c917.epub")
        '8f1a_c917'
    """
    root, _ext = posixpath.splitext(filename)
    return root.replace("/", "_").replace("\\", "_")


def resource_path(base_path: str, href: str) -> str:
    """Build the storage path for a publication resource."""
    return f"{base_path}/{href.lstrip('/')}"


def manifest_path(base_path: str) -> str:
    """Build the storage path of the publication manifest."""
    return f"{base_path}/manifest.json"


def content_index_path(base_path: str) -> str:
    """Build the storage path of readium/content.json."""
    return f"{base_path}/{READIUM_DIR}/content.json"


def positions_path(base_path: str) -> str:
    """Build the storage path of readium/positions.json."""
    return f"{base_path}/{READIUM_DIR}/positions.json"
