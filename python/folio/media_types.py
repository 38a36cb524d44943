"""Content types for published objects.

The storage uploader sends the value of content_type_for_path() as the
Content-Type of every object it writes. The three Readium documents
(manifest.json, content.json, positions.json) get their registered types;
everything else is keyed by extension.
"""

import posixpath

WEBPUB_MANIFEST_TYPE = "application/webpub+json"
READIUM_CONTENT_TYPE = "application/vnd.readium.content+json"
READIUM_POSITION_LIST_TYPE = "application/vnd.readium.position-list+json"

HTML_MEDIA_TYPES = frozenset({"application/xhtml+xml", "text/html"})

_OCTET_STREAM = "application/octet-stream"

# Matched against the end of the lower-cased path, before the extension table
_READIUM_DOCUMENTS: tuple[tuple[str, str], ...] = (
    ("manifest.json", f"{WEBPUB_MANIFEST_TYPE}; charset=utf-8"),
    ("content.json", f"{READIUM_CONTENT_TYPE}; charset=utf-8"),
    ("positions.json", f"{READIUM_POSITION_LIST_TYPE}; charset=utf-8"),
)

_EXTENSION_TYPES: dict[str, str] = {
    ".json": "application/json; charset=utf-8",
    ".html": "text/html",
    ".htm": "text/html",
    ".xhtml": "application/xhtml+xml",
    ".css": "text/css",
    ".js": "application/javascript",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".webp": "image/webp",
    ".xml": "application/xml",
    ".ncx": "application/x-dtbncx+xml",
    ".opf": "application/oebps-package+xml",
}

_HTML_EXTENSIONS = (".xhtml", ".html", ".htm")


def content_type_for_path(path: str) -> str:
    """Return the Content-Type to store an object under.

    Args:
        path: Storage path or href of the object.

    Returns:
        MIME type string; application/octet-stream when the extension is unknown.
    """
    path_lower = path.lower()

    for suffix, content_type in _READIUM_DOCUMENTS:
        if path_lower.endswith(suffix):
            return content_type

    ext = posixpath.splitext(path_lower)[1]
    return _EXTENSION_TYPES.get(ext, _OCTET_STREAM)


def is_html(media_type: str | None, href: str) -> bool:
    """Whether a resource is HTML/XHTML and should go through link rewriting.

    The declared media type wins; the href extension is the fallback for
    resources declared without one.
    """
    if media_type and media_type.split(";")[0].strip().lower() in HTML_MEDIA_TYPES:
        return True
    return href.lower().endswith(_HTML_EXTENSIONS)
