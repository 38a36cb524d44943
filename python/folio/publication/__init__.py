"""Publication model and readers.

Provides:
- Link / Manifest: the parsed publication structure
- Publication / Resource: the read interface the publishing core consumes
- open_publication(): an EPUB archive reader implementing that interface
"""

from folio.publication.archive import (
    BytesAsset,
    EpubPublication,
    InvalidEpubError,
    open_publication,
)
from folio.publication.models import Link, Manifest
from folio.publication.reader import Publication, Resource, ResourceError

__all__ = [
    "BytesAsset",
    "EpubPublication",
    "InvalidEpubError",
    "Link",
    "Manifest",
    "Publication",
    "Resource",
    "ResourceError",
    "open_publication",
]
