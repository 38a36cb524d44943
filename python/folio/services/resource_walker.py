"""Resource materialization.

Walks every reference collection of a publication and re-hosts each distinct
resource exactly once under the output base path:

1. reading order
2. table of contents (base hrefs, nested entries included)
3. generic links that point inside the archive (best-effort)
4. resources

The resulting resource map (base href -> public URL) is the single record of
what has been uploaded: an href already present is never read or uploaded
again. HTML/XHTML bodies go through the link rewriter before upload.

Failure on a reading-order, TOC, or resources item aborts the walk with a
PublishError. Failure on a generic link is logged and skipped. Uploads that
already happened are not rolled back.
"""

from collections.abc import Iterable, Iterator

from folio.logging import get_logger
from folio.media_types import is_html
from folio.publication.models import Link
from folio.publication.reader import Publication, ResourceError
from folio.services.errors import PublishError
from folio.services.hrefs import base_href, is_internal
from folio.services.link_rewriter import rewrite_links
from folio.storage.client import StorageClientBase, StorageError
from folio.storage.paths import resource_path

logger = get_logger(__name__)

ResourceMap = dict[str, str]


def iter_toc(entries: Iterable[Link]) -> Iterator[Link]:
    """Yield TOC entries depth-first, parents before their children."""
    for entry in entries:
        yield entry
        yield from iter_toc(entry.children)


class ResourceWalker:
    """Uploads a publication's resources and records where they went.

    One walker serves one request. The check-then-insert on the resource map
    is what keeps uploads idempotent; it assumes a single thread of control.
    """

    def __init__(self, publication: Publication, base_path: str, storage: StorageClientBase):
        self._publication = publication
        self._base_path = base_path
        self._storage = storage
        self.resource_map: ResourceMap = {}

    def walk(self) -> ResourceMap:
        """Materialize every referenced resource.

        Returns:
            Mapping of base href to public URL.

        Raises:
            PublishError: If a required resource cannot be read or uploaded.
        """
        manifest = self._publication.manifest

        for link in manifest.reading_order:
            href = base_href(link.href)
            self._process_required(href, link, "readingOrder")

        for entry in iter_toc(manifest.table_of_contents):
            href = base_href(entry.href)
            if href:
                self._process_required(href, manifest.find_link(href), "toc")

        for link in manifest.links:
            if not is_internal(link.href):
                continue
            href = base_href(link.href)
            if not href:
                continue
            try:
                self._process(href, manifest.find_link(href) or link)
            except (ResourceError, StorageError) as exc:
                logger.warning("resource.link_skipped", href=href, error=str(exc))

        for link in manifest.resources:
            href = base_href(link.href)
            self._process_required(href, link, "resources")

        return self.resource_map

    def _process_required(self, href: str, declared: Link | None, collection: str) -> None:
        try:
            self._process(href, declared)
        except (ResourceError, StorageError) as exc:
            raise PublishError(
                f"Failed to process {collection} resource {href}: {exc}",
                href=href,
                collection=collection,
            ) from exc

    def _process(self, href: str, declared: Link | None) -> None:
        if href in self.resource_map:
            return

        media_type = declared.media_type if declared is not None else None
        data = self._publication.get(Link(href=href, media_type=media_type)).read()

        if is_html(media_type, href):
            data = rewrite_links(data)

        path = resource_path(self._base_path, href)
        url = self._storage.upload_path(path, data)
        self.resource_map[href] = url

        logger.debug("resource.uploaded", href=href, path=path, size_bytes=len(data))


def materialize_resources(
    publication: Publication, base_path: str, storage: StorageClientBase
) -> ResourceMap:
    """Upload every resource of a publication once; see ResourceWalker."""
    return ResourceWalker(publication, base_path, storage).walk()
