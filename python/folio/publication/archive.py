"""Archive-backed publication reader.

Opens an in-memory EPUB archive and exposes it through the Publication
interface: a Manifest built from the package document, and whole-entry
reads for every href the manifest declares.

This is a thin package-document reader. It resolves the
container, OPF manifest/spine, the EPUB 3 nav document (or NCX fallback),
landmarks (or the OPF 2 guide), and core Dublin Core metadata. It does not
handle encryption, fixed layout, media overlays, or multiple renditions.

All hrefs are normalized relative to the archive root, without a leading
slash; TOC and landmark fragments are preserved.
"""

from __future__ import annotations

import io
import posixpath
import re
import zipfile
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import unquote, urlparse
from xml.etree import ElementTree as ET

from folio.logging import get_logger
from folio.publication.models import Link, Manifest
from folio.publication.reader import ResourceError

logger = get_logger(__name__)

EPUB_MEDIA_TYPE = "application/epub+zip"

_NS = {
    "opf": "http://www.idpf.org/2007/opf",
    "dc": "http://purl.org/dc/elements/1.1/",
    "container": "urn:oasis:names:tc:opendocument:xmlns:container",
    "ncx": "http://www.daisy.org/z3986/2005/ncx/",
}

_EPUB_TYPE_ATTR = "{http://www.idpf.org/2007/ops}type"

# OPF item properties -> link rels
_PROPERTY_RELS = {
    "nav": "contents",
    "cover-image": "cover",
}

# epub:type (nav landmarks) and guide reference types -> link rels
_LANDMARK_RELS = {
    "toc": "contents",
    "bodymatter": "start",
    "text": "start",
    "copyright-page": "copyright",
    "cover": "cover",
}

_WHITESPACE_RE = re.compile(r"\s+")


class InvalidEpubError(Exception):
    """The archive is not a usable EPUB."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ---------------------------------------------------------------------------
# Asset / fetcher
# ---------------------------------------------------------------------------


class ArchiveFetcher:
    """Reads whole entries out of a ZIP archive."""

    def __init__(self, zf: zipfile.ZipFile):
        self._zf = zf
        self._names = set(zf.namelist())

    def read(self, path: str) -> bytes:
        """Read one entry by its archive path.

        Percent-encoded hrefs are tried decoded when the literal name is absent.

        Raises:
            ResourceError: If no such entry exists or it cannot be read.
        """
        name = path.lstrip("/")
        if name not in self._names:
            decoded = unquote(name)
            if decoded not in self._names:
                raise ResourceError(path, "Resource not found in archive")
            name = decoded
        try:
            return self._zf.read(name)
        except (zipfile.BadZipFile, OSError, RuntimeError) as exc:
            raise ResourceError(path, f"Failed to read resource ({exc})") from exc

    def close(self) -> None:
        self._zf.close()


class PublicationAsset(Protocol):
    """Something a publication can be opened from."""

    @property
    def name(self) -> str: ...

    @property
    def media_type(self) -> str: ...

    def create_fetcher(self) -> ArchiveFetcher: ...


@dataclass(frozen=True)
class BytesAsset:
    """An EPUB archive held in memory."""

    name: str
    data: bytes
    media_type: str = EPUB_MEDIA_TYPE

    def create_fetcher(self) -> ArchiveFetcher:
        try:
            zf = zipfile.ZipFile(io.BytesIO(self.data))
        except (zipfile.BadZipFile, ValueError) as exc:
            raise InvalidEpubError(f"Invalid ZIP archive: {exc}") from exc
        return ArchiveFetcher(zf)


# ---------------------------------------------------------------------------
# Publication
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ArchiveResource:
    """A resource handle; reading returns the whole entry."""

    link: Link
    fetcher: ArchiveFetcher

    def read(self) -> bytes:
        path = self.link.href.split("#", 1)[0]
        if not path:
            raise ResourceError(self.link.href, "Empty resource href")
        return self.fetcher.read(path)


class EpubPublication:
    """A publication opened from an EPUB archive."""

    def __init__(self, manifest: Manifest, fetcher: ArchiveFetcher):
        self._manifest = manifest
        self._fetcher = fetcher

    @property
    def manifest(self) -> Manifest:
        return self._manifest

    def get(self, link: Link) -> ArchiveResource:
        return ArchiveResource(link=link, fetcher=self._fetcher)

    def close(self) -> None:
        self._fetcher.close()

    def __enter__(self) -> EpubPublication:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def open_publication(asset: PublicationAsset) -> EpubPublication:
    """Open an EPUB asset and build its manifest.

    Raises:
        InvalidEpubError: If the archive or its package document is unusable.
    """
    fetcher = asset.create_fetcher()
    try:
        manifest = _build_manifest(fetcher)
    except Exception:
        fetcher.close()
        raise

    logger.debug(
        "publication.opened",
        name=asset.name,
        reading_order=len(manifest.reading_order),
        toc_entries=len(manifest.table_of_contents),
        resources=len(manifest.resources),
    )
    return EpubPublication(manifest, fetcher)


# ---------------------------------------------------------------------------
# Package document
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _ManifestItem:
    item_id: str
    href: str
    media_type: str
    properties: tuple[str, ...]


def _build_manifest(fetcher: ArchiveFetcher) -> Manifest:
    opf_path = _find_opf_path(fetcher)
    if opf_path is None:
        raise InvalidEpubError("Cannot locate OPF rootfile")

    opf = _parse_xml_entry(fetcher, opf_path)
    if opf is None:
        raise InvalidEpubError(f"Failed to parse OPF: {opf_path}")

    opf_dir = posixpath.dirname(opf_path)
    items = _parse_manifest_items(opf, opf_dir)
    spine_ids = _parse_spine(opf)

    reading_order = tuple(_item_link(items[i]) for i in spine_ids if i in items)
    in_spine = {link.href for link in reading_order}
    resources = tuple(
        _item_link(item) for item in items.values() if item.href not in in_spine
    )

    toc = _parse_nav_toc(fetcher, items)
    if not toc:
        toc = _parse_ncx_toc(fetcher, opf, items)

    links = _parse_nav_landmarks(fetcher, items)
    if not links:
        links = _parse_guide(opf, opf_dir)

    return Manifest(
        reading_order=reading_order,
        table_of_contents=toc,
        links=links,
        resources=resources,
        metadata=_parse_metadata(opf),
    )


def _find_opf_path(fetcher: ArchiveFetcher) -> str | None:
    container = _parse_xml_entry(fetcher, "META-INF/container.xml")
    if container is None:
        return None
    rootfile = container.find(
        ".//container:rootfile[@media-type='application/oebps-package+xml']",
        _NS,
    )
    if rootfile is None:
        rootfile = container.find(".//container:rootfile", _NS)
    if rootfile is not None:
        return rootfile.get("full-path")
    return None


def _parse_xml_entry(fetcher: ArchiveFetcher, path: str) -> ET.Element | None:
    try:
        return ET.fromstring(fetcher.read(path))
    except (ResourceError, ET.ParseError):
        return None


def _parse_manifest_items(opf: ET.Element, opf_dir: str) -> dict[str, _ManifestItem]:
    """Return {manifest_id: item}, preserving document order."""
    result: dict[str, _ManifestItem] = {}
    for item in opf.findall(".//opf:manifest/opf:item", _NS):
        item_id = item.get("id", "")
        href = item.get("href", "")
        if not item_id or not href:
            continue
        result[item_id] = _ManifestItem(
            item_id=item_id,
            href=_resolve_href(opf_dir, href),
            media_type=item.get("media-type", ""),
            properties=tuple(item.get("properties", "").split()),
        )
    return result


def _parse_spine(opf: ET.Element) -> list[str]:
    """Linear spine idrefs in order; non-linear items stay resources."""
    refs: list[str] = []
    for itemref in opf.findall(".//opf:spine/opf:itemref", _NS):
        idref = itemref.get("idref", "")
        if idref and itemref.get("linear", "yes") != "no":
            refs.append(idref)
    return refs


def _item_link(item: _ManifestItem) -> Link:
    rels = tuple(_PROPERTY_RELS[p] for p in item.properties if p in _PROPERTY_RELS)
    return Link(href=item.href, media_type=item.media_type or None, rels=rels)


def _parse_metadata(opf: ET.Element) -> dict[str, Any]:
    metadata: dict[str, Any] = {}
    meta_el = opf.find("opf:metadata", _NS)
    if meta_el is None:
        return metadata

    def dc_text(tag: str) -> list[str]:
        values = []
        for el in meta_el.findall(f"dc:{tag}", _NS):
            text = _normalize_text(_text_content(el))
            if text:
                values.append(text)
        return values

    titles = dc_text("title")
    if titles:
        metadata["title"] = titles[0]

    unique_id = opf.get("unique-identifier")
    identifiers = meta_el.findall("dc:identifier", _NS)
    chosen = next((el for el in identifiers if unique_id and el.get("id") == unique_id), None)
    if chosen is None and identifiers:
        chosen = identifiers[0]
    if chosen is not None and _normalize_text(_text_content(chosen)):
        metadata["identifier"] = _normalize_text(_text_content(chosen))

    languages = dc_text("language")
    if languages:
        metadata["language"] = languages[0] if len(languages) == 1 else languages

    authors = dc_text("creator")
    if authors:
        metadata["author"] = authors[0] if len(authors) == 1 else authors

    publishers = dc_text("publisher")
    if publishers:
        metadata["publisher"] = publishers[0]

    for meta in meta_el.findall("opf:meta", _NS):
        if meta.get("property") == "dcterms:modified":
            modified = _normalize_text(_text_content(meta))
            if modified:
                metadata["modified"] = modified
            break

    return metadata


# ---------------------------------------------------------------------------
# Navigation: EPUB 3 nav document
# ---------------------------------------------------------------------------


def _find_nav_item(items: dict[str, _ManifestItem]) -> _ManifestItem | None:
    for item in items.values():
        if "nav" in item.properties:
            return item
    return None


def _find_nav_element(root: ET.Element, epub_type: str) -> ET.Element | None:
    for el in root.iter():
        if _local_name(el.tag) == "nav" and epub_type in el.get(_EPUB_TYPE_ATTR, "").split():
            return el
    return None


def _parse_nav_toc(fetcher: ArchiveFetcher, items: dict[str, _ManifestItem]) -> tuple[Link, ...]:
    nav_item = _find_nav_item(items)
    if nav_item is None:
        return ()
    root = _parse_xml_entry(fetcher, nav_item.href)
    if root is None:
        return ()

    toc_nav = _find_nav_element(root, "toc")
    if toc_nav is None:
        # Untyped nav documents: take the first <nav>
        toc_nav = next((el for el in root.iter() if _local_name(el.tag) == "nav"), None)
    if toc_nav is None:
        return ()

    return _walk_nav_ol(_child(toc_nav, "ol"), nav_item.href)


def _walk_nav_ol(ol: ET.Element | None, nav_href: str) -> tuple[Link, ...]:
    if ol is None:
        return ()
    nav_dir = posixpath.dirname(nav_href)
    links: list[Link] = []

    for li in ol:
        if _local_name(li.tag) != "li":
            continue

        label = ""
        href = None
        for el in li:
            name = _local_name(el.tag)
            if name == "a":
                label = _normalize_text(_text_content(el))
                href = el.get("href")
                break
            if name == "span":
                label = _normalize_text(_text_content(el))
                break

        children = _walk_nav_ol(_child(li, "ol"), nav_href)

        if href:
            resolved = _resolve_href(nav_dir, href)
        elif children:
            # Heading-only entry: point it at its first child
            resolved = children[0].href
        else:
            continue

        links.append(Link(href=resolved, title=label or None, children=children))

    return tuple(links)


def _parse_nav_landmarks(
    fetcher: ArchiveFetcher, items: dict[str, _ManifestItem]
) -> tuple[Link, ...]:
    nav_item = _find_nav_item(items)
    if nav_item is None:
        return ()
    root = _parse_xml_entry(fetcher, nav_item.href)
    if root is None:
        return ()
    landmarks_nav = _find_nav_element(root, "landmarks")
    if landmarks_nav is None:
        return ()

    nav_dir = posixpath.dirname(nav_item.href)
    ol = _child(landmarks_nav, "ol")
    if ol is None:
        return ()

    links: list[Link] = []
    for a in ol.iter():
        if _local_name(a.tag) != "a" or not a.get("href"):
            continue
        epub_type = a.get(_EPUB_TYPE_ATTR, "").strip()
        links.append(
            Link(
                href=_resolve_href(nav_dir, a.get("href", "")),
                title=_normalize_text(_text_content(a)) or None,
                rels=_landmark_rels(epub_type),
            )
        )
    return tuple(links)


# ---------------------------------------------------------------------------
# Navigation: EPUB 2 NCX and guide
# ---------------------------------------------------------------------------


def _parse_ncx_toc(
    fetcher: ArchiveFetcher,
    opf: ET.Element,
    items: dict[str, _ManifestItem],
) -> tuple[Link, ...]:
    ncx_id = None
    spine = opf.find(".//opf:spine", _NS)
    if spine is not None:
        ncx_id = spine.get("toc")
    if ncx_id is None:
        for item in items.values():
            if item.media_type == "application/x-dtbncx+xml":
                ncx_id = item.item_id
                break
    if ncx_id is None or ncx_id not in items:
        return ()

    ncx_href = items[ncx_id].href
    root = _parse_xml_entry(fetcher, ncx_href)
    if root is None:
        return ()
    nav_map = root.find(".//ncx:navMap", _NS)
    if nav_map is None:
        return ()

    return _walk_ncx_navpoints(nav_map, posixpath.dirname(ncx_href))


def _walk_ncx_navpoints(parent: ET.Element, ncx_dir: str) -> tuple[Link, ...]:
    links: list[Link] = []
    for point in parent:
        if _local_name(point.tag) != "navPoint":
            continue

        label_el = point.find("ncx:navLabel/ncx:text", _NS)
        label = _normalize_text(label_el.text or "") if label_el is not None else ""
        content_el = point.find("ncx:content", _NS)
        src = content_el.get("src") if content_el is not None else None

        children = _walk_ncx_navpoints(point, ncx_dir)
        if src:
            href = _resolve_href(ncx_dir, src)
        elif children:
            href = children[0].href
        else:
            continue

        links.append(Link(href=href, title=label or None, children=children))
    return tuple(links)


def _parse_guide(opf: ET.Element, opf_dir: str) -> tuple[Link, ...]:
    links: list[Link] = []
    for ref in opf.findall(".//opf:guide/opf:reference", _NS):
        href = ref.get("href")
        if not href:
            continue
        links.append(
            Link(
                href=_resolve_href(opf_dir, href),
                title=_normalize_text(ref.get("title", "")) or None,
                rels=_landmark_rels(ref.get("type", "").strip()),
            )
        )
    return tuple(links)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _landmark_rels(epub_type: str) -> tuple[str, ...]:
    if not epub_type:
        return ()
    return (_LANDMARK_RELS.get(epub_type, epub_type),)


def _resolve_href(base_dir: str, href: str) -> str:
    """Resolve an href against a document directory, keeping its fragment.

    Absolute URLs are returned unchanged.
    """
    if urlparse(href).scheme:
        return href
    path, sep, fragment = href.partition("#")
    if path:
        joined = posixpath.join(base_dir, path) if base_dir else path
        path = posixpath.normpath(joined).lstrip("/")
    return f"{path}{sep}{fragment}"


def _local_name(tag: object) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _child(el: ET.Element, name: str) -> ET.Element | None:
    for child in el:
        if _local_name(child.tag) == name:
            return child
    return None


def _text_content(el: ET.Element) -> str:
    return "".join(el.itertext())


def _normalize_text(raw: str) -> str:
    return _WHITESPACE_RE.sub(" ", raw).strip()
