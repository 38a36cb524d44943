"""Readium Web Publication Manifest synthesis.

Every href in the synthesized manifest is relative to the manifest's own
location (the publication is uploaded under the same base path), except the
``self`` link, which is the manifest's absolute public URL, and external
links, which pass through unchanged.

Landmarks are discovered in priority order, each deduplicated by base href:
1. generic links with a landmark rel (contents/start/copyright) or one of
   the canonical landmark titles;
2. top-level TOC entries whose title names a table of contents, a starting
   point, or a copyright page (relabeled with the canonical title);
3. failing both, the first reading-order item as "Begin Reading".
"""

import posixpath
from typing import Any

from folio.media_types import (
    READIUM_CONTENT_TYPE,
    READIUM_POSITION_LIST_TYPE,
    WEBPUB_MANIFEST_TYPE,
)
from folio.publication.models import Link, Manifest
from folio.services.content_index import project_toc
from folio.services.errors import PublishError
from folio.services.hrefs import base_href, is_internal, relative_href
from folio.services.resource_walker import ResourceMap, iter_toc
from folio.storage.paths import READIUM_DIR

WEBPUB_CONTEXT = "https://readium.org/webpub-manifest/context.jsonld"

CONTENT_INDEX_HREF = f"{READIUM_DIR}/content.json"
POSITIONS_HREF = f"{READIUM_DIR}/positions.json"

TABLE_OF_CONTENTS = "Table of Contents"
BEGIN_READING = "Begin Reading"
COPYRIGHT_PAGE = "Copyright Page"

LANDMARK_RELS = frozenset({"contents", "start", "copyright"})
LANDMARK_TITLES = frozenset({TABLE_OF_CONTENTS, BEGIN_READING, COPYRIGHT_PAGE})

# Checked in order; the first matching group labels the landmark
_TOC_TITLE_PATTERNS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("table of contents", "contents", "toc"), TABLE_OF_CONTENTS),
    (("begin reading", "start"), BEGIN_READING),
    (("copyright",), COPYRIGHT_PAGE),
)

TOC_FILE_NAMES = frozenset({"toc.xhtml", "toc.ncx"})


def is_landmark_link(link: Link) -> bool:
    """Whether a generic link is a landmark, by rel or by canonical title."""
    if LANDMARK_RELS.intersection(link.rels):
        return True
    return link.title in LANDMARK_TITLES


def landmark_title_for_toc(title: str | None) -> str | None:
    """Canonical landmark title for a TOC entry title, if it names one."""
    if not title:
        return None
    lowered = title.lower()
    for needles, label in _TOC_TITLE_PATTERNS:
        if any(needle in lowered for needle in needles):
            return label
    return None


def build_landmarks(manifest: Manifest) -> list[dict[str, Any]]:
    landmarks: list[dict[str, Any]] = []
    seen: set[str] = set()

    def add(href: str, title: str | None) -> None:
        key = base_href(relative_href(href))
        if key in seen:
            return
        seen.add(key)
        item: dict[str, Any] = {"href": relative_href(href)}
        if title:
            item["title"] = title
        landmarks.append(item)

    for link in manifest.links:
        if is_landmark_link(link):
            add(link.href, link.title)

    for entry in manifest.table_of_contents:
        label = landmark_title_for_toc(entry.title)
        if label:
            add(entry.href, label)

    if not landmarks and manifest.reading_order:
        add(manifest.reading_order[0].href, BEGIN_READING)

    return landmarks


def rel_value(rels: list[str] | tuple[str, ...]) -> str | list[str]:
    """A single rel serializes as a string, several as a list."""
    return rels[0] if len(rels) == 1 else list(rels)


def build_links(manifest: Manifest, manifest_url: str) -> list[dict[str, Any]]:
    """Required self/content/positions links, then non-landmark generic links."""
    links: list[dict[str, Any]] = [
        {"href": manifest_url, "rel": "self", "type": WEBPUB_MANIFEST_TYPE},
        {"href": CONTENT_INDEX_HREF, "type": READIUM_CONTENT_TYPE},
        {"href": POSITIONS_HREF, "type": READIUM_POSITION_LIST_TYPE},
    ]

    for link in manifest.links:
        if is_landmark_link(link):
            continue
        href = relative_href(link.href) if is_internal(link.href) else link.href
        item: dict[str, Any] = {"href": href}
        if link.media_type:
            item["type"] = link.media_type
        if link.rels:
            item["rel"] = rel_value(link.rels)
        links.append(item)

    return links


def _is_toc_file(href: str) -> bool:
    return posixpath.basename(base_href(href)).lower() in TOC_FILE_NAMES


def build_resources(manifest: Manifest) -> list[dict[str, Any]]:
    resources: list[dict[str, Any]] = []
    for link in manifest.resources:
        item: dict[str, Any] = {"href": relative_href(link.href)}
        if link.media_type:
            item["type"] = link.media_type

        rels = list(link.rels)
        if _is_toc_file(link.href) and "contents" not in rels:
            rels.append("contents")
        if rels:
            item["rel"] = rel_value(rels)

        resources.append(item)
    return resources


def build_reading_order(manifest: Manifest) -> list[dict[str, Any]]:
    reading_order: list[dict[str, Any]] = []
    for link in manifest.reading_order:
        item: dict[str, Any] = {"href": relative_href(link.href)}
        if link.media_type:
            item["type"] = link.media_type
        if link.title:
            item["title"] = link.title
        reading_order.append(item)
    return reading_order


def check_materialized(manifest: Manifest, resource_map: ResourceMap) -> None:
    """Verify every required href was materialized before synthesis.

    Raises:
        PublishError: With code E_INTERNAL, naming the first missing href.
    """
    required = [link.href for link in manifest.reading_order]
    required += [entry.href for entry in iter_toc(manifest.table_of_contents)]
    required += [link.href for link in manifest.resources]

    for href in required:
        key = base_href(href)
        if key and key not in resource_map:
            raise PublishError(
                f"Resource was not materialized before manifest synthesis: {key}",
                code="E_INTERNAL",
                href=key,
            )


def synthesize_manifest(
    manifest: Manifest,
    resource_map: ResourceMap,
    manifest_url: str,
) -> dict[str, Any]:
    """Assemble the published manifest document.

    Args:
        manifest: Source publication manifest.
        resource_map: Base href -> public URL, as produced by the resource walker.
        manifest_url: Absolute public URL the manifest is uploaded to.

    Returns:
        The manifest as a JSON-serializable dict.
    """
    check_materialized(manifest, resource_map)

    document: dict[str, Any] = {
        "@context": WEBPUB_CONTEXT,
        "metadata": manifest.metadata,
        "links": build_links(manifest, manifest_url),
        "readingOrder": build_reading_order(manifest),
    }

    toc = project_toc(manifest.table_of_contents, include_type=False)
    if toc:
        document["toc"] = toc

    landmarks = build_landmarks(manifest)
    if landmarks:
        document["landmarks"] = landmarks

    resources = build_resources(manifest)
    if resources:
        document["resources"] = resources

    return document
