"""Table-of-contents projection and the readium/content.json document."""

from collections.abc import Iterable
from typing import Any

from folio.publication.models import Link, Manifest
from folio.services.hrefs import relative_href


def project_link(link: Link, *, include_type: bool = True) -> dict[str, Any]:
    """Project one TOC node (and its subtree) into a portable item.

    Hrefs stay relative to the manifest location; ``children`` is only
    present when the node has any.
    """
    item: dict[str, Any] = {"href": relative_href(link.href)}
    if link.title:
        item["title"] = link.title
    if include_type and link.media_type:
        item["type"] = link.media_type

    children = project_toc(link.children, include_type=include_type)
    if children:
        item["children"] = children
    return item


def project_toc(entries: Iterable[Link], *, include_type: bool = True) -> list[dict[str, Any]]:
    return [project_link(entry, include_type=include_type) for entry in entries]


def content_structure(manifest: Manifest) -> list[dict[str, Any]]:
    """The TOC tree, or the reading order as a flat list when there is no TOC."""
    if manifest.table_of_contents:
        return project_toc(manifest.table_of_contents)
    return project_toc(manifest.reading_order)


def content_document(manifest: Manifest) -> dict[str, Any]:
    """The readium/content.json document."""
    structure = content_structure(manifest)
    return {
        "metadata": {"numberOfItems": len(structure)},
        "structure": structure,
    }
