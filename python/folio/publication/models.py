"""Publication manifest model.

A parsed publication is read-only input for one request. Links form plain
trees (TOC entries nest through ``children``); there are no parent pointers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Link:
    """A reference into (or out of) the publication.

    ``href`` may be relative to the archive root or absolute, and may carry
    a ``#fragment``.
    """

    href: str
    media_type: str | None = None
    title: str | None = None
    rels: tuple[str, ...] = ()
    children: tuple[Link, ...] = ()


@dataclass(frozen=True)
class Manifest:
    """Structure of a parsed publication."""

    reading_order: tuple[Link, ...] = ()
    table_of_contents: tuple[Link, ...] = ()
    links: tuple[Link, ...] = ()
    resources: tuple[Link, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)

    def find_link(self, href: str) -> Link | None:
        """Find the declared link for a base href.

        Searches the reading order, then resources, then top-level TOC
        entries (compared without their fragment).
        """
        for link in self.reading_order:
            if link.href == href:
                return link
        for link in self.resources:
            if link.href == href:
                return link
        for link in self.table_of_contents:
            if link.href.split("#", 1)[0] == href:
                return link
        return None
