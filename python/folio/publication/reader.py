"""Read interface the publishing core consumes from a parsed publication."""

from typing import Protocol

from folio.publication.models import Link, Manifest


class ResourceError(Exception):
    """A publication resource could not be read."""

    def __init__(self, href: str, message: str):
        super().__init__(f"{message}: {href}")
        self.href = href
        self.message = message


class Resource(Protocol):
    """Handle on one publication resource."""

    link: Link

    def read(self) -> bytes:
        """Return the whole resource content.

        Raises:
            ResourceError: If the href does not resolve to a readable entry.
        """
        ...


class Publication(Protocol):
    """A parsed publication: its manifest plus access to resource bytes."""

    @property
    def manifest(self) -> Manifest: ...

    def get(self, link: Link) -> Resource: ...
