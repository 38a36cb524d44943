"""Href helpers shared by the publishing services.

A base href is an href with its ``#fragment`` removed. Base hrefs key the
resource map and build storage paths; fragments are only re-attached when
an href is written back out.
"""

_EXTERNAL_PREFIXES = ("http://", "https://")

# Hrefs under "~" address reader-generated documents, never archive entries
_RESERVED_PREFIX = "~"


def split_fragment(href: str) -> tuple[str, str]:
    """Split an href into (base, fragment); fragment keeps its leading '#'."""
    idx = href.find("#")
    if idx < 0:
        return href, ""
    return href[:idx], href[idx:]


def base_href(href: str) -> str:
    return split_fragment(href)[0]


def relative_href(href: str) -> str:
    """Drop one leading slash so the href resolves against the manifest location."""
    return href.removeprefix("/")


def is_external(href: str) -> bool:
    return href.startswith(_EXTERNAL_PREFIXES)


def is_reserved(href: str) -> bool:
    return href.startswith(_RESERVED_PREFIX)


def is_internal(href: str) -> bool:
    """Whether an href points into the publication archive."""
    return not is_external(href) and not is_reserved(href)
