"""Hyperlink normalization inside HTML/XHTML resources.

Anchor hrefs that point inside the publication are kept relative (readers
resolve them against the manifest location) and only normalized: a leading
``./`` and any leading ``/`` are removed. External, mailto, data, and
same-document fragment links are left byte-for-byte untouched, as is
everything outside the href value.

``..`` segments are not resolved and targets are not checked for existence.
"""

import re

# <a ... href="value" ...> with single or double quotes
_ANCHOR_HREF_RE = re.compile(
    rb"""(<a[^>]*\s+href=["'])([^"']+)(["'][^>]*>)""",
    re.IGNORECASE,
)

_UNTOUCHED_PREFIXES = (b"http://", b"https://", b"mailto:", b"data:", b"#")


def normalize_relative_link(value: bytes) -> bytes:
    """Normalize an internal link while keeping it relative."""
    value = value.removeprefix(b"./")
    return value.lstrip(b"/")


def _rewrite_anchor(match: re.Match[bytes]) -> bytes:
    prefix, value, suffix = match.group(1), match.group(2), match.group(3)
    if value.startswith(_UNTOUCHED_PREFIXES):
        return match.group(0)
    return prefix + normalize_relative_link(value) + suffix


def rewrite_links(content: bytes) -> bytes:
    """Rewrite internal anchor hrefs in an HTML/XHTML document.

    Args:
        content: Raw document bytes.

    Returns:
        The document with internal anchor hrefs normalized.
    """
    return _ANCHOR_HREF_RE.sub(_rewrite_anchor, content)
