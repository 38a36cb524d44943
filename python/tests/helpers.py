"""Test helper functions.

EPUB fixtures are built in-memory (no files on disk, no network).
"""

import io
import zipfile

from folio.publication.models import Link, Manifest
from folio.publication.reader import ResourceError

CONTAINER_XML = """\
<?xml version="1.0" encoding="UTF-8"?>
<container xmlns="urn:oasis:names:tc:opendocument:xmlns:container" version="1.0">
  <rootfiles>
    <rootfile full-path="{opf_path}" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>"""


def build_opf(
    items: list[tuple[str, str, str]],
    spine: list[str] | None = None,
    *,
    title: str = "Test Book",
    properties: dict[str, str] | None = None,
    ncx_id: str | None = None,
    nonlinear: set[str] | None = None,
    guide: list[tuple[str, str, str]] | None = None,
) -> str:
    """Build an OPF package document.

    items: [(manifest_id, href, media_type), ...]
    spine: manifest ids in reading order (defaults to every XHTML item)
    properties: {manifest_id: "nav" | "cover-image" | ...}
    guide: [(type, title, href), ...]
    """
    properties = properties or {}
    nonlinear = nonlinear or set()
    if spine is None:
        spine = [mid for mid, _href, mtype in items if mtype == "application/xhtml+xml"]

    manifest_lines = []
    for mid, href, mtype in items:
        props = f' properties="{properties[mid]}"' if mid in properties else ""
        manifest_lines.append(f'    <item id="{mid}" href="{href}" media-type="{mtype}"{props}/>')

    spine_lines = []
    for mid in spine:
        linear = ' linear="no"' if mid in nonlinear else ""
        spine_lines.append(f'    <itemref idref="{mid}"{linear}/>')

    toc_attr = f' toc="{ncx_id}"' if ncx_id else ""

    guide_el = ""
    if guide:
        refs = "\n".join(
            f'    <reference type="{rtype}" title="{rtitle}" href="{href}"/>'
            for rtype, rtitle, href in guide
        )
        guide_el = f"  <guide>\n{refs}\n  </guide>"

    return f"""\
<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf"
         xmlns:dc="http://purl.org/dc/elements/1.1/"
         version="3.0" unique-identifier="bookid">
  <metadata>
    <dc:title>{title}</dc:title>
    <dc:identifier id="bookid">urn:uuid:0000-test</dc:identifier>
    <dc:language>en</dc:language>
    <dc:creator>Ada Author</dc:creator>
  </metadata>
  <manifest>
{chr(10).join(manifest_lines)}
  </manifest>
  <spine{toc_attr}>
{chr(10).join(spine_lines)}
  </spine>
{guide_el}
</package>"""


def _nav_ol(entries: list) -> str:
    """entries: [(label, href, children), ...]; href None gives a heading-only span."""
    lis = []
    for label, href, children in entries:
        head = f'<a href="{href}">{label}</a>' if href else f"<span>{label}</span>"
        nested = _nav_ol(children) if children else ""
        lis.append(f"<li>{head}{nested}</li>")
    return f"<ol>{''.join(lis)}</ol>"


def build_nav(
    toc: list,
    landmarks: list[tuple[str, str, str]] | None = None,
) -> str:
    """Build an EPUB 3 nav document.

    toc: [(label, href, children), ...]
    landmarks: [(epub_type, label, href), ...]
    """
    landmarks_el = ""
    if landmarks:
        lis = "".join(
            f'<li><a epub:type="{etype}" href="{href}">{label}</a></li>'
            for etype, label, href in landmarks
        )
        landmarks_el = f'<nav epub:type="landmarks"><ol>{lis}</ol></nav>'

    return f"""\
<?xml version="1.0" encoding="UTF-8"?>
<html xmlns="http://www.w3.org/1999/xhtml" xmlns:epub="http://www.idpf.org/2007/ops">
<body>
  <nav epub:type="toc">{_nav_ol(toc)}</nav>
  {landmarks_el}
</body>
</html>"""


def build_ncx(entries: list[tuple[str, str, str]]) -> str:
    """entries: [(nav_id, label, src), ...]"""
    points = []
    for i, (nid, label, src) in enumerate(entries):
        points.append(
            f'<navPoint id="{nid}" playOrder="{i + 1}">'
            f"<navLabel><text>{label}</text></navLabel>"
            f'<content src="{src}"/></navPoint>'
        )
    return f"""\
<?xml version="1.0" encoding="UTF-8"?>
<ncx xmlns="http://www.daisy.org/z3986/2005/ncx/" version="2005-1">
  <navMap>{"".join(points)}</navMap>
</ncx>"""


def chapter_xhtml(body: str) -> str:
    return f"""\
<?xml version="1.0" encoding="UTF-8"?>
<html xmlns="http://www.w3.org/1999/xhtml">
<head><title>Chapter</title><link rel="stylesheet" href="style.css"/></head>
<body>
{body}
</body>
</html>"""


def make_epub(files: dict[str, str | bytes], opf_path: str = "OEBPS/content.opf") -> bytes:
    """Build an EPUB ZIP in memory."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        zf.writestr("mimetype", "application/epub+zip")
        zf.writestr("META-INF/container.xml", CONTAINER_XML.format(opf_path=opf_path))
        for path, content in files.items():
            zf.writestr(path, content)
    return buf.getvalue()


def sample_epub() -> bytes:
    """A small EPUB 3 book.

    OEBPS/
        toc.xhtml        nav document (toc + landmarks)
        chapter1.xhtml   links to chapter2 and to an external site
        chapter2.xhtml   two sections, TOC points at both fragments
        style.css
        images/cover.jpg cover image
    """
    opf = build_opf(
        [
            ("nav", "toc.xhtml", "application/xhtml+xml"),
            ("ch1", "chapter1.xhtml", "application/xhtml+xml"),
            ("ch2", "chapter2.xhtml", "application/xhtml+xml"),
            ("css", "style.css", "text/css"),
            ("cover", "images/cover.jpg", "image/jpeg"),
        ],
        spine=["ch1", "ch2"],
        properties={"nav": "nav", "cover": "cover-image"},
    )
    nav = build_nav(
        [
            ("Chapter One", "chapter1.xhtml", []),
            (
                "Chapter Two",
                "chapter2.xhtml#sec1",
                [("Second Section", "chapter2.xhtml#sec2", [])],
            ),
        ],
        landmarks=[
            ("toc", "Table of Contents", "toc.xhtml"),
            ("bodymatter", "Begin Reading", "chapter1.xhtml"),
        ],
    )
    ch1 = chapter_xhtml(
        '<p>One.</p><a href="./chapter2.xhtml#sec1">next</a>'
        '<a href="https://example.com/about">site</a>'
    )
    ch2 = chapter_xhtml(
        '<h1 id="sec1">Part</h1>' + "<p>" + ("x" * 2000) + "</p>" + '<h2 id="sec2">More</h2>'
    )
    return make_epub(
        {
            "OEBPS/content.opf": opf,
            "OEBPS/toc.xhtml": nav,
            "OEBPS/chapter1.xhtml": ch1,
            "OEBPS/chapter2.xhtml": ch2,
            "OEBPS/style.css": "body { margin: 0; }",
            "OEBPS/images/cover.jpg": b"\xff\xd8\xff\xe0fakejpeg",
        }
    )


class FakeResource:
    def __init__(self, publication: "FakePublication", link: Link):
        self.link = link
        self._publication = publication

    def read(self) -> bytes:
        href = self.link.href.split("#", 1)[0]
        self._publication.reads.append(href)
        if href not in self._publication.contents:
            raise ResourceError(href, "Resource not found in archive")
        return self._publication.contents[href]


class FakePublication:
    """Publication backed by a dict of href -> bytes; records every read."""

    def __init__(self, manifest: Manifest, contents: dict[str, bytes]):
        self._manifest = manifest
        self.contents = contents
        self.reads: list[str] = []

    @property
    def manifest(self) -> Manifest:
        return self._manifest

    def get(self, link: Link) -> FakeResource:
        return FakeResource(self, link)
