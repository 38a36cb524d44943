"""Folio: EPUB to Readium web publication publisher."""

__version__ = "0.1.0"
