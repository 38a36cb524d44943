"""Tests for href helpers."""

from folio.services.hrefs import (
    base_href,
    is_external,
    is_internal,
    relative_href,
    split_fragment,
)


def test_split_fragment():
    assert split_fragment("ch.xhtml#sec") == ("ch.xhtml", "#sec")
    assert split_fragment("ch.xhtml") == ("ch.xhtml", "")
    assert split_fragment("#only") == ("", "#only")


def test_base_href():
    assert base_href("OEBPS/ch.xhtml#a#b") == "OEBPS/ch.xhtml"


def test_relative_href_drops_one_leading_slash():
    assert relative_href("/OEBPS/ch.xhtml") == "OEBPS/ch.xhtml"
    assert relative_href("OEBPS/ch.xhtml") == "OEBPS/ch.xhtml"


def test_internal_and_external():
    assert is_external("https://example.com/x")
    assert not is_internal("http://example.com/x")
    assert not is_internal("~readium/positions.json")
    assert is_internal("OEBPS/ch.xhtml")
