from __future__ import annotations

import dataclasses

import pytest

from harvester.analysis.document import (
    LEGACY_GENERATOR_VERSION,
    element,
    load_document,
    load_metadata,
)
from harvester.analysis.errors import ParseError


_BOOK = """<!DOCTYPE html>
<html>
<head>
  <meta name="Generator" content="Bloom Version 5.3.1 (apparent build date: 1-Mar-2023)">
  <title>Sample</title>
</head>
<body data-bookshelfurlkey="animals">
  <!-- authoring tool comment -->
  <div class="bloom-page numberedPage" id="first"><p>Hello <b>there</b></p></div>
  <div class="bloom-page numberedPage" id="second"><p>Again</p></div>
  <div class="bloom-page" data-xmatter-page="frontCover" id="cover"></div>
</body>
</html>
"""


def test_load_document_builds_queryable_tree() -> None:
    document = load_document(_BOOK)

    assert document.body.tag == "body"
    assert document.body.get("data-bookshelfurlkey") == "animals"
    pages = document.select_all(element("div", classes=("numberedPage",)))
    assert [page.get("id") for page in pages] == ["first", "second"]
    assert pages[0].text == "Hello there"
    assert "authoring tool comment" not in document.body.text

    paragraph = pages[0].select_first(element("p"))
    assert paragraph is not None
    assert document.parent_of(paragraph) is pages[0]
    assert [node.get("id") for node in document.following_siblings(pages[0])] == ["second", "cover"]


def test_element_predicate_checks_attributes_and_excluded_classes() -> None:
    document = load_document(_BOOK)

    cover = document.select_first(element(attrs={"data-xmatter-page": "frontCover"}))
    assert cover is not None and cover.get("id") == "cover"
    assert document.select_first(element("div", classes=("bloom-page",), without_classes=("numberedPage",))) is cover
    assert document.select_all(element(attrs={"data-xmatter-page": None})) == [cover]


def test_nodes_are_immutable() -> None:
    document = load_document(_BOOK)

    with pytest.raises(dataclasses.FrozenInstanceError):
        document.body.tag = "div"  # type: ignore[misc]


def test_generator_version_parsed_from_head_meta() -> None:
    assert load_document(_BOOK).generator_version == (5, 3, 1)


def test_missing_generator_meta_defaults_to_legacy_version() -> None:
    document = load_document("<html><body><p>x</p></body></html>")

    assert document.generator_version == LEGACY_GENERATOR_VERSION
    assert document.generator_version < (5, 4)


def test_lenient_recovery_for_unclosed_markup() -> None:
    document = load_document("<html><body><div class='numberedPage'><p>open paragraph")

    page = document.select_first(element("div", classes=("numberedPage",)))
    assert page is not None
    assert page.text == "open paragraph"


@pytest.mark.parametrize("markup", ["", "   \n  "])
def test_blank_markup_is_a_parse_error(markup: str) -> None:
    with pytest.raises(ParseError):
        load_document(markup)


def test_metadata_distinguishes_defined_from_null_values() -> None:
    metadata = load_metadata(
        '{"brandingProjectName": null, "tags": ["a", 3, "bookshelf:x"], '
        '"language-display-names": {"fr": "French"}}'
    )

    assert not metadata.is_defined("brandingProjectName")
    assert not metadata.is_defined("license")
    assert metadata.string_list("tags") == ("a", "bookshelf:x")
    names = metadata.child("language-display-names")
    assert names is not None and names["fr"] == "French"
    with pytest.raises(KeyError):
        metadata["brandingProjectName"]


@pytest.mark.parametrize("sidecar", ["{not json", "[1, 2]"])
def test_invalid_sidecar_is_a_parse_error(sidecar: str) -> None:
    with pytest.raises(ParseError):
        load_metadata(sidecar)
